"""
Booking endpoints: the requester's bookings, lookup and cancellation.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventbook.db.session import get_db
from eventbook.schemas.booking import (
    BookingResponse,
    BookingEnvelope,
    BookingListResponse,
    BookingCancelResult,
    BookingCancelResponse,
)
from eventbook.services import booking_service
from eventbook.services.cache_service import invalidate_event_cache
from eventbook.core.security import Requester, get_current_requester, require_admin

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _listing(bookings) -> BookingListResponse:
    return BookingListResponse(
        count=len(bookings),
        data=[BookingResponse.model_validate(b) for b in bookings],
    )


@router.get("", response_model=BookingListResponse)
async def list_my_bookings(
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_db),
):
    """Active (non-cancelled) bookings of the authenticated user, newest first."""
    bookings = await booking_service.list_user_bookings(db, requester)
    return _listing(bookings)


@router.get("/all", response_model=BookingListResponse)
async def list_all_my_bookings(
    requester: Requester = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """All bookings of the authenticated admin, cancelled ones included."""
    bookings = await booking_service.list_all_user_bookings(db, requester)
    return _listing(bookings)


@router.get("/{booking_id}", response_model=BookingEnvelope)
async def get_booking_endpoint(
    booking_id: int,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.get_booking(db, booking_id, requester)
    return BookingEnvelope(data=BookingResponse.model_validate(booking))


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking and release its seats back to the event. Owner or admin."""
    result = await booking_service.cancel(db, booking_id, requester)
    # Seats are committed before the listing cache is dropped
    await db.commit()
    await invalidate_event_cache()
    return BookingCancelResponse(data=BookingCancelResult(**result))

"""
Event endpoints with Redis caching on the listing, plus the reservation route.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventbook.db.session import get_db
from eventbook.schemas.event import EventCreate, EventUpdate, EventResponse, EventEnvelope, EventListResponse
from eventbook.schemas.booking import BookingCreate, BookingResponse, BookingEnvelope
from eventbook.services import booking_service
from eventbook.services.event_service import create_event, get_event, list_events, update_event, delete_event
from eventbook.services.cache_service import get_cached_events, set_cached_events, invalidate_event_cache
from eventbook.core.security import Requester, get_current_requester, require_admin
from eventbook.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.get("", response_model=EventListResponse)
async def list_events_endpoint(db: AsyncSession = Depends(get_db)):
    """
    List all events ordered by start time.
    Served from Redis when cached; the cache is dropped on every event or seat change.
    """
    cached = await get_cached_events()
    if cached:
        logger.info("events_list_cache_hit")
        cached["cached"] = True
        return EventListResponse.model_validate(cached)

    events = await list_events(db)
    response = EventListResponse(
        count=len(events),
        data=[EventResponse.model_validate(e) for e in events],
    )
    await set_cached_events(response.model_dump(mode="json", by_alias=True))
    return response


@router.get("/{event_id}", response_model=EventEnvelope)
async def get_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single event by ID. Not cached (needs real-time seat counts)."""
    event = await get_event(db, event_id)
    return EventEnvelope(data=EventResponse.model_validate(event))


@router.post("", response_model=EventEnvelope, status_code=201)
async def create_event_endpoint(
    event_data: EventCreate,
    requester: Requester = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event. Admin only."""
    event = await create_event(db, event_data, requester)
    # Commit first so a concurrent listing cannot re-cache the old rows
    await db.commit()
    await invalidate_event_cache()
    return EventEnvelope(data=EventResponse.model_validate(event))


@router.put("/{event_id}", response_model=EventEnvelope)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_db),
):
    """Update an event. Owner or admin."""
    event = await update_event(db, event_id, event_data, requester)
    await db.commit()
    await invalidate_event_cache()
    return EventEnvelope(data=EventResponse.model_validate(event))


@router.delete("/{event_id}")
async def delete_event_endpoint(
    event_id: int,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_db),
):
    """Delete an event. Owner or admin. Its bookings are kept."""
    await delete_event(db, event_id, requester)
    await db.commit()
    await invalidate_event_cache()
    return {"success": True, "data": {}}


@router.post("/{event_id}/book", response_model=BookingEnvelope)
async def book_event_endpoint(
    event_id: int,
    booking_data: BookingCreate,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve seats for an event.

    Seats are taken with a single guarded UPDATE, so concurrent requests for
    the last seats can never oversell. Fails with 400 when seats run out and
    409 when the requester already holds or has cancelled a booking for it.
    """
    booking = await booking_service.reserve(
        db,
        requester,
        event_id,
        name=booking_data.name,
        email=booking_data.email,
        phone=booking_data.phone,
        number_of_tickets=booking_data.number_of_tickets,
    )
    await db.commit()
    await invalidate_event_cache()
    return BookingEnvelope(
        data=BookingResponse.model_validate(booking),
        message="Booking successful!",
    )

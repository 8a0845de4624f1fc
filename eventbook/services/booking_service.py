"""
Booking service: the seat-inventory state machine.

Per (user, event) pair a booking moves NONE -> CONFIRMED -> CANCELLED, and
CANCELLED is terminal: a user who cancelled can never book that event again.

CONCURRENCY STRATEGY: Guarded UPDATE + partial unique index
===========================================================

Problem:
  Two users try to book the last seat simultaneously.
  Both read available_seats=1, both decrement to 0, both succeed.
  Result: Overbooking.

Solution:
  The seat counter is never written from a value read earlier. Reservation is

    UPDATE events SET available_seats = available_seats - :k
    WHERE id = :event_id AND available_seats >= :k

  evaluated atomically by the database. rows_affected == 0 means the seats are
  gone and the request fails with CapacityError. Cancellation is the mirror
  image, guarded by available_seats + :k <= total_seats.

  Duplicate confirmed bookings are prevented by the partial unique index
  uq_bookings_user_event_confirmed. The SELECT pre-checks below only exist to
  report *which* conflict happened; under a race the index is what decides,
  and its violation is translated into ConflictError("already booked").

  The decrement and the booking insert share the request's transaction, so a
  failed insert rolls the decrement back with it.

No retries: a failed attempt is final for that request.
"""

import time
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventbook.models.event import Event
from eventbook.models.booking import Booking, BookingStatus
from eventbook.core.exceptions import (
    CapacityError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from eventbook.core.logging import get_logger
from eventbook.core.metrics import booking_latency, record_booking_attempt, record_cancellation
from eventbook.core.security import ADMIN, Requester, require_capability
from eventbook.db.base import utcnow

logger = get_logger(__name__)

ALREADY_BOOKED = "You have already booked this event"
CANCELLED_BOOKING_EXISTS = (
    "You have already cancelled your booking for this event. You cannot book it again."
)
ALREADY_CANCELLED = "This booking has already been cancelled"

# Column widths of the attendee fields on the bookings table
MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 255
MAX_PHONE_LENGTH = 50


def _clean(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


def parse_ticket_count(value: Any) -> int:
    """
    Coerce the requested ticket count to a positive int.

    Missing means one ticket. Integral numbers and numeric strings are
    accepted; anything else is a ValidationError.
    """
    if value is None or value == "":
        return 1
    if isinstance(value, bool):
        raise ValidationError("Number of tickets must be at least 1")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError("Number of tickets must be a whole number")
    try:
        tickets = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Number of tickets must be at least 1")
    if tickets < 1:
        raise ValidationError("Number of tickets must be at least 1")
    return tickets


def validate_attendee(name: Optional[str], email: Optional[str], phone: Optional[str]) -> tuple[str, str, str]:
    name, email, phone = _clean(name), _clean(email), _clean(phone)
    if not name or not email or not phone:
        raise ValidationError("Please provide name, email, and phone number")
    try:
        email = validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError:
        raise ValidationError("Please add a valid email")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name can not be more than {MAX_NAME_LENGTH} characters")
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"Email can not be more than {MAX_EMAIL_LENGTH} characters")
    if len(phone) > MAX_PHONE_LENGTH:
        raise ValidationError(f"Phone number can not be more than {MAX_PHONE_LENGTH} characters")
    return name, email, phone


async def _find_pair_booking(
    db: AsyncSession,
    user_id: int,
    event_id: int,
    cancelled: bool,
) -> Optional[Booking]:
    if cancelled:
        condition = Booking.status == BookingStatus.CANCELLED.value
    else:
        # pending counts as active, same as confirmed
        condition = Booking.status != BookingStatus.CANCELLED.value
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id, Booking.event_id == event_id, condition)
        .limit(1)
    )
    return result.scalars().first()


async def reserve(
    db: AsyncSession,
    requester: Requester,
    event_id: int,
    name: Optional[str],
    email: Optional[str],
    phone: Optional[str],
    number_of_tickets: Any = 1,
) -> Booking:
    """
    Reserve seats and create a CONFIRMED booking.

    Raises ValidationError, NotFoundError, CapacityError or ConflictError; on
    any failure neither the seat counter nor the bookings table changes.
    """
    started = time.perf_counter()
    try:
        booking = await _reserve(db, requester, event_id, name, email, phone, number_of_tickets)
    except ValidationError:
        record_booking_attempt("invalid")
        raise
    except NotFoundError:
        record_booking_attempt("not_found")
        raise
    except CapacityError:
        record_booking_attempt("capacity")
        raise
    except ConflictError:
        record_booking_attempt("conflict")
        raise
    finally:
        booking_latency.observe(time.perf_counter() - started)
    record_booking_attempt("success")
    return booking


async def _reserve(db, requester, event_id, name, email, phone, number_of_tickets) -> Booking:
    name, email, phone = validate_attendee(name, email, phone)
    tickets = parse_ticket_count(number_of_tickets)

    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()
    if not event:
        raise NotFoundError(f"Event not found with id of {event_id}")

    if event.available_seats < tickets:
        logger.warning(
            "booking_failed_no_seats",
            event_id=event_id,
            requested=tickets,
            available=event.available_seats,
        )
        raise CapacityError(f"Only {event.available_seats} seats available")

    if await _find_pair_booking(db, requester.id, event_id, cancelled=False):
        logger.info("booking_rejected", reason="already_booked", user_id=requester.id, event_id=event_id)
        raise ConflictError(ALREADY_BOOKED)

    if await _find_pair_booking(db, requester.id, event_id, cancelled=True):
        logger.info("booking_rejected", reason="cancelled_booking_exists", user_id=requester.id, event_id=event_id)
        raise ConflictError(CANCELLED_BOOKING_EXISTS)

    # Guarded decrement: the availability check and the write are one statement
    update_result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.available_seats >= tickets)
        .values(
            available_seats=Event.available_seats - tickets,
            version=Event.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if update_result.rowcount == 0:
        logger.warning("booking_failed_seats_taken", event_id=event_id, requested=tickets)
        raise CapacityError("Not enough seats available")

    booking = Booking(
        user_id=requester.id,
        event_id=event_id,
        attendee_name=name,
        attendee_email=email,
        attendee_phone=phone,
        number_of_tickets=tickets,
        status=BookingStatus.CONFIRMED.value,
        booking_date=utcnow(),
    )
    db.add(booking)
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent request confirmed the same pair first; undo our decrement too
        await db.rollback()
        logger.info("booking_rejected", reason="unique_violation", user_id=requester.id, event_id=event_id)
        raise ConflictError(ALREADY_BOOKED)

    await db.refresh(event)
    await db.refresh(booking)

    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=requester.id,
        event_id=event_id,
        tickets=tickets,
        available_seats=event.available_seats,
    )
    return booking


async def _load_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError(f"Booking not found with id of {booking_id}")
    return booking


async def _restore_seats(db: AsyncSession, booking: Booking) -> int:
    """
    Give the booking's seats back to its event and return how many went back.

    Fewer than number_of_tickets are returned when total_seats was lowered
    after the booking was made; none when the event is gone.
    """
    if booking.event_id is None or booking.event is None:
        logger.warning("booking_event_missing", booking_id=booking.id, event_id=booking.event_id)
        return 0

    # Lock the event row so the count we report is the count we add
    seats = (
        await db.execute(
            select(Event.available_seats, Event.total_seats)
            .where(Event.id == booking.event_id)
            .with_for_update()
        )
    ).one_or_none()
    if seats is None:
        logger.warning("booking_event_missing", booking_id=booking.id, event_id=booking.event_id)
        return 0

    tickets = booking.number_of_tickets
    restored = min(tickets, max(seats.total_seats - seats.available_seats, 0))
    if restored < tickets:
        logger.warning(
            "seat_restore_capped",
            booking_id=booking.id,
            event_id=booking.event_id,
            tickets=tickets,
            restored=restored,
        )

    if restored:
        result = await db.execute(
            update(Event)
            .where(
                Event.id == booking.event_id,
                Event.available_seats + restored <= Event.total_seats,
            )
            .values(
                available_seats=Event.available_seats + restored,
                version=Event.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            restored = 0

    await db.refresh(booking.event)
    return restored


async def cancel(db: AsyncSession, booking_id: int, requester: Requester) -> dict:
    """
    Cancel a booking as its owner or an admin.

    Seats are returned only when the booking was CONFIRMED, and only once:
    a second cancel fails with ConflictError before touching the event.
    """
    booking = await _load_booking(db, booking_id)
    require_capability(requester, booking.user_id, action="cancel this booking")

    if booking.status == BookingStatus.CANCELLED.value:
        logger.info("cancel_rejected", reason="already_cancelled", booking_id=booking_id)
        raise ConflictError(ALREADY_CANCELLED)

    # Flip the status first, guarded on the status we read, so two concurrent
    # cancels cannot both restore seats
    now = utcnow()
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == booking.status)
        .values(
            status=BookingStatus.CANCELLED.value,
            cancelled_at=now,
            cancelled_by=requester.id,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("cancel_rejected", reason="status_changed", booking_id=booking_id)
        raise ConflictError(ALREADY_CANCELLED)

    prior_status = booking.status
    seats_returned = 0
    if prior_status == BookingStatus.CONFIRMED.value:
        seats_returned = await _restore_seats(db, booking)

    await db.refresh(booking)
    record_cancellation(seats_returned > 0)
    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        user_id=booking.user_id,
        cancelled_by=requester.id,
        event_id=booking.event_id,
        seats_restored=seats_returned,
    )
    return {
        "message": "Booking cancelled successfully",
        "booking_id": booking.id,
        "event_id": booking.event_id,
        "seats_returned": seats_returned,
    }


async def get_booking(db: AsyncSession, booking_id: int, requester: Requester) -> Booking:
    booking = await _load_booking(db, booking_id)
    require_capability(requester, booking.user_id, action="view this booking")
    return booking


async def list_user_bookings(db: AsyncSession, requester: Requester) -> list[Booking]:
    """The requester's non-cancelled bookings, newest first."""
    result = await db.execute(
        select(Booking)
        .where(
            Booking.user_id == requester.id,
            Booking.status != BookingStatus.CANCELLED.value,
        )
        .order_by(Booking.booking_date.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def list_all_user_bookings(db: AsyncSession, requester: Requester) -> list[Booking]:
    """Every booking of the requester, cancelled ones included. Admin only."""
    require_capability(requester, None, allowed=frozenset({ADMIN}), action="access this route")
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == requester.id)
        .order_by(Booking.booking_date.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())

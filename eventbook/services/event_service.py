"""
Event service handling CRUD operations.

Mutations are gated by capabilities: the event's owner or an admin may update
or delete it. The seat invariant 0 <= available_seats <= total_seats is
checked here before every write; the table's CHECK constraints back it up.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from eventbook.models.event import Event
from eventbook.models.booking import Booking
from eventbook.schemas.event import EventCreate, EventUpdate
from eventbook.core.config import get_settings
from eventbook.core.exceptions import ConflictError, NotFoundError, ValidationError
from eventbook.core.logging import get_logger
from eventbook.core.metrics import record_event_mutation
from eventbook.core.security import Requester, require_capability

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _check_seats(total_seats: int, available_seats: int) -> None:
    if total_seats < 1:
        raise ValidationError("Total seats must be at least 1")
    if available_seats < 0:
        raise ValidationError("Available seats cannot be negative")
    if available_seats > total_seats:
        raise ValidationError("Available seats cannot be greater than total seats")


async def create_event(db: AsyncSession, event_data: EventCreate, requester: Requester) -> Event:
    """Create a new event owned by the requester."""
    settings = get_settings()
    date_time = _as_utc(event_data.date_time)

    available_seats = event_data.available_seats
    if available_seats is None:
        available_seats = event_data.total_seats
    _check_seats(event_data.total_seats, available_seats)

    event = Event(
        title=event_data.title.strip(),
        description=event_data.description,
        date_time=date_time,
        location=event_data.location.strip(),
        total_seats=event_data.total_seats,
        available_seats=available_seats,
        image=event_data.image or settings.DEFAULT_EVENT_IMAGE,
        user_id=requester.id,
    )
    db.add(event)
    await db.flush()
    await db.refresh(event)

    record_event_mutation("create")
    logger.info("event_created", event_id=event.id, title=event.title, seats=event.total_seats)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()

    if not event:
        raise NotFoundError(f"Event not found with id of {event_id}")
    return event


async def list_events(db: AsyncSession) -> list[Event]:
    """All events, soonest first."""
    result = await db.execute(select(Event).order_by(Event.date_time.asc(), Event.id.asc()))
    return list(result.scalars().all())


def _merge_seats(event: Event, total_seats: Optional[int], available_seats: Optional[int]) -> tuple[int, int]:
    """
    Resolve the seat counters an update should write.

    Changing only total_seats keeps the number of booked seats constant, so
    available_seats moves by the same delta.
    """
    new_total = total_seats if total_seats is not None else event.total_seats
    if available_seats is not None:
        new_available = available_seats
    else:
        booked = event.total_seats - event.available_seats
        new_available = new_total - booked
        if new_available < 0:
            raise ValidationError(
                f"Total seats cannot be less than the {booked} seats already booked"
            )
    _check_seats(new_total, new_available)
    return new_total, new_available


async def update_event(
    db: AsyncSession,
    event_id: int,
    event_data: EventUpdate,
    requester: Requester,
) -> Event:
    """
    Update an event as its owner or an admin.

    The write is guarded on the version that was read, so a reservation landing
    between the read and the write surfaces as a ConflictError instead of
    silently overwriting the seat counter.
    """
    event = await get_event(db, event_id)
    require_capability(requester, event.user_id, action="update this event")

    changes = event_data.model_dump(exclude_unset=True, exclude_none=True)
    if "total_seats" in changes or "available_seats" in changes:
        changes["total_seats"], changes["available_seats"] = _merge_seats(
            event, changes.get("total_seats"), changes.get("available_seats")
        )
    if "date_time" in changes:
        changes["date_time"] = _as_utc(changes["date_time"])
    if not changes:
        return event

    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.version == event.version)
        .values(**changes, version=Event.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("event_update_conflict", event_id=event_id, version=event.version)
        raise ConflictError("Event was modified concurrently, please retry")

    await db.refresh(event)
    record_event_mutation("update")
    logger.info(
        "event_updated",
        event_id=event.id,
        fields=sorted(changes),
        requester_id=requester.id,
    )
    return event


async def delete_event(db: AsyncSession, event_id: int, requester: Requester) -> None:
    """
    Delete an event as its owner or an admin.

    Bookings are kept; their event reference is cleared so later cancellations
    know the seats have nowhere to go.
    """
    event = await get_event(db, event_id)
    require_capability(requester, event.user_id, action="delete this event")

    await db.execute(
        update(Booking)
        .where(Booking.event_id == event_id)
        .values(event_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(Event).where(Event.id == event_id).execution_options(synchronize_session=False))
    db.expunge(event)

    record_event_mutation("delete")
    logger.info("event_deleted", event_id=event_id, requester_id=requester.id)

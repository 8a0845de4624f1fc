"""
Booking model representing a user's reservation for an event.

Key design decisions:
- Partial unique index on (user_id, event_id) WHERE status = 'confirmed':
  at most one confirmed booking per pair, while cancelled history is kept
- Status field carries the lifecycle; rows are never deleted
- event_id becomes NULL when the event is deleted so the booking survives
"""

from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import relationship

from eventbook.db.base import Base, TimestampMixin, utcnow


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    PENDING = "pending"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="SET NULL"), nullable=True, index=True)
    attendee_name = Column(String(100), nullable=False)
    attendee_email = Column(String(255), nullable=False)
    attendee_phone = Column(String(50), nullable=False)
    number_of_tickets = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    booking_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Every read of a booking needs its event
    event = relationship("Event", lazy="selectin")

    __table_args__ = (
        Index(
            "uq_bookings_user_event_confirmed",
            "user_id",
            "event_id",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
        CheckConstraint("number_of_tickets > 0", name="check_booking_tickets_positive"),
        CheckConstraint(
            "status IN ('confirmed', 'cancelled', 'pending')", name="check_booking_status"
        ),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"

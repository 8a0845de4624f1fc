"""
Event model with seat inventory tracking.

Key design decisions:
- `available_seats` is denormalized so a reservation is one guarded UPDATE
  instead of a COUNT over bookings
- CHECK constraints keep 0 <= available_seats <= total_seats even if a
  service-level check is bypassed
- `version` is bumped on every write so administrative edits can detect a
  concurrent seat change between their read and their write
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, CheckConstraint

from eventbook.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    date_time = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=False)
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    image = Column(String(500), nullable=False, default="no-photo.jpg")
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("total_seats > 0", name="check_total_seats_positive"),
        CheckConstraint("available_seats >= 0", name="check_available_seats_non_negative"),
        CheckConstraint("available_seats <= total_seats", name="check_available_lte_total"),
        # Listing is always ordered by start time
        Index("ix_events_date_time", "date_time"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, available={self.available_seats}/{self.total_seats})>"

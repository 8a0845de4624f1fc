"""
Pydantic schemas for booking-related request/response validation.

The reservation body is deliberately permissive: the booking service owns the
attendee and ticket-count rules so that they hold for every caller, not only
for HTTP requests.
"""

from datetime import datetime
from typing import Optional, Union
from pydantic import Field

from eventbook.schemas.base import CamelModel


class BookingCreate(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    number_of_tickets: Optional[Union[int, str]] = Field(default=None)


class BookedEvent(CamelModel):
    id: int
    title: str
    description: str
    date_time: datetime
    location: str
    available_seats: int
    image: Optional[str] = None


class BookingResponse(CamelModel):
    id: int
    user_id: int
    event_id: Optional[int]
    event: Optional[BookedEvent] = None
    attendee_name: str
    attendee_email: str
    attendee_phone: str
    number_of_tickets: int
    status: str
    booking_date: datetime
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None


class BookingEnvelope(CamelModel):
    success: bool = True
    data: BookingResponse
    message: Optional[str] = None


class BookingListResponse(CamelModel):
    success: bool = True
    count: int
    data: list[BookingResponse]


class BookingCancelResult(CamelModel):
    message: str
    booking_id: int
    event_id: Optional[int]
    seats_returned: int


class BookingCancelResponse(CamelModel):
    success: bool = True
    data: BookingCancelResult

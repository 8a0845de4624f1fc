"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import Field

from eventbook.schemas.base import CamelModel


class EventCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    date_time: datetime
    location: str = Field(..., min_length=1, max_length=255)
    total_seats: int = Field(..., gt=0, le=100000)
    # Defaults to total_seats
    available_seats: Optional[int] = Field(None, ge=0)
    image: Optional[str] = Field(None, max_length=500)


class EventUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    date_time: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    total_seats: Optional[int] = Field(None, gt=0, le=100000)
    available_seats: Optional[int] = Field(None, ge=0)
    image: Optional[str] = Field(None, max_length=500)


class EventResponse(CamelModel):
    id: int
    title: str
    description: str
    date_time: datetime
    location: str
    total_seats: int
    available_seats: int
    image: Optional[str]
    user_id: int
    created_at: datetime


class EventEnvelope(CamelModel):
    success: bool = True
    data: EventResponse


class EventListResponse(CamelModel):
    success: bool = True
    count: int
    data: list[EventResponse]
    cached: bool = False

from eventbook.schemas.user import UserCreate, UserResponse, UserLogin, Token
from eventbook.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventEnvelope, EventListResponse,
)
from eventbook.schemas.booking import (
    BookingCreate, BookingResponse, BookingEnvelope, BookingListResponse,
    BookingCancelResult, BookingCancelResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventEnvelope", "EventListResponse",
    "BookingCreate", "BookingResponse", "BookingEnvelope", "BookingListResponse",
    "BookingCancelResult", "BookingCancelResponse",
]

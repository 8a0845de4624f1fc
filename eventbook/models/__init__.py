from eventbook.models.user import User, UserRole
from eventbook.models.event import Event
from eventbook.models.booking import Booking, BookingStatus

__all__ = ["User", "UserRole", "Event", "Booking", "BookingStatus"]

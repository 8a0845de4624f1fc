"""
Domain error taxonomy.

Services raise these; the API layer maps each one to an HTTP status code and a
``{"success": false, "error": ...}`` body (see ``eventbook.api.errors``).
"""

from typing import Optional

from fastapi import status


class BookingAppError(Exception):
    """Base class for every error the services raise on purpose."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BookingAppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class CapacityError(BookingAppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Not enough seats available"


class AuthenticationError(BookingAppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized to access this route"


class AuthorizationError(BookingAppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized to perform this action"


class NotFoundError(BookingAppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(BookingAppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"

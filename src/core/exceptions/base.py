from datetime import datetime
from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id={identifier} not found"
        super().__init__(message=message, status_code=404)


class ValidationError(AppException):
    """Validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, status_code=401)


class AuthorizationError(AppException):
    """Not authorized to perform action."""

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message=message, status_code=403)


class DuplicateError(AppException):
    """Duplicate resource."""

    def __init__(self, resource: str, field: str, value: Any):
        message = f"{resource} with {field}={value} already exists"
        super().__init__(message=message, status_code=409, details={"field": field, "value": value})


class CancellationWindowClosedError(AppException):
    """Subscription can no longer be cancelled: the slot's booking cutoff has passed."""

    def __init__(self, slot_id: int, cutoff: datetime):
        super().__init__(
            message="Cancellation period has ended for this slot.",
            status_code=400,
            details={"slot_id": slot_id, "booking_cutoff_time": cutoff.isoformat()},
        )


class CapacityExceededError(AppException):
    """Slot would be filled beyond its capacity."""

    def __init__(self, slot_id: int, requested: int, available: int):
        message = f"Not enough capacity in slot {slot_id}: requested {requested}L, available {available}L"
        super().__init__(
            message=message,
            status_code=400,
            details={"slot_id": slot_id, "requested": requested, "available": available},
        )

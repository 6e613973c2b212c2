from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """Non-2xx reply from the TurfEase backend."""

    def __init__(
        self,
        status_code: int,
        message: str,
        type: str = "GENERAL_ERROR",
        data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.type = type
        self.data = data or {}


class ServiceError(Exception):
    """User-facing failure raised by the service layer. The message is displayable."""

    def __init__(
        self, message: str, status_code: int | None = None, type: str | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.type = type


class SlotRejected(ValueError):
    pass


class AllocationError(ValueError):
    pass


class OfflineBookingInvalid(ValueError):
    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("Please fix the validation errors before submitting")
        self.errors = errors


class PaymentError(ValueError):
    pass


class CheckInError(ValueError):
    pass


class LocationInvalid(ValueError):
    def __init__(self, errors: list[str]) -> None:
        super().__init__(f"Location validation failed: {', '.join(errors)}")
        self.errors = errors

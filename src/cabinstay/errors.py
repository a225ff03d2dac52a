"""Error taxonomy shared by the engine and the HTTP boundary."""

from __future__ import annotations

from typing import Any


class CabinStayError(Exception):
    """Base class for errors that map onto a response status."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(CabinStayError):
    """A required field is missing or malformed."""

    status_code = 400
    code = "validation_error"


class AuthorizationError(CabinStayError):
    """Missing or invalid identity claim (401) or insufficient role (403)."""

    status_code = 401
    code = "unauthorized"

    def __init__(
        self,
        message: str = "Unauthorized",
        *,
        forbidden: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        if forbidden:
            self.status_code = 403
            self.code = "forbidden"


class NotFoundError(CabinStayError):
    status_code = 404
    code = "not_found"


class BookingConflictError(CabinStayError):
    """The requested dates overlap an existing booking for the cabin."""

    status_code = 409
    code = "booking_conflict"


class DuplicateError(CabinStayError):
    status_code = 409
    code = "duplicate"


class StorageError(CabinStayError):
    """Persistence failed; the operation had no effect."""

    status_code = 500
    code = "storage_error"

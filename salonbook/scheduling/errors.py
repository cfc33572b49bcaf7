"""
Booking errors.

Every error carries the HTTP status the portal endpoints answer with, so the
blueprint can render any of them with a single handler.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

SLOT_TAKEN_MESSAGE = "slot no longer available"


class BookingError(Exception):
    """Base class for all errors raised by the scheduling package."""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.message}


class InvalidInput(BookingError):
    """Malformed or inconsistent request data."""

    status_code = 400


class NotFound(BookingError):
    """A referenced service, professional, client or booking does not exist."""

    status_code = 404


class BookingConflict(BookingError):
    """The requested interval overlaps an active booking."""

    status_code = 409

    def __init__(self, message: str = SLOT_TAKEN_MESSAGE, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class InvalidTransition(BookingError):
    """The booking's state does not allow the requested change."""

    status_code = 409


class StoreUnavailable(BookingError):
    """Reading from or writing to the database failed."""

    status_code = 500

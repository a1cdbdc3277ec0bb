"""Exceptions raised by the reservation core."""
from __future__ import annotations

from typing import Dict


class RoombookError(Exception):
    """Base class for every error raised by the core."""


class ValidationFailed(RoombookError):
    def __init__(self, errors: Dict[str, str]) -> None:
        super().__init__("; ".join(f"{field}: {message}" for field, message in errors.items()))
        self.errors = errors


class ReservationConflict(RoombookError):
    """The persistence layer refused a reservation that overlaps an existing one."""


class PersistenceError(RoombookError):
    """Raw failure talking to the database."""


class StoreUnavailable(RoombookError):
    """User-facing, retryable failure raised instead of a PersistenceError."""

    default_message = "Could not save your changes right now. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class RoomNotFound(RoombookError):
    pass


class ReservationNotFound(RoombookError):
    pass

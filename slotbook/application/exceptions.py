from __future__ import annotations

from collections.abc import Iterable


class SchedulingError(RuntimeError):
    """Base class for errors raised by the scheduling core."""
    pass


class ValidationError(SchedulingError, ValueError):
    """Raised when input is malformed or out of range (caller must correct it)."""
    pass


class SlotConflict(SchedulingError):
    """Raised when the target slot was claimed concurrently. Re-list candidates and retry."""

    def __init__(self, message: str, day=None, slot=None) -> None:
        super().__init__(message)
        self.day = day
        self.slot = slot


class AppointmentNotFound(SchedulingError, LookupError):
    """Raised when the appointment store has no record for an id."""
    pass


class NotEligibleError(SchedulingError):
    """Raised by a transition whose eligibility no longer holds at execution time."""

    def __init__(self, message: str, reasons: Iterable = ()) -> None:
        super().__init__(message)
        self.reasons = tuple(reasons)

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum


class RescheduleReason(str, Enum):
    # blocking
    ALREADY_CANCELLED = "already_cancelled"
    ALREADY_COMPLETED = "already_completed"
    ALREADY_STARTED = "already_started"
    TOO_CLOSE_TO_APPOINTMENT = "too_close_to_appointment"
    # advisory
    SHORT_NOTICE = "short_notice"
    MOVE_UNDER_TWO_HOURS = "move_under_two_hours"
    MOVE_OVER_A_WEEK = "move_over_a_week"
    MOVE_EARLIER = "move_earlier"


@dataclass(frozen=True)
class ReschedulePolicy:
    cutoff_hours: float = 24  # moves are refused this close to the start
    warning_hours: float = 48  # moves inside this window get a short_notice warning
    replacement_lead_hours: float | None = None  # earliest replacement start after now; defaults to cutoff
    short_move_hours: float = 2
    long_move_days: int = 7

    @property
    def effective_replacement_lead_hours(self) -> float:
        if self.replacement_lead_hours is None:
            return self.cutoff_hours
        return self.replacement_lead_hours


@dataclass(frozen=True)
class EligibilityResult:
    allowed: bool
    blocking_reasons: tuple[RescheduleReason, ...]
    warnings: tuple[RescheduleReason, ...]
    min_reschedule_date: date
    deadline: datetime  # last moment a move is still accepted
    hours_until_start: float


@dataclass(frozen=True)
class RescheduleRecord:
    appointment_id: str
    old_date: date
    old_time: time
    new_date: date
    new_time: time
    rescheduled_at: datetime
    rescheduled_by: str | None = None
    reason: str | None = None

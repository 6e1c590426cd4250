from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta



@dataclass(frozen=True)
class SlotGrid:
    """
    Ordered bookable slot starts for any day, plus how far ahead slots may be requested.
    All services share one slot length, so a slot is identified by its start alone.
    """

    times: tuple[time, ...]
    horizon_days: int = 30
    min_lead_minutes: int = 0  # same-day slots must start at least this far after now

    def __post_init__(self) -> None:
        if self.horizon_days < 0:
            raise ValueError("horizon_days must be >= 0")
        if self.min_lead_minutes < 0:
            raise ValueError("min_lead_minutes must be >= 0")
        ordered = tuple(sorted(set(self.times)))
        if ordered != self.times:
            object.__setattr__(self, "times", ordered)

    @classmethod
    def from_working_hours(
        cls,
        work_start: time,
        work_end: time,
        session_minutes: int = 60,
        horizon_days: int = 30,
        min_lead_minutes: int = 0,
    ) -> "SlotGrid":
        """Every session_minutes step from work_start while the whole session fits before work_end."""
        if session_minutes <= 0:
            raise ValueError("session_minutes must be positive")
        if work_end <= work_start:
            raise ValueError("work_end must be after work_start")

        anchor = date(2000, 1, 1)
        current = datetime.combine(anchor, work_start)
        end = datetime.combine(anchor, work_end)
        step = timedelta(minutes=session_minutes)

        times: list[time] = []
        while current + step <= end:
            times.append(current.time())
            current += step

        return cls(times=tuple(times), horizon_days=horizon_days, min_lead_minutes=min_lead_minutes)

    def contains(self, slot: time) -> bool:
        return slot in self.times

    def horizon_end(self, today: date) -> date:
        return today + timedelta(days=self.horizon_days)

    def within_horizon(self, day: date, today: date) -> bool:
        return today <= day <= self.horizon_end(today)

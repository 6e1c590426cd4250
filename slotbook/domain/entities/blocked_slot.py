from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time


@dataclass(frozen=True)
class BlockedSlot:
    id: str
    date: date
    time: time | None = None  # None blocks the whole day
    reason: str | None = None
    created_at: datetime | None = None

    @property
    def is_whole_day(self) -> bool:
        return self.time is None

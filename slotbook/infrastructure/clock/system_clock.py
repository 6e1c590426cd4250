from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from slotbook.application.ports.clock import ClockPort


class SystemClock(ClockPort):
    """Wall clock in the business time zone, returned as naive local time."""

    def __init__(self, timezone: str = "UTC") -> None:
        self._timezone = _safe_timezone(timezone)

    def now(self) -> datetime:
        return datetime.now(self._timezone).replace(tzinfo=None, microsecond=0)


class FixedClock(ClockPort):
    def __init__(self, instant: datetime) -> None:
        self._instant = instant.replace(tzinfo=None)

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta: float) -> datetime:
        self._instant += timedelta(**delta)
        return self._instant


def _safe_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except Exception:
        return ZoneInfo("UTC")

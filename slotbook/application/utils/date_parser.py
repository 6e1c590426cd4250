from __future__ import annotations

import re
from datetime import date, datetime, time

from slotbook.application.exceptions import ValidationError

DATE_FORMAT = "%Y-%m-%d"  # '2024-06-10'
TIME_FORMAT = "%H:%M"  # '09:00'

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_date(value: date | str) -> date:
    """
    Parse a calendar day given as a date or a 'YYYY-MM-DD' string.
    Datetimes are rejected: a slot day carries no time-of-day component.
    """
    if isinstance(value, datetime):
        raise ValidationError(f"Expected a calendar date, got datetime {value.isoformat()}")
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Expected 'YYYY-MM-DD', got {type(value).__name__}")

    text = value.strip()
    if not _DATE_RE.match(text):
        raise ValidationError(f"Invalid date format {value!r}, use YYYY-MM-DD")
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError as e:
        raise ValidationError(f"Invalid date {value!r}: {e}") from e


def parse_slot_time(value: time | str) -> time:
    """
    Parse a slot start given as a time or an 'HH:MM' 24-hour string.
    Database-style 'HH:MM:SS' values are accepted and truncated to minutes.
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise ValidationError(f"Expected 'HH:MM', got {type(value).__name__}")

    match = _TIME_RE.match(value.strip())
    if not match:
        raise ValidationError(f"Invalid time format {value!r}, use HH:MM (24-hour)")

    hour = int(match.group(1))
    minute = int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValidationError(f"Time out of range: {value!r}")
    return time(hour, minute)


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def format_slot_time(value: time) -> str:
    return value.strftime(TIME_FORMAT)

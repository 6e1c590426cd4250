from enum import Enum


class ReminderKind(str, Enum):
    DAY_BEFORE = "24h"
    HOUR_BEFORE = "1h"

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum


class AppointmentStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})


@dataclass(frozen=True)
class Appointment:
    id: str
    date: date
    time: time  # slot start, always a value from the grid
    status: AppointmentStatus = AppointmentStatus.PENDING_PAYMENT
    client_ref: str | None = None
    product_ref: str | None = None
    amount: Decimal | None = None
    created_at: datetime | None = None
    cancelled_at: datetime | None = None
    paid_at: datetime | None = None
    reminder_24h_sent: bool = False
    reminder_1h_sent: bool = False
    notes: str | None = None
    version: int = 0  # bumped by the store on every write

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.time)

    @property
    def is_live(self) -> bool:
        """Live appointments hold their slot; only cancellation frees it."""
        return self.status != AppointmentStatus.CANCELLED

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def slot_key(self) -> tuple[date, time]:
        return (self.date, self.time)

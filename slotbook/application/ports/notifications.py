from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from slotbook.domain.entities.appointment import Appointment


class NotificationPort(ABC):
    @abstractmethod
    def notify(self, event: str, appointment: Appointment, **context: Any) -> None:
        """Deliver a notification about an appointment event (fire-and-forget)."""
        raise NotImplementedError

from __future__ import annotations

import logging
from typing import Any

from slotbook.application.ports.notifications import NotificationPort
from slotbook.application.utils.date_parser import format_date, format_slot_time
from slotbook.domain.entities.appointment import Appointment


class LoggingNotifier(NotificationPort):
    """Stands in for email/chat delivery: records each event in the log."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def notify(self, event: str, appointment: Appointment, **context: Any) -> None:
        self._logger.info(
            "Notification",
            extra={
                "event": event,
                "appointment_id": appointment.id,
                "date": format_date(appointment.date),
                "time": format_slot_time(appointment.time),
                "status": appointment.status.value,
            },
        )

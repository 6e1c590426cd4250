from __future__ import annotations

import logging
from typing import Any

from slotbook.application.ports.notifications import NotificationPort
from slotbook.domain.entities.appointment import Appointment

logger = logging.getLogger(__name__)


def notify_best_effort(
    notifier: NotificationPort | None,
    event: str,
    appointment: Appointment,
    **context: Any,
) -> bool:
    """
    Hand an event to the dispatcher. A failing dispatcher never undoes or blocks
    the scheduling outcome that triggered it. Returns True if delivery was accepted.
    """
    if notifier is None:
        return False
    try:
        notifier.notify(event, appointment, **context)
        return True
    except Exception as e:
        logger.warning(
            "Notification dispatch failed",
            extra={"event": event, "appointment_id": appointment.id, "error": str(e)},
        )
        return False

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta

from slotbook.application.exceptions import SlotConflict
from slotbook.application.ports.appointment_store import AppointmentStorePort
from slotbook.application.ports.clock import ClockPort
from slotbook.application.ports.notifications import NotificationPort
from slotbook.application.utils.notify import notify_best_effort
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus
from slotbook.domain.entities.reminder import ReminderKind


class ReminderUseCase:
    """
    Picks confirmed appointments that are due a reminder:
      - 24h: appointments dated tomorrow
      - 1h: appointments today starting between now+1h and now+2h
    Each appointment is flagged before dispatch, so a reminder kind goes out at most once.
    """

    def __init__(
        self,
        appointments: AppointmentStorePort,
        clock: ClockPort,
        notifier: NotificationPort | None = None,
    ) -> None:
        self._appointments = appointments
        self._clock = clock
        self._notifier = notifier
        self._logger = logging.getLogger(__name__)

    def due(self) -> list[tuple[ReminderKind, Appointment]]:
        now = self._clock.now()
        tomorrow = now.date() + timedelta(days=1)
        window_start = now + timedelta(hours=1)
        window_end = now + timedelta(hours=2)

        due: list[tuple[ReminderKind, Appointment]] = []
        for appointment in self._appointments.list_by_date_range(now.date(), tomorrow):
            if appointment.status != AppointmentStatus.CONFIRMED:
                continue
            if appointment.date == tomorrow and not appointment.reminder_24h_sent:
                due.append((ReminderKind.DAY_BEFORE, appointment))
            elif (
                appointment.date == now.date()
                and not appointment.reminder_1h_sent
                and window_start <= appointment.starts_at <= window_end
            ):
                due.append((ReminderKind.HOUR_BEFORE, appointment))
        return due

    def dispatch_due(self) -> list[tuple[ReminderKind, Appointment]]:
        sent: list[tuple[ReminderKind, Appointment]] = []
        for kind, appointment in self.due():
            try:
                flagged = self._appointments.transition(
                    appointment.id,
                    lambda current, kind=kind: _flag(current, kind),
                    expected_version=appointment.version,
                )
            except SlotConflict:
                # changed since listing (moved or cancelled); next run re-evaluates it
                self._logger.info(
                    "Reminder skipped, appointment changed",
                    extra={"appointment_id": appointment.id, "event": kind.value},
                )
                continue
            notify_best_effort(self._notifier, f"reminder_{kind.value}", flagged)
            sent.append((kind, flagged))

        if sent:
            self._logger.info("Reminders dispatched", extra={"count": len(sent)})
        return sent


def _flag(appointment: Appointment, kind: ReminderKind) -> Appointment:
    if kind == ReminderKind.DAY_BEFORE:
        return replace(appointment, reminder_24h_sent=True)
    return replace(appointment, reminder_1h_sent=True)

"""
Tests for reminder selection and dispatch.
"""

from __future__ import annotations

from datetime import date, datetime, time

from slotbook.application.ports.notifications import NotificationPort
from slotbook.application.use_cases.reminders import ReminderUseCase
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus
from slotbook.domain.entities.reminder import ReminderKind
from slotbook.infrastructure.clock.system_clock import FixedClock
from slotbook.infrastructure.store.memory_store import MemoryAppointmentStore

NOW = datetime(2024, 6, 1, 10, 0)
TODAY = date(2024, 6, 1)
TOMORROW = date(2024, 6, 2)


class _RecordingNotifier(NotificationPort):
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def notify(self, event, appointment, **context):
        self.sent.append((event, appointment.id))


def _store():
    confirmed = AppointmentStatus.CONFIRMED
    return MemoryAppointmentStore(
        [
            Appointment(id="tomorrow", date=TOMORROW, time=time(15), status=confirmed),
            Appointment(id="soon", date=TODAY, time=time(11, 30), status=confirmed),
            Appointment(id="later", date=TODAY, time=time(13), status=confirmed),
            Appointment(id="unpaid", date=TOMORROW, time=time(9)),
            Appointment(id="cancelled", date=TOMORROW, time=time(10), status=AppointmentStatus.CANCELLED),
            Appointment(id="sent", date=TOMORROW, time=time(11), status=confirmed, reminder_24h_sent=True),
        ]
    )


def test_due_picks_confirmed_appointments_in_window():
    reminders = ReminderUseCase(_store(), FixedClock(NOW))

    due = {(kind, appointment.id) for kind, appointment in reminders.due()}

    assert due == {(ReminderKind.DAY_BEFORE, "tomorrow"), (ReminderKind.HOUR_BEFORE, "soon")}


def test_dispatch_flags_and_sends_once():
    store = _store()
    notifier = _RecordingNotifier()
    reminders = ReminderUseCase(store, FixedClock(NOW), notifier)

    sent = reminders.dispatch_due()

    assert len(sent) == 2
    assert store.get("tomorrow").reminder_24h_sent
    assert store.get("soon").reminder_1h_sent
    assert sorted(notifier.sent) == [("reminder_1h", "soon"), ("reminder_24h", "tomorrow")]
    assert reminders.dispatch_due() == []


def test_one_hour_window_follows_clock():
    store = _store()
    clock = FixedClock(NOW)
    reminders = ReminderUseCase(store, clock)

    assert clock.advance(hours=1, minutes=1) == datetime(2024, 6, 1, 11, 1)
    due = [(kind, a.id) for kind, a in reminders.due() if kind == ReminderKind.HOUR_BEFORE]
    assert due == [(ReminderKind.HOUR_BEFORE, "later")]

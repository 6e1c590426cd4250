"""
Tests for rescheduling: eligibility, candidate slots and the atomic move.
"""

from __future__ import annotations

from datetime import date, datetime, time

import pytest

from slotbook.application.exceptions import AppointmentNotFound, NotEligibleError, SlotConflict, ValidationError
from slotbook.application.ports.notifications import NotificationPort
from slotbook.application.use_cases.availability import AvailabilityResolver
from slotbook.application.use_cases.reschedule import RescheduleCoordinator, assess_target, check_eligibility
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus
from slotbook.domain.entities.blocked_slot import BlockedSlot
from slotbook.domain.entities.reschedule import RescheduleReason, ReschedulePolicy
from slotbook.domain.entities.slot_grid import SlotGrid
from slotbook.infrastructure.clock.system_clock import FixedClock
from slotbook.infrastructure.store.memory_store import MemoryAppointmentStore, MemoryBlockedSlotStore

NOW = datetime(2024, 6, 1, 10, 0)
GRID = SlotGrid(times=tuple(time(h) for h in range(9, 18)))


def _appt(appointment_id: str, day: date, hour: int, status=AppointmentStatus.CONFIRMED, **kwargs) -> Appointment:
    return Appointment(id=appointment_id, date=day, time=time(hour), status=status, **kwargs)


def _build(appointments, blocks=None, notifier=None, store=None):
    clock = FixedClock(NOW)
    store = store or MemoryAppointmentStore(appointments)
    resolver = AvailabilityResolver(store, MemoryBlockedSlotStore(blocks), GRID, clock)
    coordinator = RescheduleCoordinator(store, resolver, clock, notifier=notifier)
    return coordinator, store, resolver


class _RecordingNotifier(NotificationPort):
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def notify(self, event, appointment, **context):
        self.sent.append((event, appointment.id))


class _BrokenNotifier(NotificationPort):
    def notify(self, event, appointment, **context):
        raise RuntimeError("smtp down")


class _RacingStore(MemoryAppointmentStore):
    """Another client claims a slot right before the next transition is written."""

    def __init__(self, appointments, competitor: Appointment) -> None:
        super().__init__(appointments)
        self._competitor = competitor

    def transition(self, appointment_id, mutation, expected_version=None):
        if self._competitor is not None:
            competitor, self._competitor = self._competitor, None
            self.add(competitor)
        return super().transition(appointment_id, mutation, expected_version)


def test_far_future_appointment_is_eligible():
    result = check_eligibility(_appt("a1", date(2024, 6, 10), 11), NOW)

    assert result.allowed
    assert result.blocking_reasons == ()
    assert result.warnings == ()
    assert result.min_reschedule_date == date(2024, 6, 2)
    assert result.deadline == datetime(2024, 6, 9, 11, 0)
    assert result.hours_until_start == pytest.approx(217.0)


def test_terminal_appointments_are_never_eligible():
    """Cancelled and completed are rejected regardless of how far away they are."""
    cancelled = check_eligibility(_appt("a1", date(2024, 6, 20), 11, status=AppointmentStatus.CANCELLED), NOW)
    completed = check_eligibility(_appt("a2", date(2024, 6, 20), 11, status=AppointmentStatus.COMPLETED), NOW)

    assert not cancelled.allowed
    assert cancelled.blocking_reasons == (RescheduleReason.ALREADY_CANCELLED,)
    assert not completed.allowed
    assert completed.blocking_reasons == (RescheduleReason.ALREADY_COMPLETED,)


def test_cutoff_window_blocks_rescheduling():
    """23 hours ahead is inside the 24 hour cutoff; exactly 24 hours is still allowed."""
    inside = check_eligibility(_appt("a1", date(2024, 6, 2), 9), NOW)
    boundary = check_eligibility(_appt("a2", date(2024, 6, 2), 10), NOW)

    assert not inside.allowed
    assert inside.blocking_reasons == (RescheduleReason.TOO_CLOSE_TO_APPOINTMENT,)
    assert boundary.allowed
    assert boundary.warnings == (RescheduleReason.SHORT_NOTICE,)


def test_started_appointment_is_rejected():
    result = check_eligibility(_appt("a1", date(2024, 6, 1), 9), NOW)

    assert not result.allowed
    assert result.blocking_reasons == (RescheduleReason.ALREADY_STARTED,)
    assert result.hours_until_start == 0.0


def test_short_notice_is_a_warning_only():
    result = check_eligibility(_appt("a1", date(2024, 6, 2), 16), NOW)

    assert result.allowed
    assert result.blocking_reasons == ()
    assert result.warnings == (RescheduleReason.SHORT_NOTICE,)


def test_pending_payment_is_eligible():
    result = check_eligibility(_appt("a1", date(2024, 6, 10), 11, status=AppointmentStatus.PENDING_PAYMENT), NOW)
    assert result.allowed


def test_custom_cutoff_policy():
    policy = ReschedulePolicy(cutoff_hours=2, warning_hours=4)
    result = check_eligibility(_appt("a1", date(2024, 6, 1), 13), NOW, policy)

    assert result.allowed
    assert result.warnings == (RescheduleReason.SHORT_NOTICE,)
    assert result.min_reschedule_date == date(2024, 6, 1)


def test_own_slot_is_offered_again_on_its_date():
    a1 = _appt("a1", date(2024, 6, 10), 11)
    a2 = _appt("a2", date(2024, 6, 10), 12)
    a3 = _appt("a3", date(2024, 6, 11), 11)
    coordinator, _, resolver = _build([a1, a2, a3])

    same_day = coordinator.list_candidate_slots(a1, "2024-06-10")
    other_day = coordinator.list_candidate_slots(a1, date(2024, 6, 11))

    assert time(11) in same_day
    assert time(12) not in same_day
    assert time(11) not in resolver.available_slots(date(2024, 6, 10))
    assert time(11) not in other_day
    assert time(12) in other_day


def test_own_slot_stays_hidden_when_blocked():
    a1 = _appt("a1", date(2024, 6, 10), 11)
    coordinator, _, _ = _build([a1], blocks=[BlockedSlot(id="b1", date=date(2024, 6, 10), time=time(11))])

    assert time(11) not in coordinator.list_candidate_slots(a1, date(2024, 6, 10))


def test_candidates_respect_replacement_lead():
    a1 = _appt("a1", date(2024, 6, 10), 11)
    coordinator, _, _ = _build([a1])

    assert coordinator.list_candidate_slots(a1, date(2024, 5, 31)) == []
    assert coordinator.list_candidate_slots(a1, date(2024, 6, 1)) == []
    assert coordinator.list_candidate_slots(a1, date(2024, 6, 2)) == [time(h) for h in range(10, 18)]
    assert coordinator.list_candidate_slots(a1, date(2024, 7, 2)) == []


def test_reschedule_moves_appointment_and_frees_old_slot():
    notifier = _RecordingNotifier()
    a1 = _appt("a1", date(2024, 6, 10), 11, reminder_24h_sent=True)
    coordinator, store, resolver = _build([a1], notifier=notifier)

    moved = coordinator.reschedule("a1", "2024-06-11", "14:00", rescheduled_by="client", reason="work")

    assert moved.slot_key == (date(2024, 6, 11), time(14))
    assert moved.status == AppointmentStatus.CONFIRMED
    assert moved.version == 1
    assert moved.reminder_24h_sent is False
    assert store.get("a1") == moved
    assert time(11) in resolver.available_slots(date(2024, 6, 10))
    assert time(14) not in resolver.available_slots(date(2024, 6, 11))
    assert notifier.sent == [("appointment_rescheduled", "a1")]

    history = coordinator.history("a1")
    assert len(history) == 1
    assert (history[0].old_date, history[0].old_time) == (date(2024, 6, 10), time(11))
    assert (history[0].new_date, history[0].new_time) == (date(2024, 6, 11), time(14))
    assert history[0].rescheduled_at == NOW
    assert history[0].rescheduled_by == "client"
    assert history[0].reason == "work"


def test_reschedule_keeps_pending_status():
    a1 = _appt("a1", date(2024, 6, 10), 11, status=AppointmentStatus.PENDING_PAYMENT)
    coordinator, _, _ = _build([a1])

    moved = coordinator.reschedule("a1", date(2024, 6, 10), time(15))
    assert moved.status == AppointmentStatus.PENDING_PAYMENT


def test_reschedule_to_taken_slot_raises_conflict():
    a1 = _appt("a1", date(2024, 6, 10), 11)
    a2 = _appt("a2", date(2024, 6, 11), 14)
    coordinator, store, _ = _build([a1, a2])

    with pytest.raises(SlotConflict):
        coordinator.reschedule("a1", "2024-06-11", "14:00")

    assert store.get("a1").slot_key == (date(2024, 6, 10), time(11))
    assert coordinator.history("a1") == []


def test_reschedule_to_unoffered_slot_raises_validation_error():
    a1 = _appt("a1", date(2024, 6, 10), 11)
    coordinator, store, _ = _build([a1], blocks=[BlockedSlot(id="b1", date=date(2024, 6, 11), time=time(14))])

    with pytest.raises(ValidationError):
        coordinator.reschedule("a1", "2024-06-11", "14:00")
    with pytest.raises(ValidationError):
        coordinator.reschedule("a1", "2024-06-11", "11:30")
    with pytest.raises(ValidationError):
        coordinator.reschedule("a1", "2024-06-02", "09:00")
    with pytest.raises(ValidationError):
        coordinator.reschedule("a1", "2024-06-10", "11:00")
    with pytest.raises(ValidationError):
        coordinator.reschedule("a1", "11.06.2024", "12:00")

    assert store.get("a1").version == 0


def test_reschedule_rechecks_eligibility():
    a1 = _appt("a1", date(2024, 6, 2), 9)
    coordinator, store, _ = _build([a1])

    with pytest.raises(NotEligibleError) as exc_info:
        coordinator.reschedule("a1", "2024-06-10", "12:00")

    assert exc_info.value.reasons == (RescheduleReason.TOO_CLOSE_TO_APPOINTMENT,)
    assert store.get("a1").slot_key == (date(2024, 6, 2), time(9))


def test_reschedule_unknown_appointment():
    coordinator, _, _ = _build([])

    with pytest.raises(AppointmentNotFound):
        coordinator.reschedule("missing", "2024-06-10", "12:00")
    with pytest.raises(AppointmentNotFound):
        coordinator.history("missing")


def test_slot_claimed_during_move_raises_conflict():
    """The competing claim lands between validation and the write; the move loses cleanly."""
    a1 = _appt("a1", date(2024, 6, 10), 11)
    competitor = _appt("c1", date(2024, 6, 11), 14)
    store = _RacingStore([a1], competitor)
    coordinator, _, resolver = _build([], store=store)

    with pytest.raises(SlotConflict):
        coordinator.reschedule("a1", "2024-06-11", "14:00")

    assert store.get("a1").slot_key == (date(2024, 6, 10), time(11))
    live_at_target = [a for a in store.list_by_date(date(2024, 6, 11)) if a.is_live and a.time == time(14)]
    assert [a.id for a in live_at_target] == ["c1"]
    assert coordinator.history("a1") == []


def test_stale_version_is_rejected_by_store():
    store = MemoryAppointmentStore([_appt("a1", date(2024, 6, 10), 11)])
    store.transition("a1", lambda current: current)

    with pytest.raises(SlotConflict):
        store.transition("a1", lambda current: current, expected_version=0)
    assert store.get("a1").version == 1


def test_failing_notifier_does_not_undo_move():
    a1 = _appt("a1", date(2024, 6, 10), 11)
    coordinator, store, _ = _build([a1], notifier=_BrokenNotifier())

    moved = coordinator.reschedule("a1", "2024-06-12", "10:00")

    assert store.get("a1") == moved
    assert len(coordinator.history("a1")) == 1


def test_two_moves_into_same_slot_only_one_wins():
    a1 = _appt("a1", date(2024, 6, 10), 11)
    a2 = _appt("a2", date(2024, 6, 10), 12)
    coordinator, store, _ = _build([a1, a2])

    coordinator.reschedule("a1", "2024-06-12", "10:00")
    with pytest.raises(SlotConflict):
        coordinator.reschedule("a2", "2024-06-12", "10:00")

    live = [a for a in store.list_by_date(date(2024, 6, 12)) if a.is_live and a.time == time(10)]
    assert [a.id for a in live] == ["a1"]


def test_assess_target_warnings():
    a1 = _appt("a1", date(2024, 6, 10), 11)

    assert assess_target(a1, date(2024, 6, 10), time(12)) == (RescheduleReason.MOVE_UNDER_TWO_HOURS,)
    assert assess_target(a1, date(2024, 6, 20), time(11)) == (RescheduleReason.MOVE_OVER_A_WEEK,)
    assert assess_target(a1, date(2024, 6, 9), time(11)) == (RescheduleReason.MOVE_EARLIER,)
    assert assess_target(a1, date(2024, 6, 12), time(11)) == ()

    coordinator, _, _ = _build([a1])
    assert coordinator.assess_target(a1, "2024-06-10", "10:00") == (
        RescheduleReason.MOVE_UNDER_TWO_HOURS,
        RescheduleReason.MOVE_EARLIER,
    )

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time, timedelta

from slotbook.application.exceptions import NotEligibleError, SlotConflict, ValidationError
from slotbook.application.ports.appointment_store import AppointmentStorePort
from slotbook.application.ports.clock import ClockPort
from slotbook.application.ports.notifications import NotificationPort
from slotbook.application.use_cases.availability import AvailabilityResolver
from slotbook.application.utils.date_parser import format_date, format_slot_time, parse_date, parse_slot_time
from slotbook.application.utils.notify import notify_best_effort
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus
from slotbook.domain.entities.reschedule import (
    EligibilityResult,
    RescheduleReason,
    RescheduleRecord,
    ReschedulePolicy,
)


def check_eligibility(
    appointment: Appointment,
    now: datetime,
    policy: ReschedulePolicy | None = None,
) -> EligibilityResult:
    """
    Decide whether an appointment may be moved at `now`.

    Only status and time rules live here; the caller has already established that
    the actor owns the appointment or is an administrator. A rejection is ordinary
    return data (blocking_reasons), never an exception.
    """
    policy = policy or ReschedulePolicy()
    start = appointment.starts_at
    until_start = start - now
    hours_until_start = max(0.0, until_start.total_seconds() / 3600)

    blocking: list[RescheduleReason] = []
    warnings: list[RescheduleReason] = []

    if appointment.status == AppointmentStatus.CANCELLED:
        blocking.append(RescheduleReason.ALREADY_CANCELLED)
    elif appointment.status == AppointmentStatus.COMPLETED:
        blocking.append(RescheduleReason.ALREADY_COMPLETED)
    elif until_start <= timedelta(0):
        blocking.append(RescheduleReason.ALREADY_STARTED)
    elif until_start < timedelta(hours=policy.cutoff_hours):
        blocking.append(RescheduleReason.TOO_CLOSE_TO_APPOINTMENT)
    elif until_start < timedelta(hours=policy.warning_hours):
        warnings.append(RescheduleReason.SHORT_NOTICE)

    earliest_replacement = now + timedelta(hours=policy.effective_replacement_lead_hours)
    return EligibilityResult(
        allowed=not blocking,
        blocking_reasons=tuple(blocking),
        warnings=tuple(warnings),
        min_reschedule_date=max(now.date(), earliest_replacement.date()),
        deadline=start - timedelta(hours=policy.cutoff_hours),
        hours_until_start=hours_until_start,
    )


def assess_target(
    appointment: Appointment,
    new_date: date,
    new_time: time,
    policy: ReschedulePolicy | None = None,
) -> tuple[RescheduleReason, ...]:
    """Advisory warnings about a proposed move, relative to the original start."""
    policy = policy or ReschedulePolicy()
    target = datetime.combine(new_date, new_time)
    original = appointment.starts_at
    distance = abs(target - original)

    warnings: list[RescheduleReason] = []
    if distance < timedelta(hours=policy.short_move_hours):
        warnings.append(RescheduleReason.MOVE_UNDER_TWO_HOURS)
    if distance > timedelta(days=policy.long_move_days):
        warnings.append(RescheduleReason.MOVE_OVER_A_WEEK)
    if target < original:
        warnings.append(RescheduleReason.MOVE_EARLIER)
    return tuple(warnings)


class RescheduleCoordinator:
    def __init__(
        self,
        appointments: AppointmentStorePort,
        resolver: AvailabilityResolver,
        clock: ClockPort,
        policy: ReschedulePolicy | None = None,
        notifier: NotificationPort | None = None,
    ) -> None:
        self._appointments = appointments
        self._resolver = resolver
        self._clock = clock
        self._policy = policy or ReschedulePolicy()
        self._notifier = notifier
        self._logger = logging.getLogger(__name__)

    def get(self, appointment_id: str) -> Appointment:
        return self._appointments.get(appointment_id)

    def check_eligibility(self, appointment: Appointment, now: datetime | None = None) -> EligibilityResult:
        return check_eligibility(appointment, now or self._clock.now(), self._policy)

    def list_candidate_slots(self, appointment: Appointment, target_date: date | str) -> list[time]:
        """
        Free slots on target_date that the appointment could move to.

        The appointment is left out of the snapshot, so on its own date its current
        slot is offered again instead of looking taken by itself. Replacement slots
        must start at least the policy's replacement lead after now.
        """
        target_date = parse_date(target_date)
        now = self._clock.now()
        earliest = now + timedelta(hours=self._policy.effective_replacement_lead_hours)
        if target_date < max(now.date(), earliest.date()):
            return []

        slots = self._resolver.available_slots(target_date, exclude_appointment_id=appointment.id)
        return [s for s in slots if datetime.combine(target_date, s) >= earliest]

    def assess_target(self, appointment: Appointment, new_date: date | str, new_time: time | str) -> tuple[RescheduleReason, ...]:
        return assess_target(appointment, parse_date(new_date), parse_slot_time(new_time), self._policy)

    def reschedule(
        self,
        appointment_id: str,
        new_date: date | str,
        new_time: time | str,
        rescheduled_by: str | None = None,
        reason: str | None = None,
    ) -> Appointment:
        """
        Move an appointment to (new_date, new_time) in one atomic store write.

        Everything is re-checked at execution time because the candidate list may be
        stale. Raises NotEligibleError, ValidationError (slot never offered) or
        SlotConflict (slot claimed by someone else). Status is left unchanged.
        """
        new_date = parse_date(new_date)
        new_time = parse_slot_time(new_time)
        appointment = self._appointments.get(appointment_id)

        eligibility = self.check_eligibility(appointment)
        if not eligibility.allowed:
            raise NotEligibleError(
                f"Appointment {appointment_id} cannot be rescheduled",
                eligibility.blocking_reasons,
            )

        if (new_date, new_time) == appointment.slot_key:
            raise ValidationError("Appointment is already at this slot")
        if not self._resolver.grid.contains(new_time):
            raise ValidationError(f"{format_slot_time(new_time)} is not on the slot grid")
        if self._resolver.is_taken(new_date, new_time, exclude_appointment_id=appointment.id):
            self._log_conflict(appointment, new_date, new_time)
            raise SlotConflict("Slot is already taken", new_date, new_time)
        if new_time not in self.list_candidate_slots(appointment, new_date):
            raise ValidationError(
                f"{format_date(new_date)} {format_slot_time(new_time)} is not available for rescheduling"
            )

        def move(current: Appointment) -> Appointment:
            return replace(
                current,
                date=new_date,
                time=new_time,
                reminder_24h_sent=False,
                reminder_1h_sent=False,
            )

        try:
            updated = self._appointments.transition(appointment.id, move, expected_version=appointment.version)
        except SlotConflict:
            self._log_conflict(appointment, new_date, new_time)
            raise

        self._appointments.record_reschedule(
            RescheduleRecord(
                appointment_id=appointment.id,
                old_date=appointment.date,
                old_time=appointment.time,
                new_date=new_date,
                new_time=new_time,
                rescheduled_at=self._clock.now(),
                rescheduled_by=rescheduled_by,
                reason=reason,
            )
        )
        self._logger.info(
            "Appointment rescheduled",
            extra={
                "appointment_id": appointment.id,
                "date": format_date(new_date),
                "time": format_slot_time(new_time),
                "reason": reason,
            },
        )
        notify_best_effort(
            self._notifier,
            "appointment_rescheduled",
            updated,
            old_date=appointment.date,
            old_time=appointment.time,
        )
        return updated

    def history(self, appointment_id: str) -> list[RescheduleRecord]:
        self._appointments.get(appointment_id)
        return self._appointments.list_reschedules(appointment_id)

    def _log_conflict(self, appointment: Appointment, new_date: date, new_time: time) -> None:
        self._logger.warning(
            "Reschedule lost slot race",
            extra={
                "appointment_id": appointment.id,
                "date": format_date(new_date),
                "time": format_slot_time(new_time),
            },
        )

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, time
from decimal import Decimal

from slotbook.application.exceptions import SlotConflict, ValidationError
from slotbook.application.ports.appointment_store import AppointmentStorePort
from slotbook.application.ports.clock import ClockPort
from slotbook.application.ports.notifications import NotificationPort
from slotbook.application.use_cases.availability import AvailabilityResolver
from slotbook.application.use_cases.pricing import PricingEngine
from slotbook.application.utils.date_parser import format_date, format_slot_time, parse_date, parse_slot_time
from slotbook.application.utils.notify import notify_best_effort
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus


class BookingUseCase:
    """Appointment lifecycle: pending_payment -> confirmed -> completed, or cancelled from any live state."""

    def __init__(
        self,
        appointments: AppointmentStorePort,
        resolver: AvailabilityResolver,
        pricing: PricingEngine,
        clock: ClockPort,
        notifier: NotificationPort | None = None,
    ) -> None:
        self._appointments = appointments
        self._resolver = resolver
        self._pricing = pricing
        self._clock = clock
        self._notifier = notifier
        self._logger = logging.getLogger(__name__)

    def book(
        self,
        client_ref: str,
        product_ref: str | None,
        day: date | str,
        slot: time | str,
        unit_price: Decimal | int | str,
        session_count: int = 1,
        special_category_selected: bool = False,
        notes: str | None = None,
    ) -> Appointment:
        day = parse_date(day)
        slot = parse_slot_time(slot)

        if not self._resolver.grid.contains(slot):
            raise ValidationError(f"{format_slot_time(slot)} is not on the slot grid")
        if self._resolver.is_taken(day, slot):
            raise SlotConflict("Slot is already taken", day, slot)
        if slot not in self._resolver.available_slots(day):
            raise ValidationError(f"{format_date(day)} {format_slot_time(slot)} is not available")

        quote = self._pricing.quote(unit_price, session_count, special_category_selected)
        appointment = Appointment(
            id=uuid.uuid4().hex,
            date=day,
            time=slot,
            status=AppointmentStatus.PENDING_PAYMENT,
            client_ref=client_ref,
            product_ref=product_ref,
            amount=quote.total_after_discount,
            created_at=self._clock.now(),
            notes=notes,
        )
        stored = self._appointments.add(appointment)

        self._logger.info(
            "Appointment booked",
            extra={
                "appointment_id": stored.id,
                "date": format_date(day),
                "time": format_slot_time(slot),
                "status": stored.status.value,
            },
        )
        notify_best_effort(self._notifier, "booking_created", stored)
        return stored

    def confirm_payment(self, appointment_id: str) -> Appointment:
        now = self._clock.now()

        def confirm(current: Appointment) -> Appointment:
            if current.status != AppointmentStatus.PENDING_PAYMENT:
                raise ValidationError(f"Cannot confirm payment for a {current.status.value} appointment")
            return replace(current, status=AppointmentStatus.CONFIRMED, paid_at=now)

        updated = self._appointments.transition(appointment_id, confirm)
        self._logger.info(
            "Payment confirmed",
            extra={"appointment_id": updated.id, "status": updated.status.value},
        )
        notify_best_effort(self._notifier, "payment_confirmed", updated)
        return updated

    def cancel(self, appointment_id: str, reason: str | None = None) -> Appointment:
        """Cancel a live appointment; its slot becomes free for everyone else."""
        now = self._clock.now()

        def cancel(current: Appointment) -> Appointment:
            if current.is_terminal:
                raise ValidationError(f"Cannot cancel a {current.status.value} appointment")
            return replace(current, status=AppointmentStatus.CANCELLED, cancelled_at=now)

        updated = self._appointments.transition(appointment_id, cancel)
        self._logger.info(
            "Appointment cancelled",
            extra={"appointment_id": updated.id, "reason": reason},
        )
        notify_best_effort(self._notifier, "appointment_cancelled", updated, reason=reason)
        return updated

    def complete_elapsed(self, since: date | None = None) -> list[Appointment]:
        """
        Mark confirmed appointments whose start has passed as completed.

        Without `since` every earlier date is scanned. An appointment changed between
        listing and writing is skipped and picked up by the next run.
        """
        now = self._clock.now()
        since = since or date.min

        completed: list[Appointment] = []
        for appointment in self._appointments.list_by_date_range(since, now.date()):
            if appointment.status != AppointmentStatus.CONFIRMED or appointment.starts_at > now:
                continue
            try:
                updated = self._appointments.transition(
                    appointment.id,
                    lambda current: replace(current, status=AppointmentStatus.COMPLETED),
                    expected_version=appointment.version,
                )
            except SlotConflict:
                self._logger.info(
                    "Completion skipped, appointment changed",
                    extra={"appointment_id": appointment.id},
                )
                continue
            completed.append(updated)
        if completed:
            self._logger.info("Completed elapsed appointments", extra={"count": len(completed)})
        return completed

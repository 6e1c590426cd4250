from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, time

from slotbook.application.exceptions import AppointmentNotFound, SlotConflict
from slotbook.application.ports.appointment_store import AppointmentMutation, AppointmentStorePort
from slotbook.application.ports.blocked_slot_store import BlockedSlotStorePort
from slotbook.domain.entities.appointment import Appointment
from slotbook.domain.entities.blocked_slot import BlockedSlot
from slotbook.domain.entities.reschedule import RescheduleRecord


class MemoryAppointmentStore(AppointmentStorePort):
    def __init__(self, appointments: list[Appointment] | None = None) -> None:
        self._appointments: dict[str, Appointment] = {}
        self._reschedules: dict[str, list[RescheduleRecord]] = {}
        self._lock = threading.Lock()
        for appointment in appointments or []:
            self.add(appointment)

    def list_by_date(self, day: date) -> list[Appointment]:
        with self._lock:
            return sorted(
                (a for a in self._appointments.values() if a.date == day),
                key=lambda a: a.time,
            )

    def list_by_date_range(self, start: date, end: date) -> list[Appointment]:
        with self._lock:
            return sorted(
                (a for a in self._appointments.values() if start <= a.date <= end),
                key=lambda a: (a.date, a.time),
            )

    def get(self, appointment_id: str) -> Appointment:
        with self._lock:
            return self._get_without_lock(appointment_id)

    def add(self, appointment: Appointment) -> Appointment:
        with self._lock:
            if appointment.id in self._appointments:
                raise SlotConflict(f"Appointment {appointment.id} already exists")
            self._ensure_slot_free(appointment)
            self._appointments[appointment.id] = appointment
            return appointment

    def transition(
        self,
        appointment_id: str,
        mutation: AppointmentMutation,
        expected_version: int | None = None,
    ) -> Appointment:
        with self._lock:
            current = self._get_without_lock(appointment_id)
            if expected_version is not None and current.version != expected_version:
                raise SlotConflict(f"Appointment {appointment_id} was modified concurrently")

            updated = replace(mutation(current), id=current.id, version=current.version + 1)
            self._ensure_slot_free(updated)
            self._appointments[appointment_id] = updated
            return updated

    def record_reschedule(self, record: RescheduleRecord) -> None:
        with self._lock:
            self._reschedules.setdefault(record.appointment_id, []).append(record)

    def list_reschedules(self, appointment_id: str) -> list[RescheduleRecord]:
        with self._lock:
            records = self._reschedules.get(appointment_id, [])
            return sorted(records, key=lambda r: r.rescheduled_at, reverse=True)

    def _get_without_lock(self, appointment_id: str) -> Appointment:
        try:
            return self._appointments[appointment_id]
        except KeyError:
            raise AppointmentNotFound(f"Appointment {appointment_id} not found") from None

    def _ensure_slot_free(self, candidate: Appointment) -> None:
        """Uniqueness of live (date, time); must be called with the lock held."""
        if not candidate.is_live:
            return
        for other in self._appointments.values():
            if other.id != candidate.id and other.is_live and other.slot_key == candidate.slot_key:
                raise SlotConflict("Slot is already taken", candidate.date, candidate.time)


class MemoryBlockedSlotStore(BlockedSlotStorePort):
    def __init__(self, blocks: list[BlockedSlot] | None = None) -> None:
        self._blocks: dict[str, BlockedSlot] = {}
        self._lock = threading.Lock()
        for block in blocks or []:
            self.add(block)

    def list_by_date_range(self, start: date, end: date) -> list[BlockedSlot]:
        with self._lock:
            return sorted(
                (b for b in self._blocks.values() if start <= b.date <= end),
                key=_block_sort_key,
            )

    def add(self, block: BlockedSlot) -> BlockedSlot:
        with self._lock:
            for existing in list(self._blocks.values()):
                if existing.date == block.date and existing.time == block.time:
                    del self._blocks[existing.id]
            self._blocks[block.id] = block
            return block

    def remove(self, block_id: str) -> bool:
        with self._lock:
            return self._blocks.pop(block_id, None) is not None


def _block_sort_key(block: BlockedSlot):
    # whole-day rows first within a date
    return (block.date, block.time is not None, block.time or time.min)

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta

from slotbook.application.ports.appointment_store import AppointmentStorePort
from slotbook.application.ports.blocked_slot_store import BlockedSlotStorePort
from slotbook.application.ports.clock import ClockPort
from slotbook.application.utils.date_parser import parse_date, parse_slot_time
from slotbook.domain.entities.appointment import Appointment
from slotbook.domain.entities.blocked_slot import BlockedSlot
from slotbook.domain.entities.slot_grid import SlotGrid


def resolve_available_slots(
    day: date | str,
    grid: SlotGrid,
    existing_appointments: Iterable[Appointment],
    blocked_slots: Iterable[BlockedSlot],
    now: datetime,
) -> list[time]:
    """
    Bookable slot starts for a day, in grid order.

    A slot is removed when a live appointment holds it, when it is blocked, or
    (for today) when it starts before now plus the grid's minimum lead. A whole-day
    block empties the day. Days outside [today, today + horizon] have no slots.
    Inputs for other days are ignored, so callers may pass unfiltered snapshots.
    """
    day = parse_date(day)
    today = now.date()
    if not grid.within_horizon(day, today):
        return []

    blocked_times: set[time] = set()
    for block in blocked_slots:
        if block.date != day:
            continue
        if block.is_whole_day:
            return []
        blocked_times.add(block.time)

    taken = {a.time for a in existing_appointments if a.date == day and a.is_live}

    earliest: datetime | None = None
    if day == today:
        earliest = now + timedelta(minutes=grid.min_lead_minutes)

    available: list[time] = []
    for slot in grid.times:
        if slot in taken or slot in blocked_times:
            continue
        if earliest is not None and datetime.combine(day, slot) < earliest:
            continue
        available.append(slot)
    return available


class AvailabilityResolver:
    def __init__(
        self,
        appointments: AppointmentStorePort,
        blocked_slots: BlockedSlotStorePort,
        grid: SlotGrid,
        clock: ClockPort,
    ) -> None:
        self._appointments = appointments
        self._blocked_slots = blocked_slots
        self._grid = grid
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    @property
    def grid(self) -> SlotGrid:
        return self._grid

    def available_slots(self, day: date | str, exclude_appointment_id: str | None = None) -> list[time]:
        """
        Read fresh snapshots for the day and resolve its free slots.
        exclude_appointment_id drops one appointment from the snapshot so its own slot
        is not reported as taken by itself.
        """
        day = parse_date(day)
        appointments = self._appointments.list_by_date(day)
        if exclude_appointment_id is not None:
            appointments = [a for a in appointments if a.id != exclude_appointment_id]
        blocks = self._blocked_slots.list_by_date_range(day, day)

        slots = resolve_available_slots(day, self._grid, appointments, blocks, self._clock.now())
        self._logger.debug(
            "Resolved availability",
            extra={"date": day.isoformat(), "count": len(slots)},
        )
        return slots

    def is_slot_free(
        self,
        day: date | str,
        slot: time | str,
        exclude_appointment_id: str | None = None,
    ) -> bool:
        return parse_slot_time(slot) in self.available_slots(day, exclude_appointment_id)

    def is_taken(self, day: date, slot: time, exclude_appointment_id: str | None = None) -> bool:
        """True if a live appointment other than the excluded one holds (day, slot)."""
        return any(
            a.time == slot and a.is_live and a.id != exclude_appointment_id
            for a in self._appointments.list_by_date(day)
        )

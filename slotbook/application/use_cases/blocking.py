from __future__ import annotations

import logging
import uuid
from datetime import date, time, timedelta

from slotbook.application.exceptions import ValidationError
from slotbook.application.ports.blocked_slot_store import BlockedSlotStorePort
from slotbook.application.ports.clock import ClockPort
from slotbook.application.utils.date_parser import format_date, format_slot_time, parse_date, parse_slot_time
from slotbook.domain.entities.blocked_slot import BlockedSlot
from slotbook.domain.entities.slot_grid import SlotGrid


class BlockingUseCase:
    """Administrator-declared unavailability. Existing appointments are left untouched."""

    def __init__(self, blocked_slots: BlockedSlotStorePort, grid: SlotGrid, clock: ClockPort) -> None:
        self._blocked_slots = blocked_slots
        self._grid = grid
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def block_slot(self, day: date | str, slot: time | str, reason: str | None = None) -> BlockedSlot:
        day = parse_date(day)
        slot = parse_slot_time(slot)
        if not self._grid.contains(slot):
            raise ValidationError(f"{format_slot_time(slot)} is not on the slot grid")

        block = self._blocked_slots.add(
            BlockedSlot(id=uuid.uuid4().hex, date=day, time=slot, reason=reason, created_at=self._clock.now())
        )
        self._logger.info(
            "Slot blocked",
            extra={"date": format_date(day), "time": format_slot_time(slot), "reason": reason},
        )
        return block

    def block_day(self, day: date | str, reason: str | None = None) -> BlockedSlot:
        day = parse_date(day)
        block = self._blocked_slots.add(
            BlockedSlot(id=uuid.uuid4().hex, date=day, time=None, reason=reason, created_at=self._clock.now())
        )
        self._logger.info("Day blocked", extra={"date": format_date(day), "reason": reason})
        return block

    def unblock(self, block_id: str) -> bool:
        removed = self._blocked_slots.remove(block_id)
        if removed:
            self._logger.info("Block removed", extra={"block_id": block_id})
        return removed

    def list_blocks(self, start: date | str, end: date | str) -> list[BlockedSlot]:
        start, end = self._range(start, end)
        return self._blocked_slots.list_by_date_range(start, end)

    def blocked_days(self, start: date | str, end: date | str) -> list[date]:
        """Days with a whole-day block, or with every grid slot blocked individually."""
        start, end = self._range(start, end)
        per_day: dict[date, set[time]] = {}
        whole: set[date] = set()
        for block in self._blocked_slots.list_by_date_range(start, end):
            if block.is_whole_day:
                whole.add(block.date)
            else:
                per_day.setdefault(block.date, set()).add(block.time)

        grid_times = set(self._grid.times)
        days = set(whole)
        for day, times in per_day.items():
            if grid_times and grid_times <= times:
                days.add(day)
        return sorted(days)

    def _range(self, start: date | str, end: date | str) -> tuple[date, date]:
        start = parse_date(start)
        end = parse_date(end)
        if end < start:
            raise ValidationError("end must not be before start")
        if end - start > timedelta(days=366):
            raise ValidationError("range is limited to one year")
        return start, end

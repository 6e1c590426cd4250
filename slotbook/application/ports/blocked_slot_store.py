from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from slotbook.domain.entities.blocked_slot import BlockedSlot


class BlockedSlotStorePort(ABC):
    @abstractmethod
    def list_by_date_range(self, start: date, end: date) -> list[BlockedSlot]:
        """Blocks with start <= date <= end, ordered by date then time (whole-day first)."""
        raise NotImplementedError

    @abstractmethod
    def add(self, block: BlockedSlot) -> BlockedSlot:
        """Insert a block. Re-blocking an already blocked (date, time) replaces it."""
        raise NotImplementedError

    @abstractmethod
    def remove(self, block_id: str) -> bool:
        """Delete a block. Returns True if something was removed."""
        raise NotImplementedError

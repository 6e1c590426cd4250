from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime


class ClockPort(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current naive wall-clock time in the business's local time frame."""
        raise NotImplementedError

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import date

from slotbook.domain.entities.appointment import Appointment
from slotbook.domain.entities.reschedule import RescheduleRecord

AppointmentMutation = Callable[[Appointment], Appointment]


class AppointmentStorePort(ABC):
    @abstractmethod
    def list_by_date(self, day: date) -> list[Appointment]:
        """All appointments on a day, cancelled ones included."""
        raise NotImplementedError

    @abstractmethod
    def list_by_date_range(self, start: date, end: date) -> list[Appointment]:
        """All appointments with start <= date <= end, ordered by (date, time)."""
        raise NotImplementedError

    @abstractmethod
    def get(self, appointment_id: str) -> Appointment:
        """Raises AppointmentNotFound if missing."""
        raise NotImplementedError

    @abstractmethod
    def add(self, appointment: Appointment) -> Appointment:
        """
        Insert a new appointment.
        Raises SlotConflict if a live appointment already holds its (date, time).
        """
        raise NotImplementedError

    @abstractmethod
    def transition(
        self,
        appointment_id: str,
        mutation: AppointmentMutation,
        expected_version: int | None = None,
    ) -> Appointment:
        """
        Apply mutation to the stored appointment in one atomic write and return the result.
        Raises SlotConflict if the result would share a live (date, time) with another
        appointment, or if expected_version no longer matches the stored version.
        """
        raise NotImplementedError

    @abstractmethod
    def record_reschedule(self, record: RescheduleRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_reschedules(self, appointment_id: str) -> list[RescheduleRecord]:
        """Reschedule history for an appointment, newest first."""
        raise NotImplementedError

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from slotbook.application.utils.date_parser import format_date, format_slot_time
from slotbook.domain.entities.appointment import Appointment
from slotbook.domain.entities.pricing import DiscountInput, DiscountPolicy, PricingResult
from slotbook.domain.entities.reschedule import EligibilityResult, RescheduleRecord

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^\d{2}:\d{2}$"


class AppointmentSummaryDTO(BaseModel):
    id: str
    date: str = Field(pattern=DATE_PATTERN)
    time: str = Field(pattern=TIME_PATTERN)
    status: str
    client_ref: str | None = None
    product_ref: str | None = None
    amount: str | None = None

    @classmethod
    def from_entity(cls, appointment: Appointment) -> "AppointmentSummaryDTO":
        return cls(
            id=appointment.id,
            date=format_date(appointment.date),
            time=format_slot_time(appointment.time),
            status=appointment.status.value,
            client_ref=appointment.client_ref,
            product_ref=appointment.product_ref,
            amount=str(appointment.amount) if appointment.amount is not None else None,
        )


class SlotListDTO(BaseModel):
    date: str = Field(pattern=DATE_PATTERN)
    slots: list[str] = Field(default_factory=list)

    @classmethod
    def build(cls, day, slots) -> "SlotListDTO":
        return cls(date=format_date(day), slots=[format_slot_time(s) for s in slots])


class DiscountRequestDTO(BaseModel):
    unit_price: Decimal = Field(ge=0)
    session_count: int = Field(default=1, ge=1)
    special_category_selected: bool = False

    def to_input(self, policy: DiscountPolicy) -> DiscountInput:
        return DiscountInput(
            unit_price=self.unit_price,
            session_count=self.session_count,
            special_category_selected=self.special_category_selected,
            policy=policy,
        )


class PricingResultDTO(BaseModel):
    unit_discount_percent: str
    total_before_discount: str
    total_after_discount: str
    bulk_applied: bool
    category_applied: bool

    @classmethod
    def from_result(cls, result: PricingResult) -> "PricingResultDTO":
        return cls(
            unit_discount_percent=str(result.unit_discount_percent),
            total_before_discount=str(result.total_before_discount),
            total_after_discount=str(result.total_after_discount),
            bulk_applied=result.bulk_applied,
            category_applied=result.category_applied,
        )


class EligibilityDTO(BaseModel):
    allowed: bool
    blocking_reasons: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    min_reschedule_date: str = Field(pattern=DATE_PATTERN)
    deadline: str
    hours_until_start: float

    @classmethod
    def from_result(cls, result: EligibilityResult) -> "EligibilityDTO":
        return cls(
            allowed=result.allowed,
            blocking_reasons=[r.value for r in result.blocking_reasons],
            warnings=[w.value for w in result.warnings],
            min_reschedule_date=format_date(result.min_reschedule_date),
            deadline=result.deadline.isoformat(timespec="minutes"),
            hours_until_start=round(result.hours_until_start, 2),
        )


class RescheduleRecordDTO(BaseModel):
    appointment_id: str
    old_date: str
    old_time: str
    new_date: str
    new_time: str
    rescheduled_at: str
    rescheduled_by: str | None = None
    reason: str | None = None

    @classmethod
    def from_record(cls, record: RescheduleRecord) -> "RescheduleRecordDTO":
        return cls(
            appointment_id=record.appointment_id,
            old_date=format_date(record.old_date),
            old_time=format_slot_time(record.old_time),
            new_date=format_date(record.new_date),
            new_time=format_slot_time(record.new_time),
            rescheduled_at=record.rescheduled_at.isoformat(timespec="minutes"),
            rescheduled_by=record.rescheduled_by,
            reason=record.reason,
        )

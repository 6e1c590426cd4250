from functools import lru_cache
import logging
from decimal import Decimal

from slotbook.core.config import settings
from slotbook.application.ports.appointment_store import AppointmentStorePort
from slotbook.application.ports.blocked_slot_store import BlockedSlotStorePort
from slotbook.application.ports.clock import ClockPort
from slotbook.application.ports.notifications import NotificationPort
from slotbook.application.use_cases.availability import AvailabilityResolver
from slotbook.application.use_cases.blocking import BlockingUseCase
from slotbook.application.use_cases.booking import BookingUseCase
from slotbook.application.use_cases.pricing import PricingEngine
from slotbook.application.use_cases.reminders import ReminderUseCase
from slotbook.application.use_cases.reschedule import RescheduleCoordinator
from slotbook.application.utils.date_parser import parse_slot_time
from slotbook.domain.entities.pricing import DiscountPolicy
from slotbook.domain.entities.reschedule import ReschedulePolicy
from slotbook.domain.entities.slot_grid import SlotGrid
from slotbook.infrastructure.clock.system_clock import SystemClock
from slotbook.infrastructure.notifications.logging_notifier import LoggingNotifier
from slotbook.infrastructure.store.json_store import JsonAppointmentStore, JsonBlockedSlotStore
from slotbook.infrastructure.store.memory_store import MemoryAppointmentStore, MemoryBlockedSlotStore

logger = logging.getLogger(__name__)


def get_clock() -> ClockPort:
    return SystemClock(settings.BUSINESS_TIMEZONE)


@lru_cache
def get_slot_grid() -> SlotGrid:
    return SlotGrid.from_working_hours(
        parse_slot_time(settings.WORK_START),
        parse_slot_time(settings.WORK_END),
        session_minutes=settings.SESSION_DURATION_MINUTES,
        horizon_days=settings.BOOKING_HORIZON_DAYS,
        min_lead_minutes=settings.MIN_LEAD_MINUTES,
    )


def get_discount_policy() -> DiscountPolicy:
    return DiscountPolicy(
        bulk_threshold=settings.BULK_THRESHOLD,
        bulk_percent=Decimal(settings.BULK_DISCOUNT_PERCENT),
        category_percent=Decimal(settings.CATEGORY_DISCOUNT_PERCENT),
        max_combined_percent=Decimal(settings.MAX_COMBINED_DISCOUNT_PERCENT),
    )


def get_reschedule_policy() -> ReschedulePolicy:
    return ReschedulePolicy(
        cutoff_hours=settings.RESCHEDULE_CUTOFF_HOURS,
        warning_hours=settings.RESCHEDULE_WARNING_HOURS,
    )


@lru_cache
def get_appointment_store() -> AppointmentStorePort:
    if settings.STORE_PROVIDER.lower() == "json":
        return JsonAppointmentStore(data_dir=settings.DATA_DIR)
    return MemoryAppointmentStore()


@lru_cache
def get_blocked_slot_store() -> BlockedSlotStorePort:
    if settings.STORE_PROVIDER.lower() == "json":
        return JsonBlockedSlotStore(data_dir=settings.DATA_DIR)
    return MemoryBlockedSlotStore()


@lru_cache
def get_notifier() -> NotificationPort:
    logger.info("Using LoggingNotifier (ENV=%s)", settings.ENV)
    return LoggingNotifier()


def get_pricing_engine() -> PricingEngine:
    return PricingEngine(get_discount_policy())


def get_availability_resolver() -> AvailabilityResolver:
    return AvailabilityResolver(
        appointments=get_appointment_store(),
        blocked_slots=get_blocked_slot_store(),
        grid=get_slot_grid(),
        clock=get_clock(),
    )


def get_reschedule_coordinator() -> RescheduleCoordinator:
    return RescheduleCoordinator(
        appointments=get_appointment_store(),
        resolver=get_availability_resolver(),
        clock=get_clock(),
        policy=get_reschedule_policy(),
        notifier=get_notifier(),
    )


def get_booking_use_case() -> BookingUseCase:
    return BookingUseCase(
        appointments=get_appointment_store(),
        resolver=get_availability_resolver(),
        pricing=get_pricing_engine(),
        clock=get_clock(),
        notifier=get_notifier(),
    )


def get_blocking_use_case() -> BlockingUseCase:
    return BlockingUseCase(
        blocked_slots=get_blocked_slot_store(),
        grid=get_slot_grid(),
        clock=get_clock(),
    )


def get_reminder_use_case() -> ReminderUseCase:
    return ReminderUseCase(
        appointments=get_appointment_store(),
        clock=get_clock(),
        notifier=get_notifier(),
    )


def get_container() -> dict[str, object]:
    return {
        "availability": get_availability_resolver(),
        "reschedule": get_reschedule_coordinator(),
        "booking": get_booking_use_case(),
        "blocking": get_blocking_use_case(),
        "reminders": get_reminder_use_case(),
        "pricing": get_pricing_engine(),
    }

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class DiscountPolicy:
    bulk_threshold: int = 2  # bulk applies from this many sessions
    bulk_percent: Decimal = Decimal("10")
    category_percent: Decimal = Decimal("10")
    max_combined_percent: Decimal = Decimal("20")
    quantum: Decimal = Decimal("1")  # smallest currency unit


@dataclass(frozen=True)
class DiscountInput:
    unit_price: Decimal
    session_count: int = 1
    special_category_selected: bool = False
    policy: DiscountPolicy = field(default_factory=DiscountPolicy)


@dataclass(frozen=True)
class PricingResult:
    unit_discount_percent: Decimal
    total_before_discount: Decimal
    total_after_discount: Decimal
    bulk_applied: bool = False
    category_applied: bool = False

    @property
    def discount_amount(self) -> Decimal:
        return self.total_before_discount - self.total_after_discount

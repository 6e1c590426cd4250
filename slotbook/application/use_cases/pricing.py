from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from slotbook.application.exceptions import ValidationError
from slotbook.domain.entities.pricing import DiscountInput, DiscountPolicy, PricingResult

_HUNDRED = Decimal("100")


def _to_decimal(value, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValidationError(f"{name} must be a number, got {value!r}") from e
    if not result.is_finite():
        raise ValidationError(f"{name} must be finite")
    return result


def _validate_policy(policy: DiscountPolicy) -> None:
    for name in ("bulk_percent", "category_percent", "max_combined_percent"):
        percent = _to_decimal(getattr(policy, name), name)
        if percent < 0 or percent > _HUNDRED:
            raise ValidationError(f"{name} must be between 0 and 100")
    if policy.bulk_threshold < 1:
        raise ValidationError("bulk_threshold must be >= 1")
    if _to_decimal(policy.quantum, "quantum") <= 0:
        raise ValidationError("quantum must be positive")


def compute_total(discount_input: DiscountInput) -> PricingResult:
    """
    Price a purchase of session_count sessions.

    Bulk and special-category discounts are summed, then capped at
    max_combined_percent. The discounted total is rounded half-up to the
    policy's currency quantum. The undiscounted total is rounded to the same
    quantum first, so a zero discount leaves it unchanged.
    """
    policy = discount_input.policy
    _validate_policy(policy)

    session_count = discount_input.session_count
    if isinstance(session_count, bool) or not isinstance(session_count, int):
        raise ValidationError("session_count must be an integer")
    if session_count < 1:
        raise ValidationError("session_count must be >= 1")

    unit_price = _to_decimal(discount_input.unit_price, "unit_price")
    if unit_price < 0:
        raise ValidationError("unit_price must be >= 0")

    bulk_applied = session_count >= max(policy.bulk_threshold, 2)
    category_applied = bool(discount_input.special_category_selected)

    percent = Decimal("0")
    if bulk_applied:
        percent += _to_decimal(policy.bulk_percent, "bulk_percent")
    if category_applied:
        percent += _to_decimal(policy.category_percent, "category_percent")
    percent = min(percent, _to_decimal(policy.max_combined_percent, "max_combined_percent"))

    quantum = _to_decimal(policy.quantum, "quantum")
    total_before = (unit_price * session_count).quantize(quantum, rounding=ROUND_HALF_UP)
    total_after = (total_before * (_HUNDRED - percent) / _HUNDRED).quantize(quantum, rounding=ROUND_HALF_UP)

    return PricingResult(
        unit_discount_percent=percent,
        total_before_discount=total_before,
        total_after_discount=total_after,
        bulk_applied=bulk_applied,
        category_applied=category_applied,
    )


class PricingEngine:
    def __init__(self, policy: DiscountPolicy | None = None) -> None:
        self._policy = policy or DiscountPolicy()

    @property
    def policy(self) -> DiscountPolicy:
        return self._policy

    def quote(
        self,
        unit_price: Decimal | int | str,
        session_count: int = 1,
        special_category_selected: bool = False,
    ) -> PricingResult:
        return compute_total(
            DiscountInput(
                unit_price=unit_price,
                session_count=session_count,
                special_category_selected=special_category_selected,
                policy=self._policy,
            )
        )

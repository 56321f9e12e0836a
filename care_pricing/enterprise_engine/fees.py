"""Payment fee and discount sequencing.

The fee percent comes from the payment method/period table, the discount
percent from preset + manual discounts. Which one is applied first is a
snapshot switch (`fee_applied_before_discount`):

    discount first (default):
        discount = subtotal * d%          final = (subtotal - discount) * (1 + f%)
    fee first:
        fee = subtotal * f%               final = (subtotal + fee) - (subtotal + fee) * d%

Whatever the order, the final price never drops below the raw professional
cost; when it would, it is clamped and a warning tag is recorded.
"""

import logging
from dataclasses import dataclass, field

from care_pricing.enterprise_engine.models import RuleSnapshot
from care_pricing.enterprise_engine.rounding import clamp_percent, non_negative, round2
from care_pricing.errors import PricingInputError

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_METHOD = "PIX"
DEFAULT_PAYMENT_PERIOD = "SEMANAL"

BELOW_COST_WARNING = "FINAL_PRICE_CLAMPED_TO_PROFESSIONAL_COST"


def normalize_method(value: str | None) -> str:
    return str(value or DEFAULT_PAYMENT_METHOD).strip().upper()


def normalize_period(value: str | None) -> str:
    return str(value or DEFAULT_PAYMENT_PERIOD).strip().upper()


def resolve_fee_percent(snapshot: RuleSnapshot, method: str | None, period: str | None) -> float:
    """Fee percent of the first active rule matching (method, period); 0 if none."""
    wanted = (normalize_method(method), normalize_period(period))
    for rule in snapshot.payment_fee_rules:
        if not rule.active:
            continue
        if (normalize_method(rule.method), normalize_period(rule.period)) == wanted:
            return non_negative(rule.fee_percent)
    return 0.0


def resolve_preset_percent(snapshot: RuleSnapshot, name: str) -> float:
    """Percent of an active discount preset, looked up by name."""
    wanted = str(name).strip().upper()
    for preset in snapshot.discount_presets:
        if preset.active and preset.name.strip().upper() == wanted:
            return preset.percent
    raise PricingInputError(f"Unknown or inactive discount preset: {name!r}")


def resolve_discount_percent(preset_percent: float | None, manual_percent: float | None) -> float:
    """Preset + manual, each clamped to [0, 100], sum clamped again."""
    return clamp_percent(clamp_percent(preset_percent) + clamp_percent(manual_percent))


@dataclass(frozen=True)
class FeeDiscountResult:
    fee_percent: float
    fee_value: float
    discount_percent: float
    discount_value: float
    final_price: float
    warnings: list[str] = field(default_factory=list)


def sequence_fee_and_discount(
    subtotal: float,
    *,
    fee_percent: float,
    discount_percent: float,
    fee_applied_before_discount: bool,
    professional_cost: float,
    fixed_discount: float = 0.0,
) -> FeeDiscountResult:
    """Apply fee and discount to a subtotal in the configured order.

    Args:
        subtotal: Professional total + margin + operating costs + tax + minicosts
        fee_percent: Payment fee percent
        discount_percent: Combined discount percent, already clamped
        fee_applied_before_discount: Ordering switch from the snapshot
        professional_cost: Floor for the final price
        fixed_discount: Currency amount subtracted together with the percent discount

    Returns:
        FeeDiscountResult; discount_value includes the fixed amount actually used
    """
    fixed = non_negative(fixed_discount)

    if fee_applied_before_discount:
        fee_value = round2(subtotal * (fee_percent / 100))
        base_with_fee = round2(subtotal + fee_value)
        percent_discount = round2(base_with_fee * (discount_percent / 100))
        fixed_used = min(fixed, max(0.0, base_with_fee - percent_discount))
        discount_value = round2(percent_discount + fixed_used)
        final_price = round2(base_with_fee - discount_value)
    else:
        percent_discount = round2(subtotal * (discount_percent / 100))
        fixed_used = min(fixed, max(0.0, subtotal - percent_discount))
        discount_value = round2(percent_discount + fixed_used)
        base_with_discount = round2(subtotal - discount_value)
        fee_value = round2(base_with_discount * (fee_percent / 100))
        final_price = round2(base_with_discount + fee_value)

    warnings: list[str] = []
    floor = round2(non_negative(professional_cost))
    if final_price < floor:
        logger.warning(
            "Final price %.2f below professional cost %.2f; clamping", final_price, floor
        )
        final_price = floor
        warnings.append(BELOW_COST_WARNING)

    return FeeDiscountResult(
        fee_percent=fee_percent,
        fee_value=fee_value,
        discount_percent=discount_percent,
        discount_value=discount_value,
        final_price=round2(non_negative(final_price)),
        warnings=warnings,
    )

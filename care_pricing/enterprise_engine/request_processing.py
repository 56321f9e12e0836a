from __future__ import annotations

from typing import Any, Iterable

from care_pricing.enterprise_engine.models import CalculationInput, ProfessionalTier, normalize_tier

# Column order expected from the DuckDB input relation
REQUEST_COLUMNS = (
    "request_id",
    "tier",
    "hours",
    "patient_count",
    "condition_codes",
    "night",
    "weekend",
    "holiday",
    "high_risk",
    "payment_method",
    "payment_period",
    "discount_preset",
    "manual_discount_percent",
)


def coerce_str_list(value: Any) -> list[str]:
    """Coerce a value (list, tuple, comma-separated string or single item) into a list of strings."""
    if value is None:
        return []
    # DuckDB may return LIST as list or tuple
    if isinstance(value, (list, tuple)):
        return [str(x) for x in value if x is not None]
    text = str(value).strip()
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def coerce_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "t", "yes", "y", "sim", "s"}
    return bool(value)


def rows_to_calculation_inputs(
    rows: Iterable[tuple[Any, ...]],
    *,
    invalid_tier: str = "skip",
    coerce_tier: str | None = None,
) -> tuple[list[tuple[str, CalculationInput]], dict[str, Any]]:
    """
    Convert raw database rows into (request_id, CalculationInput) pairs.

    Expected row format matches REQUEST_COLUMNS.
    Rows with an unknown tier are skipped or coerced to `coerce_tier`.
    """
    requests: list[tuple[str, CalculationInput]] = []
    skipped = 0
    invalid_tier_values: dict[str, int] = {}

    if invalid_tier not in {"skip", "coerce"}:
        raise ValueError("invalid_tier must be one of: skip, coerce")

    fallback_tier: ProfessionalTier | None = None
    if invalid_tier == "coerce":
        fallback_tier = normalize_tier(coerce_tier)
        if fallback_tier is None:
            raise ValueError("coerce_tier must be a known tier when invalid_tier='coerce'")

    for (
        request_id,
        tier,
        hours,
        patient_count,
        condition_codes,
        night,
        weekend,
        holiday,
        high_risk,
        payment_method,
        payment_period,
        discount_preset,
        manual_discount_percent,
    ) in rows:
        normalized_tier = normalize_tier(tier)
        if normalized_tier is None:
            raw = "<NULL>" if tier is None else str(tier)
            invalid_tier_values[raw] = invalid_tier_values.get(raw, 0) + 1
            if invalid_tier == "skip":
                skipped += 1
                continue
            normalized_tier = fallback_tier

        requests.append(
            (
                str(request_id),
                CalculationInput(
                    tier=normalized_tier,
                    hours=float(hours) if hours is not None else 12.0,
                    patient_count=int(patient_count) if patient_count is not None else 1,
                    condition_codes=coerce_str_list(condition_codes),
                    night=coerce_bool(night),
                    weekend=coerce_bool(weekend),
                    holiday=coerce_bool(holiday),
                    high_risk=coerce_bool(high_risk),
                    payment_method=str(payment_method) if payment_method else "PIX",
                    payment_period=str(payment_period) if payment_period else "SEMANAL",
                    discount_preset=str(discount_preset) if discount_preset else None,
                    manual_discount_percent=(
                        float(manual_discount_percent)
                        if manual_discount_percent is not None
                        else 0.0
                    ),
                ),
            )
        )

    return requests, {"skipped": skipped, "invalid_tier_values": invalid_tier_values}

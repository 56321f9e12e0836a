"""Additive percentage composition.

All surcharges that apply to one billable occurrence are summed into a single
percent applied to the professional base. The sum is not capped at 100%;
heavily escalated cases (extra patient + conditions + holiday + night ...)
exceed it.

Each term has its own gate:
    - extra_patient: patient_count > 1 (flat, not multiplied per extra patient)
    - conditions: sum of surcharges of every selected active condition rule
    - night / weekend / holiday / high_risk: boolean flags
    - at / aa: flags; multiplied by the hour factor when the snapshot says so
    - manual: operator surcharge, when > 0
"""

from collections.abc import Iterable

from care_pricing.enterprise_engine.models import (
    ConditionRule,
    PercentContribution,
    RuleSnapshot,
)
from care_pricing.enterprise_engine.rounding import non_negative, round2

LABELS = {
    "extra_patient": "Extra patient",
    "conditions": "Clinical conditions",
    "night": "Night shift",
    "weekend": "Weekend",
    "holiday": "Holiday",
    "high_risk": "High risk",
    "at": "AT add-on",
    "aa": "AA add-on",
    "manual": "Manual surcharge",
}


def condition_percent_total(rules: Iterable[ConditionRule]) -> float:
    return round2(sum(non_negative(rule.surcharge_percent) for rule in rules))


def compose_percentages(
    snapshot: RuleSnapshot,
    *,
    hour_factor: float,
    patient_count: int,
    condition_rules: Iterable[ConditionRule] = (),
    night: bool = False,
    weekend: bool = False,
    holiday: bool = False,
    high_risk: bool = False,
    addon_at: bool = False,
    addon_aa: bool = False,
    manual_percent: float = 0.0,
) -> tuple[float, list[PercentContribution]]:
    """Sum the additive percents that apply to one occurrence.

    Args:
        snapshot: Rule snapshot providing the configured percents
        hour_factor: Factor for the occurrence (scales AT/AA when configured)
        patient_count: Number of patients served
        condition_rules: Selected, active condition rules
        night, weekend, holiday, high_risk, addon_at, addon_aa: Surcharge flags
        manual_percent: Operator surcharge percent

    Returns:
        Tuple of (total percent rounded to 2 decimals, contributions in a fixed order)
    """
    percents = snapshot.additive_percents
    scaled = snapshot.percent_scaled_by_hours

    terms: list[tuple[str, float, float]] = []

    if patient_count > 1:
        value = non_negative(percents.extra_patient)
        terms.append(("extra_patient", value, value))

    conditions = condition_percent_total(condition_rules)
    terms.append(("conditions", conditions, conditions))

    for code, flag in (
        ("night", night),
        ("weekend", weekend),
        ("holiday", holiday),
        ("high_risk", high_risk),
    ):
        if flag:
            value = non_negative(getattr(percents, code))
            terms.append((code, value, value))

    for code, flag, scale in (
        ("at", addon_at, scaled.at),
        ("aa", addon_aa, scaled.aa),
    ):
        if flag:
            value = non_negative(getattr(percents, code))
            terms.append((code, value, value * hour_factor if scale else value))

    manual = non_negative(manual_percent)
    terms.append(("manual", manual, manual))

    contributions = [
        PercentContribution(
            code=code,
            label=LABELS[code],
            percent=configured,
            applied_percent=round2(applied),
        )
        for code, configured, applied in terms
        if applied > 0
    ]
    total = round2(sum(applied for _, _, applied in terms))
    return total, contributions

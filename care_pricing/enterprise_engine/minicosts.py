"""Minicost addon resolution."""

from collections.abc import Mapping

from care_pricing.enterprise_engine.models import AppliedMinicost, RuleSnapshot
from care_pricing.enterprise_engine.rounding import non_negative, round2


def resolve_minicosts(
    snapshot: RuleSnapshot,
    hour_factor: float,
    overrides: Mapping[str, bool] | None = None,
) -> tuple[list[AppliedMinicost], float]:
    """Select active minicosts and value them.

    An override for a rule's code wins over its active_by_default flag.
    Inactive rules are omitted.

    Returns:
        Tuple of (active minicosts in snapshot order, rounded total)
    """
    overrides = overrides or {}
    applied: list[AppliedMinicost] = []

    for rule in snapshot.minicost_rules:
        override = overrides.get(rule.code)
        active = override if isinstance(override, bool) else rule.active_by_default
        if not active:
            continue

        value = non_negative(rule.value)
        if rule.scaled_by_hours:
            value *= hour_factor
        applied.append(
            AppliedMinicost(
                code=rule.code,
                label=rule.label or rule.code,
                value=round2(value),
                scaled_by_hours=rule.scaled_by_hours,
            )
        )

    total = round2(sum(item.value for item in applied))
    return applied, total

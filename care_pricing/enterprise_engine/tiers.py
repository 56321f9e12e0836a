"""Professional tier escalation.

Condition rules can demand a minimum tier. The effective tier is the higher
of the requested tier and the strictest minimum among the selected active
rules. Escalation never downgrades.

Example:
    - Requested CAREGIVER, ALZHEIMER requires NURSING_AUXILIARY
    - Effective tier is NURSING_AUXILIARY
"""

from collections.abc import Iterable

from care_pricing.enterprise_engine.models import (
    ConditionRule,
    ProfessionalTier,
    tier_rank,
)


def select_condition_rules(
    rules: Iterable[ConditionRule],
    condition_codes: Iterable[str],
) -> list[ConditionRule]:
    """Return active rules whose code was selected (case-insensitive), in snapshot order."""
    selected = {str(code or "").strip().upper() for code in condition_codes}
    selected.discard("")
    if not selected:
        return []
    return [
        rule
        for rule in rules
        if rule.active and str(rule.code or "").strip().upper() in selected
    ]


def resolve_required_tier(rules: Iterable[ConditionRule]) -> ProfessionalTier | None:
    """Highest minimum tier demanded by the given rules, or None."""
    required: ProfessionalTier | None = None
    for rule in rules:
        candidate = rule.minimum_tier
        if candidate is None:
            continue
        if required is None or tier_rank(candidate) > tier_rank(required):
            required = candidate
    return required


def resolve_effective_tier(
    requested_tier: ProfessionalTier,
    active_condition_rules: Iterable[ConditionRule],
) -> tuple[ProfessionalTier, ProfessionalTier | None]:
    """Escalate the requested tier to the minimum required by condition rules.

    Args:
        requested_tier: Tier asked for by the customer
        active_condition_rules: Selected, active condition rules

    Returns:
        Tuple of (effective tier, required tier or None)
    """
    required = resolve_required_tier(active_condition_rules)
    if required is not None and tier_rank(required) > tier_rank(requested_tier):
        return required, required
    return requested_tier, required

"""Margin, operating-cost commission and tax over margin.

Every value is rounded to 2 decimals on its own before it is used further.
"""

from dataclasses import dataclass

from care_pricing.enterprise_engine.models import RuleSnapshot
from care_pricing.enterprise_engine.rounding import non_negative, round2


@dataclass(frozen=True)
class MarginLayer:
    margin_percent: float
    margin_value: float
    fixed_profit_value: float
    gross_margin: float
    commission_percent_total: float
    operating_cost_value: float
    tax_percent: float
    tax_value: float


def commission_percent_total(snapshot: RuleSnapshot) -> float:
    """Sum of active operating-cost percents."""
    return round2(
        sum(non_negative(rule.percent) for rule in snapshot.commission_rules if rule.active)
    )


def fixed_profit_value(snapshot: RuleSnapshot, hour_factor: float) -> float:
    if snapshot.fixed_profit_scaled_by_hours:
        return round2(non_negative(snapshot.fixed_profit) * hour_factor)
    return round2(non_negative(snapshot.fixed_profit))


def compute_margin_layer(
    snapshot: RuleSnapshot,
    professional_total: float,
    hour_factor: float,
) -> MarginLayer:
    """Derive gross margin, operating costs and tax from the professional total.

    Args:
        snapshot: Rule snapshot
        professional_total: Professional base plus percentage additions
        hour_factor: Hour factor of the occurrence (scales fixed profit when configured)

    Returns:
        MarginLayer with each value rounded independently
    """
    margin_percent = non_negative(snapshot.margin_percent)
    margin_value = round2(professional_total * (margin_percent / 100))
    fixed_value = fixed_profit_value(snapshot, hour_factor)
    gross_margin = round2(margin_value + fixed_value)

    commission_percent = commission_percent_total(snapshot)
    operating_cost_value = round2(gross_margin * (commission_percent / 100))

    tax_percent = non_negative(snapshot.tax_over_margin_percent)
    tax_value = round2(gross_margin * (tax_percent / 100))

    return MarginLayer(
        margin_percent=margin_percent,
        margin_value=margin_value,
        fixed_profit_value=fixed_value,
        gross_margin=gross_margin,
        commission_percent_total=commission_percent,
        operating_cost_value=operating_cost_value,
        tax_percent=tax_percent,
        tax_value=tax_value,
    )

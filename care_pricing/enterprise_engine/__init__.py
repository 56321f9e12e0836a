"""Enterprise pricing engine.

Prices home-care shifts from an immutable rule snapshot (hour curve, base
12h prices per professional tier, additive percents, margin, operating
costs, tax, minicosts, payment fees and discounts).
Packaged default rules live in rule_tables/<UNIT_CODE>/v<N>/.
"""

from care_pricing.enterprise_engine.calculator import (
    PricingCalculator,
    calculate_price,
    calculate_schedule_price,
)
from care_pricing.enterprise_engine.models import (
    CalculationInput,
    CalculationOutput,
    ProfessionalTier,
    RuleSnapshot,
    Schedule,
    ScheduleCalculationInput,
    ScheduleCalculationOutput,
    ScheduleOccurrence,
)
from care_pricing.enterprise_engine.planning import PlanningInput, generate_schedule
from care_pricing.enterprise_engine.snapshot_loader import resolve_snapshot, validate_snapshot

__all__ = [
    "CalculationInput",
    "CalculationOutput",
    "PlanningInput",
    "PricingCalculator",
    "ProfessionalTier",
    "RuleSnapshot",
    "Schedule",
    "ScheduleCalculationInput",
    "ScheduleCalculationOutput",
    "ScheduleOccurrence",
    "calculate_price",
    "calculate_schedule_price",
    "generate_schedule",
    "resolve_snapshot",
    "validate_snapshot",
]

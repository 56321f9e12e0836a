"""care_pricing - Rule-driven pricing for home-care shifts.

Available components:
    - PricingCalculator: single-occurrence and schedule quotes
    - resolve_snapshot: file-backed rule snapshot provider
    - generate_schedule: recurrence planner producing priceable schedules
"""

from care_pricing.enterprise_engine import (
    CalculationInput,
    CalculationOutput,
    PricingCalculator,
    RuleSnapshot,
    ScheduleCalculationInput,
    ScheduleCalculationOutput,
    generate_schedule,
    resolve_snapshot,
)
from care_pricing.errors import PricingError, PricingInputError, SnapshotNotFoundError

__all__ = [
    "CalculationInput",
    "CalculationOutput",
    "PricingCalculator",
    "PricingError",
    "PricingInputError",
    "RuleSnapshot",
    "ScheduleCalculationInput",
    "ScheduleCalculationOutput",
    "SnapshotNotFoundError",
    "generate_schedule",
    "resolve_snapshot",
]

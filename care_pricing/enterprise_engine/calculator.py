"""Enterprise pricing calculator.

This module implements the main calculator class that:
1. Resolves the hour factor from the snapshot's non-linear hour curve
2. Escalates the professional tier required by selected condition rules
3. Composes the additive percents and prices the professional cost
4. Derives margin, operating costs over margin, and tax over margin
5. Adds the active minicosts
6. Applies payment fee and discount in the configured order
7. Renders the itemized breakdown used as the audit trail

The rule snapshot is passed in explicitly and never mutated, so one
calculator (or many) can price requests concurrently.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from care_pricing.enterprise_engine.breakdown import (
    build_breakdown,
    build_schedule_breakdown,
    build_schedule_summary,
    build_summary,
)
from care_pricing.enterprise_engine.fees import (
    resolve_discount_percent,
    resolve_fee_percent,
    resolve_preset_percent,
    sequence_fee_and_discount,
)
from care_pricing.enterprise_engine.hour_factor import build_hour_table, resolve_hour_factor
from care_pricing.enterprise_engine.input_hash import compute_input_hash
from care_pricing.enterprise_engine.margin import MarginLayer, compute_margin_layer
from care_pricing.enterprise_engine.minicosts import resolve_minicosts
from care_pricing.enterprise_engine.models import (
    AppliedMinicost,
    CalculationInput,
    CalculationOutput,
    ConditionRule,
    OccurrenceQuote,
    PercentContribution,
    ProfessionalTier,
    QuoteParameters,
    RuleSnapshot,
    ScheduleCalculationInput,
    ScheduleCalculationOutput,
)
from care_pricing.enterprise_engine.percentages import compose_percentages, condition_percent_total
from care_pricing.enterprise_engine.rounding import round2, round_half_up
from care_pricing.enterprise_engine.tiers import resolve_effective_tier, select_condition_rules
from care_pricing.errors import PricingInputError

logger = logging.getLogger(__name__)

ENGINE_VERSION = "enterprise-pricing-v3"


@dataclass(frozen=True)
class _OccurrencePrice:
    """Everything computed for one occurrence before fee and discount."""

    hours: int
    hour_factor: float
    requested_tier: ProfessionalTier
    effective_tier: ProfessionalTier
    required_tier: ProfessionalTier | None
    conditions: list[ConditionRule]
    condition_percent_total: float
    base12h: float
    professional_base: float
    additions: list[PercentContribution]
    additions_percent_total: float
    additions_value: float
    professional_total: float
    margin: MarginLayer
    minicosts: list[AppliedMinicost]
    minicosts_total: float
    subtotal: float


class PricingCalculator:
    """Rule-driven price calculator for home-care shifts.

    Example:
        >>> calculator = PricingCalculator(snapshot)
        >>> quote = calculator.quote(
        ...     CalculationInput(tier="CAREGIVER", hours=10, condition_codes=["ALZHEIMER"])
        ... )
        >>> print(f"Total: {quote.final_price:.2f}")
    """

    def __init__(self, snapshot: RuleSnapshot):
        """Initialize calculator with a resolved rule snapshot.

        Args:
            snapshot: Immutable configuration for one unit/version
        """
        self.snapshot = snapshot

        # Hour curve lookup, built once per snapshot
        self._hour_table = build_hour_table(snapshot.hour_rules)

    def hour_factor(self, hours: float) -> float:
        return resolve_hour_factor(hours, self._hour_table)

    def _discount_percent(self, params: QuoteParameters) -> float:
        if params.discount_preset:
            preset = resolve_preset_percent(self.snapshot, params.discount_preset)
        else:
            preset = params.preset_discount_percent
        return resolve_discount_percent(preset, params.manual_discount_percent)

    def _price_occurrence(
        self,
        params: QuoteParameters,
        *,
        hours: float,
        weekend: bool,
        holiday: bool,
    ) -> _OccurrencePrice:
        """Run hour factor, tier, percent, margin and minicost steps for one occurrence."""
        rounded_hours = round_half_up(hours)
        if rounded_hours < 1:
            raise PricingInputError(f"hours must round to at least 1, got {hours}")

        snapshot = self.snapshot
        factor = self.hour_factor(hours)

        # Step 1: tier escalation, before the base price lookup
        conditions = select_condition_rules(snapshot.condition_rules, params.condition_codes)
        effective_tier, required_tier = resolve_effective_tier(params.tier, conditions)

        # Step 2: professional base for the effective tier
        base12h = round2(snapshot.base12h.for_tier(effective_tier))
        professional_base = round2(base12h * factor)

        # Step 3: additive percents
        percent_total, contributions = compose_percentages(
            snapshot,
            hour_factor=factor,
            patient_count=params.patient_count,
            condition_rules=conditions,
            night=params.night,
            weekend=weekend,
            holiday=holiday,
            high_risk=params.high_risk,
            addon_at=params.addon_at,
            addon_aa=params.addon_aa,
            manual_percent=params.manual_additional_percent,
        )
        additions = [
            item.model_copy(
                update={"value": round2(professional_base * (item.applied_percent / 100))}
            )
            for item in contributions
        ]
        additions_value = round2(professional_base * (percent_total / 100))
        professional_total = round2(professional_base + additions_value)

        # Step 4: margin, operating costs, tax
        margin = compute_margin_layer(snapshot, professional_total, factor)

        # Step 5: minicosts
        minicosts, minicosts_total = resolve_minicosts(
            snapshot, factor, params.minicost_overrides
        )

        subtotal = round2(
            professional_total
            + margin.gross_margin
            + margin.operating_cost_value
            + margin.tax_value
            + minicosts_total
        )

        return _OccurrencePrice(
            hours=rounded_hours,
            hour_factor=factor,
            requested_tier=params.tier,
            effective_tier=effective_tier,
            required_tier=required_tier,
            conditions=conditions,
            condition_percent_total=condition_percent_total(conditions),
            base12h=base12h,
            professional_base=professional_base,
            additions=additions,
            additions_percent_total=percent_total,
            additions_value=additions_value,
            professional_total=professional_total,
            margin=margin,
            minicosts=minicosts,
            minicosts_total=minicosts_total,
            subtotal=subtotal,
        )

    def _input_hash(self, request: QuoteParameters) -> str:
        return compute_input_hash(
            {
                "engine_version": ENGINE_VERSION,
                "version_id": self.snapshot.version_id,
                "request": request,
            }
        )

    def quote(self, request: CalculationInput | Mapping[str, Any]) -> CalculationOutput:
        """Price a single occurrence.

        Args:
            request: CalculationInput or a mapping validated into one

        Returns:
            CalculationOutput with every intermediate value and the breakdown

        Raises:
            PricingInputError / pydantic.ValidationError: invalid request
        """
        if not isinstance(request, CalculationInput):
            request = CalculationInput.model_validate(request)

        snapshot = self.snapshot
        price = self._price_occurrence(
            request,
            hours=request.hours,
            weekend=request.weekend,
            holiday=request.holiday,
        )

        settled = sequence_fee_and_discount(
            price.subtotal,
            fee_percent=resolve_fee_percent(
                snapshot, request.payment_method, request.payment_period
            ),
            discount_percent=self._discount_percent(request),
            fee_applied_before_discount=snapshot.fee_applied_before_discount,
            professional_cost=price.professional_total,
            fixed_discount=request.fixed_discount,
        )

        output = CalculationOutput(
            currency=snapshot.currency,
            unit_id=snapshot.unit_id,
            version_id=snapshot.version_id,
            version=snapshot.version,
            hours=price.hours,
            hour_factor=price.hour_factor,
            requested_tier=price.requested_tier,
            effective_tier=price.effective_tier,
            required_tier=price.required_tier,
            applied_conditions=price.conditions,
            condition_percent_total=price.condition_percent_total,
            base12h=price.base12h,
            professional_base=price.professional_base,
            additions=price.additions,
            additions_percent_total=price.additions_percent_total,
            additions_value=price.additions_value,
            professional_total=price.professional_total,
            margin_percent=price.margin.margin_percent,
            margin_value=price.margin.margin_value,
            fixed_profit_value=price.margin.fixed_profit_value,
            gross_margin=price.margin.gross_margin,
            commission_percent_total=price.margin.commission_percent_total,
            operating_cost_value=price.margin.operating_cost_value,
            tax_percent=price.margin.tax_percent,
            tax_value=price.margin.tax_value,
            active_minicosts=price.minicosts,
            minicosts_total=price.minicosts_total,
            subtotal=price.subtotal,
            fee_percent=settled.fee_percent,
            fee_value=settled.fee_value,
            discount_percent=settled.discount_percent,
            discount_value=settled.discount_value,
            final_price=settled.final_price,
            warnings=list(settled.warnings),
            input_hash=self._input_hash(request),
        )
        output = output.model_copy(
            update={"breakdown": build_breakdown(output), "summary": build_summary(output)}
        )

        logger.debug("Quoted %s: %s", output.input_hash[:12], output.summary)
        return output

    def quote_batch(
        self, requests: Iterable[CalculationInput | Mapping[str, Any]]
    ) -> list[CalculationOutput]:
        """Price several occurrences independently, preserving input order."""
        return [self.quote(request) for request in requests]

    def quote_schedule(
        self, request: ScheduleCalculationInput | Mapping[str, Any]
    ) -> ScheduleCalculationOutput:
        """Price a schedule of occurrences.

        Each occurrence goes through the single-occurrence pipeline with its
        own hours, holiday and weekend flags. Rounded per-occurrence values are
        summed; fee and discount are applied once to the aggregate subtotal.

        Args:
            request: ScheduleCalculationInput or a mapping validated into one

        Returns:
            ScheduleCalculationOutput with totals, weekly/monthly equivalents
            and per-occurrence summaries

        Raises:
            PricingInputError: empty schedule
        """
        if not isinstance(request, ScheduleCalculationInput):
            request = ScheduleCalculationInput.model_validate(request)

        schedule = request.schedule
        if not schedule.occurrences:
            raise PricingInputError("schedule must contain at least one occurrence")

        snapshot = self.snapshot

        professional_cost = 0.0
        additions_value = 0.0
        professional_total = 0.0
        gross_margin = 0.0
        operating_costs = 0.0
        tax_over_margin = 0.0
        minicosts_total = 0.0
        additions: dict[str, float] = {}
        minicosts: dict[str, float] = {}
        occurrences: list[OccurrenceQuote] = []
        addition_percents: dict[str, float] = {}
        minicost_labels: dict[str, str] = {}

        priced = [
            (
                occurrence,
                self._price_occurrence(
                    request,
                    hours=occurrence.hours,
                    weekend=bool(occurrence.is_weekend),
                    holiday=occurrence.is_holiday,
                ),
            )
            for occurrence in schedule.occurrences
        ]
        first = priced[0][1]

        for occurrence, price in priced:
            professional_cost += price.professional_base
            additions_value += price.additions_value
            professional_total += price.professional_total
            gross_margin += price.margin.gross_margin
            operating_costs += price.margin.operating_cost_value
            tax_over_margin += price.margin.tax_value
            minicosts_total += price.minicosts_total
            for item in price.additions:
                additions[item.code] = additions.get(item.code, 0.0) + item.value
                addition_percents.setdefault(item.code, item.percent)
            for item in price.minicosts:
                minicosts[item.code] = minicosts.get(item.code, 0.0) + item.value
                minicost_labels.setdefault(item.code, item.label)

            occurrences.append(
                OccurrenceQuote(
                    date=occurrence.date,
                    hours=price.hours,
                    hour_factor=price.hour_factor,
                    is_holiday=occurrence.is_holiday,
                    is_weekend=bool(occurrence.is_weekend),
                    professional_total=price.professional_total,
                    subtotal=price.subtotal,
                )
            )

        # Sums of 2-decimal values; rounding only drops float noise
        professional_total = round2(professional_total)
        subtotal = round2(
            professional_total
            + round2(gross_margin)
            + round2(operating_costs)
            + round2(tax_over_margin)
            + round2(minicosts_total)
        )

        settled = sequence_fee_and_discount(
            subtotal,
            fee_percent=resolve_fee_percent(
                snapshot, request.payment_method, request.payment_period
            ),
            discount_percent=self._discount_percent(request),
            fee_applied_before_discount=snapshot.fee_applied_before_discount,
            professional_cost=professional_total,
            fixed_discount=request.fixed_discount,
        )

        active_days = schedule.total_days or len({o.date for o in schedule.occurrences})
        weekly_equivalent = round2(settled.final_price / active_days * 7)
        monthly_equivalent = round2(settled.final_price / active_days * 30)

        output = ScheduleCalculationOutput(
            currency=snapshot.currency,
            unit_id=snapshot.unit_id,
            version_id=snapshot.version_id,
            version=snapshot.version,
            total_occurrences=len(occurrences),
            total_hours=sum(o.hours for o in occurrences),
            total_days=active_days,
            requested_tier=first.requested_tier,
            effective_tier=first.effective_tier,
            required_tier=first.required_tier,
            professional_cost=round2(professional_cost),
            additions={code: round2(value) for code, value in additions.items()},
            additions_value=round2(additions_value),
            professional_total=professional_total,
            gross_margin=round2(gross_margin),
            operating_costs=round2(operating_costs),
            tax_over_margin=round2(tax_over_margin),
            minicosts={code: round2(value) for code, value in minicosts.items()},
            minicosts_total=round2(minicosts_total),
            subtotal=subtotal,
            fee_percent=settled.fee_percent,
            fee_value=settled.fee_value,
            discount_percent=settled.discount_percent,
            discount_value=settled.discount_value,
            final_price=settled.final_price,
            weekly_equivalent=weekly_equivalent,
            monthly_equivalent=monthly_equivalent,
            occurrences=occurrences,
            warnings=list(settled.warnings),
            input_hash=self._input_hash(request),
        )
        output = output.model_copy(
            update={
                "breakdown": build_schedule_breakdown(
                    output,
                    minicost_labels=minicost_labels,
                    addition_percents=addition_percents,
                ),
                "summary": build_schedule_summary(output),
            }
        )

        logger.debug("Quoted schedule %s: %s", output.input_hash[:12], output.summary)
        return output


def calculate_price(
    snapshot: RuleSnapshot, request: CalculationInput | Mapping[str, Any]
) -> CalculationOutput:
    """Price one occurrence against `snapshot`."""
    return PricingCalculator(snapshot).quote(request)


def calculate_schedule_price(
    snapshot: RuleSnapshot, request: ScheduleCalculationInput | Mapping[str, Any]
) -> ScheduleCalculationOutput:
    """Price a schedule against `snapshot`."""
    return PricingCalculator(snapshot).quote_schedule(request)

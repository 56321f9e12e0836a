"""Tests for schedule aggregation."""

from datetime import date

import pytest
from pydantic import ValidationError

from care_pricing.enterprise_engine import PricingCalculator, calculate_schedule_price
from care_pricing.enterprise_engine.fees import BELOW_COST_WARNING
from care_pricing.enterprise_engine.models import ScheduleCalculationInput
from care_pricing.errors import PricingInputError


def _request(**overrides):
    data = {
        "tier": "CAREGIVER",
        "schedule": {
            "occurrences": [
                {"date": "2026-03-02", "hours": 12},  # Monday
                {"date": "2026-03-07", "hours": 12},  # Saturday
            ]
        },
    }
    data.update(overrides)
    return ScheduleCalculationInput.model_validate(data)


class TestQuoteSchedule:
    @pytest.fixture
    def calculator(self, snapshot):
        return PricingCalculator(snapshot)

    def test_aggregates_per_occurrence_values(self, calculator):
        quote = calculator.quote_schedule(_request())

        assert quote.total_occurrences == 2
        assert quote.total_hours == 24
        assert quote.total_days == 2
        assert quote.professional_cost == pytest.approx(360)
        assert quote.additions == {"weekend": pytest.approx(36)}
        assert quote.professional_total == pytest.approx(396)
        assert quote.minicosts == {
            "VISITA_SUPERVISAO": pytest.approx(70),
            "RESERVA_TECNICA": pytest.approx(44),
        }
        # 297.21 (weekday) + 345.25 (weekend)
        assert quote.subtotal == pytest.approx(642.46)
        assert quote.final_price == pytest.approx(642.46)
        assert [o.subtotal for o in quote.occurrences] == [
            pytest.approx(297.21),
            pytest.approx(345.25),
        ]

    def test_weekly_and_monthly_equivalents(self, calculator):
        quote = calculator.quote_schedule(_request())
        assert quote.weekly_equivalent == pytest.approx(2248.61)
        assert quote.monthly_equivalent == pytest.approx(9636.9)

    def test_fee_and_discount_applied_once_on_aggregate(self, calculator):
        quote = calculator.quote_schedule(
            _request(payment_method="CARTAO_CREDITO", payment_period="MENSAL", discount_preset="MENSAL_5")
        )
        # discount round2(642.46 * 5%) = 32.12 -> 610.34, fee round2(610.34 * 4%) = 24.41
        assert quote.discount_value == pytest.approx(32.12)
        assert quote.fee_value == pytest.approx(24.41)
        assert quote.final_price == pytest.approx(634.75)

    def test_holiday_flag_per_occurrence(self, calculator):
        quote = calculator.quote_schedule(
            _request(
                schedule={
                    "occurrences": [
                        {"date": "2026-04-21", "hours": 12, "is_holiday": True},
                    ]
                }
            )
        )
        assert quote.additions == {"holiday": pytest.approx(36)}
        assert quote.occurrences[0].is_holiday is True

    def test_clamp_against_aggregated_professional_total(self, calculator):
        quote = calculator.quote_schedule(_request(manual_discount_percent=100))
        assert quote.final_price == pytest.approx(quote.professional_total)
        assert quote.warnings == [BELOW_COST_WARNING]

    def test_escalated_tier_is_reported(self, calculator):
        quote = calculator.quote_schedule(_request(condition_codes=["AVC_SEQUELA"]))
        assert quote.effective_tier.value == "NURSING_TECHNICIAN"
        assert quote.professional_cost == pytest.approx(600)

    def test_empty_schedule_is_rejected(self, calculator):
        with pytest.raises(PricingInputError):
            calculator.quote_schedule(_request(schedule={"occurrences": []}))

    def test_breakdown_ends_with_final_total(self, snapshot):
        quote = calculate_schedule_price(snapshot, _request())
        keys = [item.key for item in quote.breakdown]
        assert keys[0] == "professional_base"
        assert "addition_weekend" in keys
        assert keys[-5:] == ["minicosts_total", "subtotal", "payment_fee", "discount", "final_total"]
        assert "weekly" in quote.summary

    def test_idempotent(self, calculator):
        first = calculator.quote_schedule(_request())
        second = calculator.quote_schedule(_request())
        assert first.model_dump() == second.model_dump()

    def test_single_occurrence_matches_quote(self, calculator):
        schedule_quote = calculator.quote_schedule(
            _request(schedule={"occurrences": [{"date": date(2026, 3, 2), "hours": 10}]})
        )
        quote = calculator.quote({"tier": "CAREGIVER", "hours": 10})
        assert schedule_quote.final_price == quote.final_price

    def test_n_occurrences_match_n_single_quotes(self, calculator):
        dates = ["2026-03-02", "2026-03-03", "2026-03-04"]
        quote = calculator.quote_schedule(
            _request(
                night=True,
                schedule={"occurrences": [{"date": d, "hours": 8} for d in dates]},
            )
        )
        single = calculator.quote({"tier": "CAREGIVER", "hours": 8, "night": True})

        assert quote.total_hours == 3 * 8
        assert quote.professional_cost == pytest.approx(3 * single.professional_base)
        assert quote.professional_total == pytest.approx(3 * single.professional_total)

    def test_total_hours_are_billed_hours(self, calculator):
        dates = ["2026-03-02", "2026-03-03", "2026-03-04"]
        quote = calculator.quote_schedule(
            _request(schedule={"occurrences": [{"date": d, "hours": 7.6} for d in dates]})
        )
        assert [o.hours for o in quote.occurrences] == [8, 8, 8]
        assert quote.total_hours == 24

    def test_breakdown_keeps_minicost_labels_and_addition_percents(self, snapshot):
        quote = calculate_schedule_price(snapshot, _request())
        items = {item.key: item for item in quote.breakdown}
        assert items["minicost_VISITA_SUPERVISAO"].label == "Visita de supervisao"
        assert items["addition_weekend"].meta == "20%"

    @pytest.mark.parametrize("totals", [{"total_days": -1}, {"total_hours": 0}])
    def test_non_positive_schedule_totals_are_rejected(self, calculator, totals):
        occurrences = [{"date": "2026-03-02", "hours": 12}]
        with pytest.raises(ValidationError):
            calculator.quote_schedule(_request(schedule={"occurrences": occurrences, **totals}))

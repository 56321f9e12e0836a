"""Tests for payment fee and discount sequencing."""

import logging

import pytest

from care_pricing.enterprise_engine.fees import (
    BELOW_COST_WARNING,
    resolve_discount_percent,
    resolve_fee_percent,
    resolve_preset_percent,
    sequence_fee_and_discount,
)
from care_pricing.errors import PricingInputError


class TestLookups:
    def test_fee_percent_by_method_and_period(self, snapshot):
        assert resolve_fee_percent(snapshot, "cartao_credito", "mensal") == 4
        assert resolve_fee_percent(snapshot, "PIX", "SEMANAL") == 0

    def test_unknown_method_has_no_fee(self, snapshot):
        assert resolve_fee_percent(snapshot, "BOLETO", "MENSAL") == 0

    def test_missing_method_defaults_to_pix_weekly(self, snapshot):
        assert resolve_fee_percent(snapshot, None, None) == 0

    def test_preset_lookup(self, snapshot):
        assert resolve_preset_percent(snapshot, "mensal_5") == 5

    def test_unknown_preset_raises(self, snapshot):
        with pytest.raises(PricingInputError):
            resolve_preset_percent(snapshot, "BLACK_FRIDAY")

    def test_discount_percent_is_clamped(self):
        assert resolve_discount_percent(5, 3) == 8
        assert resolve_discount_percent(80, 50) == 100
        assert resolve_discount_percent(-10, None) == 0


class TestSequenceFeeAndDiscount:
    def test_discount_before_fee(self):
        result = sequence_fee_and_discount(
            263.58,
            fee_percent=4,
            discount_percent=5,
            fee_applied_before_discount=False,
            professional_cost=154.8,
        )
        # discount 13.18 -> 250.40, fee 10.02
        assert result.discount_value == pytest.approx(13.18)
        assert result.fee_value == pytest.approx(10.02)
        assert result.final_price == pytest.approx(260.42)
        assert result.warnings == []

    def test_fee_before_discount(self):
        result = sequence_fee_and_discount(
            263.58,
            fee_percent=4,
            discount_percent=5,
            fee_applied_before_discount=True,
            professional_cost=154.8,
        )
        # fee 10.54 -> 274.12, discount 13.71
        assert result.fee_value == pytest.approx(10.54)
        assert result.discount_value == pytest.approx(13.71)
        assert result.final_price == pytest.approx(260.41)

    def test_fixed_discount_is_folded_into_discount_value(self):
        result = sequence_fee_and_discount(
            200,
            fee_percent=0,
            discount_percent=10,
            fee_applied_before_discount=False,
            professional_cost=100,
            fixed_discount=15,
        )
        assert result.discount_value == pytest.approx(35)
        assert result.final_price == pytest.approx(165)

    def test_final_price_is_clamped_to_professional_cost(self, caplog):
        with caplog.at_level(logging.WARNING, logger="care_pricing"):
            result = sequence_fee_and_discount(
                263.58,
                fee_percent=0,
                discount_percent=100,
                fee_applied_before_discount=False,
                professional_cost=154.8,
            )
        assert result.final_price == pytest.approx(154.8)
        assert result.warnings == [BELOW_COST_WARNING]
        assert "clamping" in caplog.text

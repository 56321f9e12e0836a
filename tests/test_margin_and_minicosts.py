"""Tests for the margin layer and minicost resolution."""

import pytest

from care_pricing.enterprise_engine.margin import commission_percent_total, compute_margin_layer
from care_pricing.enterprise_engine.minicosts import resolve_minicosts


class TestMarginLayer:
    def test_step_wise_rounding(self, snapshot):
        layer = compute_margin_layer(snapshot, professional_total=154.8, hour_factor=0.86)

        assert layer.margin_value == pytest.approx(46.44)
        assert layer.gross_margin == pytest.approx(46.44)
        assert layer.commission_percent_total == pytest.approx(5.5)
        # round2(46.44 * 5.5%) = round2(2.5542)
        assert layer.operating_cost_value == pytest.approx(2.55)
        # round2(46.44 * 6%) = round2(2.7864)
        assert layer.tax_value == pytest.approx(2.79)

    def test_fixed_profit_is_added_to_gross_margin(self, make_snapshot):
        snapshot = make_snapshot(fixed_profit=20)
        layer = compute_margin_layer(snapshot, professional_total=180, hour_factor=0.5)
        assert layer.fixed_profit_value == 20
        assert layer.gross_margin == pytest.approx(74.0)

    def test_fixed_profit_scaled_by_hours(self, make_snapshot):
        snapshot = make_snapshot(fixed_profit=20, fixed_profit_scaled_by_hours=True)
        layer = compute_margin_layer(snapshot, professional_total=180, hour_factor=0.5)
        assert layer.fixed_profit_value == 10

    def test_inactive_commissions_are_excluded(self, make_snapshot):
        snapshot = make_snapshot(
            commission_rules=[
                {"code": "MARKETING", "percent": 3.5},
                {"code": "RC", "percent": 1, "active": False},
            ]
        )
        assert commission_percent_total(snapshot) == 3.5


class TestMinicosts:
    def test_defaults_are_applied(self, snapshot):
        applied, total = resolve_minicosts(snapshot, hour_factor=1.0)
        assert [m.code for m in applied] == ["VISITA_SUPERVISAO", "RESERVA_TECNICA"]
        assert total == 57

    def test_override_disables_default(self, snapshot):
        applied, total = resolve_minicosts(
            snapshot, hour_factor=1.0, overrides={"RESERVA_TECNICA": False}
        )
        assert [m.code for m in applied] == ["VISITA_SUPERVISAO"]
        assert total == 35

    def test_override_enables_inactive_rule_and_scales(self, make_snapshot):
        snapshot = make_snapshot(
            minicost_rules=[
                {
                    "code": "ENFERMEIRO_EMERGENCIAL",
                    "value": 18,
                    "scaled_by_hours": True,
                    "active_by_default": False,
                }
            ]
        )
        assert resolve_minicosts(snapshot, hour_factor=0.5) == ([], 0)

        applied, total = resolve_minicosts(
            snapshot, hour_factor=0.5, overrides={"ENFERMEIRO_EMERGENCIAL": True}
        )
        assert applied[0].value == 9
        assert applied[0].scaled_by_hours is True
        assert total == 9

"""Tests for the non-linear hour curve."""

import pytest

from care_pricing.enterprise_engine.hour_factor import (
    build_hour_table,
    fallback_factor,
    resolve_hour_factor,
    split_segments,
)
from care_pricing.enterprise_engine.models import HourRule


class TestSplitSegments:
    def test_short_shift_is_one_segment(self):
        assert split_segments(10) == [10]

    def test_long_shift_is_split_in_12h_chunks(self):
        assert split_segments(30) == [12, 12, 6]

    def test_fractional_hours_round_half_up(self):
        assert split_segments(10.4) == [10]
        assert split_segments(10.5) == [11]

    def test_zero_hours_has_no_segments(self):
        assert split_segments(0.4) == []


class TestResolveHourFactor:
    @pytest.fixture
    def rules(self, snapshot):
        return snapshot.hour_rules

    @pytest.mark.parametrize(
        "hours, expected",
        [(1, 0.2), (6, 0.6), (10, 0.86), (12, 1.0), (13, 1.2), (24, 2.0), (30, 2.6), (36, 3.0)],
    )
    def test_standard_curve(self, rules, hours, expected):
        assert resolve_hour_factor(hours, rules) == pytest.approx(expected)

    def test_accepts_prebuilt_table(self, rules):
        table = build_hour_table(rules)
        assert resolve_hour_factor(10, table) == pytest.approx(0.86)

    def test_missing_curve_entries_use_linear_fallback(self):
        rules = [HourRule(hour=12, factor=1.0)]
        assert resolve_hour_factor(6, rules) == pytest.approx(0.5)
        assert fallback_factor(6) == pytest.approx(0.5)

    def test_out_of_range_rules_are_ignored(self):
        table = build_hour_table([HourRule(hour=0, factor=9), HourRule(hour=13, factor=9)])
        assert table == {}

    def test_monotonic_in_hours(self, rules):
        factors = [resolve_hour_factor(h, rules) for h in range(1, 49)]
        assert factors == sorted(factors)

"""Monetary rounding helpers.

Quotes are rounded half-up at every intermediate step. The epsilon nudge
keeps values such as 1.005 (stored as 1.00499999...) rounding up, which is
how historical quotes were produced.
"""

import math
import sys

_EPSILON = sys.float_info.epsilon


def finite_or_zero(value: float) -> float:
    """Replace NaN/inf with 0.0."""
    value = float(value)
    if not math.isfinite(value):
        return 0.0
    return value


def round2(value: float) -> float:
    """Round half-up to 2 decimals; non-finite values become 0.0."""
    value = finite_or_zero(value)
    return math.floor((value + _EPSILON) * 100 + 0.5) / 100


def non_negative(value: float) -> float:
    return max(0.0, finite_or_zero(value))


def clamp_percent(value: float | None) -> float:
    """Clamp a percent into [0, 100]; missing or non-finite values become 0."""
    if value is None:
        return 0.0
    value = finite_or_zero(value)
    if value < 0:
        return 0.0
    if value > 100:
        return 100.0
    return value


def round_half_up(value: float) -> int:
    """Round to the nearest integer; halves round up."""
    return math.floor(finite_or_zero(value) + 0.5)

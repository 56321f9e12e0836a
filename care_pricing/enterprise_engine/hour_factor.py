"""Hour factor resolution.

A shift is billed as chunks of at most 12 hours. Each chunk is priced with a
non-linear factor taken from the snapshot's hour curve, so a partial shift
costs less than proportionally while back-to-back 12h chunks (24h, 36h) are
billed as whole multiples of the 12h factor.

Example (standard curve):
    10h -> 0.86
    24h -> 1.00 + 1.00 = 2.00
    30h -> 1.00 + 1.00 + 0.60 = 2.60
"""

from collections.abc import Iterable

from care_pricing.enterprise_engine.models import HourRule
from care_pricing.enterprise_engine.rounding import round2, round_half_up

SEGMENT_HOURS = 12


def build_hour_table(rules: Iterable[HourRule]) -> dict[int, float]:
    """Index hour rules by segment size, ignoring hours outside 1..12.

    Later rules for the same hour win.
    """
    table: dict[int, float] = {}
    for rule in rules:
        if rule.hour < 1 or rule.hour > SEGMENT_HOURS:
            continue
        table[rule.hour] = rule.factor
    return table


def fallback_factor(segment_hours: int) -> float:
    """Linear factor used when the curve has no entry for a segment size."""
    return round2(max(0.01, segment_hours / SEGMENT_HOURS))


def split_segments(hours: float) -> list[int]:
    """Split rounded hours into 12h chunks; the last chunk may be shorter."""
    remaining = round_half_up(hours)
    segments: list[int] = []
    while remaining > 0:
        segment = min(SEGMENT_HOURS, remaining)
        segments.append(segment)
        remaining -= segment
    return segments


def resolve_hour_factor(hours: float, rules: Iterable[HourRule] | dict[int, float]) -> float:
    """Convert an hour count into a cost multiplier.

    Args:
        hours: Shift length; non-integers are rounded to the nearest hour
        rules: Hour rules from the snapshot, or a table from build_hour_table

    Returns:
        Sum of the per-chunk factors, rounded to 2 decimals
    """
    table = rules if isinstance(rules, dict) else build_hour_table(rules)

    total = 0.0
    for segment in split_segments(hours):
        total += table.get(segment, fallback_factor(segment))
    return round2(total)

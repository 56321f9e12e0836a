"""Breakdown builder.

Renders computed quotes as an ordered list of line items plus a one-line
summary. Keys and ordering are part of the audit contract: staff screens and
stored proposals read them by key, so they must stay stable across calls.
"""

from care_pricing.enterprise_engine.models import (
    BreakdownItem,
    CalculationOutput,
    ScheduleCalculationOutput,
)
from care_pricing.enterprise_engine.percentages import LABELS
from care_pricing.enterprise_engine.rounding import round2


def format_percent(value: float) -> str:
    """8.0 -> '8%', 3.5 -> '3.5%'."""
    text = f"{round2(value):.2f}".rstrip("0").rstrip(".")
    return f"{text}%"


def build_breakdown(quote: CalculationOutput) -> list[BreakdownItem]:
    """Line items for a single-occurrence quote."""
    items = [
        BreakdownItem(
            key="professional_base",
            label="Professional base",
            value=quote.professional_base,
            meta=f"{quote.hours}h x {quote.hour_factor:.2f}",
        )
    ]
    for addition in quote.additions:
        items.append(
            BreakdownItem(
                key=f"addition_{addition.code}",
                label=addition.label,
                value=addition.value,
                meta=format_percent(addition.applied_percent),
            )
        )
    items.extend(
        [
            BreakdownItem(
                key="additions_total",
                label="Professional additions",
                value=quote.additions_value,
                meta=format_percent(quote.additions_percent_total),
            ),
            BreakdownItem(
                key="professional_total",
                label="Professional total",
                value=quote.professional_total,
            ),
            BreakdownItem(
                key="margin",
                label="Margin",
                value=quote.margin_value,
                meta=format_percent(quote.margin_percent),
            ),
            BreakdownItem(key="fixed_profit", label="Fixed profit", value=quote.fixed_profit_value),
            BreakdownItem(key="gross_margin", label="Gross margin", value=quote.gross_margin),
            BreakdownItem(
                key="operating_costs",
                label="Operating costs over margin",
                value=quote.operating_cost_value,
                meta=format_percent(quote.commission_percent_total),
            ),
            BreakdownItem(
                key="tax_over_margin",
                label="Tax over margin",
                value=quote.tax_value,
                meta=format_percent(quote.tax_percent),
            ),
        ]
    )
    for minicost in quote.active_minicosts:
        items.append(
            BreakdownItem(
                key=f"minicost_{minicost.code}",
                label=minicost.label,
                value=minicost.value,
                meta="scaled by hours" if minicost.scaled_by_hours else None,
            )
        )
    items.extend(_closing_items(quote))
    return items


def build_schedule_breakdown(
    quote: ScheduleCalculationOutput,
    *,
    minicost_labels: dict[str, str] | None = None,
    addition_percents: dict[str, float] | None = None,
) -> list[BreakdownItem]:
    """Line items for an aggregated schedule quote.

    minicost_labels and addition_percents (keyed by code) supply the labels and
    configured percents of the per-occurrence items being summed.
    """
    minicost_labels = minicost_labels or {}
    addition_percents = addition_percents or {}
    items = [
        BreakdownItem(
            key="professional_base",
            label="Professional base",
            value=quote.professional_cost,
            meta=f"{quote.total_occurrences} occurrences / {quote.total_hours:g}h",
        )
    ]
    for code, value in quote.additions.items():
        items.append(
            BreakdownItem(
                key=f"addition_{code}",
                label=LABELS.get(code, code),
                value=value,
                meta=(
                    format_percent(addition_percents[code])
                    if code in addition_percents
                    else None
                ),
            )
        )
    items.extend(
        [
            BreakdownItem(
                key="additions_total", label="Professional additions", value=quote.additions_value
            ),
            BreakdownItem(
                key="professional_total",
                label="Professional total",
                value=quote.professional_total,
            ),
            BreakdownItem(key="gross_margin", label="Gross margin", value=quote.gross_margin),
            BreakdownItem(
                key="operating_costs",
                label="Operating costs over margin",
                value=quote.operating_costs,
            ),
            BreakdownItem(
                key="tax_over_margin", label="Tax over margin", value=quote.tax_over_margin
            ),
        ]
    )
    for code, value in quote.minicosts.items():
        items.append(
            BreakdownItem(
                key=f"minicost_{code}", label=minicost_labels.get(code, code), value=value
            )
        )
    items.extend(_closing_items(quote))
    return items


def _closing_items(quote: CalculationOutput | ScheduleCalculationOutput) -> list[BreakdownItem]:
    return [
        BreakdownItem(key="minicosts_total", label="Minicosts", value=quote.minicosts_total),
        BreakdownItem(key="subtotal", label="Subtotal", value=quote.subtotal),
        BreakdownItem(
            key="payment_fee",
            label="Payment fee",
            value=quote.fee_value,
            meta=format_percent(quote.fee_percent),
        ),
        BreakdownItem(
            key="discount",
            label="Discount",
            value=-quote.discount_value if quote.discount_value else 0.0,
            meta=format_percent(quote.discount_percent),
        ),
        BreakdownItem(key="final_total", label="Final total", value=quote.final_price),
    ]


def build_summary(quote: CalculationOutput) -> str:
    return (
        f"{quote.effective_tier.value} {quote.hours}h (factor {quote.hour_factor:.2f})"
        f" | professional {quote.professional_total:.2f}"
        f" | subtotal {quote.subtotal:.2f}"
        f" | fee {quote.fee_value:.2f}"
        f" | discount -{quote.discount_value:.2f}"
        f" | total {quote.currency} {quote.final_price:.2f}"
    )


def build_schedule_summary(quote: ScheduleCalculationOutput) -> str:
    return (
        f"{quote.effective_tier.value} {quote.total_occurrences} occurrences / {quote.total_hours:g}h"
        f" | professional {quote.professional_total:.2f}"
        f" | subtotal {quote.subtotal:.2f}"
        f" | fee {quote.fee_value:.2f}"
        f" | discount -{quote.discount_value:.2f}"
        f" | total {quote.currency} {quote.final_price:.2f}"
        f" | weekly {quote.weekly_equivalent:.2f} | monthly {quote.monthly_equivalent:.2f}"
    )

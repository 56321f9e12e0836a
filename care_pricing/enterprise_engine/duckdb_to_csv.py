from __future__ import annotations

import argparse
import csv
import json
import logging
import os
from datetime import date, datetime
from pathlib import Path

import duckdb
import yaml

from care_pricing.enterprise_engine.calculator import PricingCalculator
from care_pricing.enterprise_engine.request_processing import (
    REQUEST_COLUMNS,
    rows_to_calculation_inputs,
)
from care_pricing.enterprise_engine.snapshot_loader import resolve_snapshot
from care_pricing.logging_config import configure_logging

logger = logging.getLogger(__name__)

YAML_DETAIL_ROWS = 20

FIELDNAMES = [
    "request_id",
    "unit_id",
    "version_id",
    "requested_tier",
    "effective_tier",
    "hours",
    "hour_factor",
    "professional_total",
    "subtotal",
    "fee_value",
    "discount_value",
    "final_price",
    "warnings",
    "input_hash",
]


def default_duckdb_path() -> str:
    env_path = os.environ.get("DUCKDB_PATH")
    if env_path:
        return env_path
    return str((Path.cwd() / "care_pricing.duckdb").resolve())


def quotes_from_duckdb_to_csv(
    *,
    duckdb_path: str,
    output_csv_path: str,
    rules_dir: str | None = None,
    unit_code: str | None = None,
    version_id: str | None = None,
    at_date: date | None = None,
    schema: str = "main",
    table: str = "quote_requests",
    limit: int | None = None,
    invalid_tier: str = "skip",
    coerce_tier: str | None = None,
) -> int:
    """Read quote requests from DuckDB and write priced quotes to CSV.

    Returns number of rows written.

    Expected input relation: `{schema}.{table}` with columns:
    - request_id, tier, hours, patient_count, condition_codes, night, weekend,
      holiday, high_risk, payment_method, payment_period, discount_preset,
      manual_discount_percent

    Full breakdowns for the first rows are written as YAML next to the CSV.
    """
    snapshot = resolve_snapshot(
        rules_dir, version_id=version_id, unit_code=unit_code, at_date=at_date
    )
    calculator = PricingCalculator(snapshot)

    con = duckdb.connect(str(Path(duckdb_path).expanduser().resolve()), read_only=True)
    try:
        sql = f"SELECT {', '.join(REQUEST_COLUMNS)}\nFROM {schema}.{table}\nORDER BY request_id"
        if limit is not None:
            sql += f"\nLIMIT {int(limit)}"
        rows = con.execute(sql).fetchall()
    finally:
        con.close()

    requests, stats = rows_to_calculation_inputs(
        rows,
        invalid_tier=invalid_tier,
        coerce_tier=coerce_tier,
    )

    # Nothing is written unless every request prices
    quotes = [(request_id, request, calculator.quote(request)) for request_id, request in requests]

    output_path = Path(output_csv_path).expanduser().resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    yaml_dir = output_path.parent / "yaml_details"
    yaml_dir.mkdir(parents=True, exist_ok=True)

    with output_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()

        for i, (request_id, request, quote) in enumerate(quotes):
            if i < YAML_DETAIL_ROWS:
                yaml_data = {
                    "request_id": request_id,
                    "request": request.model_dump(mode="json"),
                    "summary": quote.summary,
                    "final_price": quote.final_price,
                    "warnings": quote.warnings,
                    "breakdown": [item.model_dump() for item in quote.breakdown],
                }
                with (yaml_dir / f"{request_id}.yml").open("w", encoding="utf-8") as yf:
                    yaml.dump(yaml_data, yf, sort_keys=False, allow_unicode=True)

            writer.writerow(
                {
                    "request_id": request_id,
                    "unit_id": quote.unit_id,
                    "version_id": quote.version_id,
                    "requested_tier": quote.requested_tier.value,
                    "effective_tier": quote.effective_tier.value,
                    "hours": quote.hours,
                    "hour_factor": quote.hour_factor,
                    "professional_total": quote.professional_total,
                    "subtotal": quote.subtotal,
                    "fee_value": quote.fee_value,
                    "discount_value": quote.discount_value,
                    "final_price": quote.final_price,
                    "warnings": json.dumps(quote.warnings),
                    "input_hash": quote.input_hash,
                }
            )

    skipped = int(stats.get("skipped", 0))
    if skipped:
        total_rows = len(rows)
        pct = (skipped / total_rows) * 100 if total_rows > 0 else 0
        invalids = stats.get("invalid_tier_values", {})
        invalids_str = ", ".join(f"{k}={v}" for k, v in sorted(invalids.items()))
        logger.warning(
            "Skipped %d/%d (%.2f%%) rows due to invalid tier values: %s",
            skipped,
            total_rows,
            pct,
            invalids_str,
        )

    return len(quotes)


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="care_pricing.enterprise_engine.duckdb_to_csv",
        description="Read quote requests from DuckDB and write priced quotes to CSV.",
    )
    p.add_argument(
        "--duckdb-path",
        default=default_duckdb_path(),
        help="Path to DuckDB file (default: DUCKDB_PATH env var or ./care_pricing.duckdb)",
    )
    p.add_argument(
        "--output-csv",
        required=False,
        help="Output CSV path. Defaults to tmp_exports/YYYYMMDD_HHMMSSffffff_quotes_out.csv",
    )
    p.add_argument(
        "--rules-dir",
        default=None,
        help="Rules directory (default: CARE_PRICING_RULES_DIR env var or packaged rules)",
    )
    p.add_argument("--unit-code", default=None, help="Unit code to price for (default: MATRIZ)")
    p.add_argument("--version-id", default=None, help="Pin a specific rule snapshot version")
    p.add_argument(
        "--at-date",
        type=date.fromisoformat,
        default=None,
        help="Resolve the snapshot in effect on this date (YYYY-MM-DD)",
    )
    p.add_argument("--schema", default="main", help="DuckDB schema containing the input relation")
    p.add_argument(
        "--table",
        default="quote_requests",
        help="DuckDB table/view name containing the input relation",
    )
    p.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Optional row limit for quick smoke tests",
    )
    p.add_argument(
        "--invalid-tier",
        choices=["skip", "coerce"],
        default="skip",
        help="What to do if tier is unknown: skip row or coerce",
    )
    p.add_argument(
        "--coerce-tier",
        default=None,
        help="When --invalid-tier=coerce, coerce unknown tiers to this tier",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = _build_arg_parser().parse_args(argv)

    output_csv = args.output_csv
    if not output_csv:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S%f")
        output_csv = str(Path.cwd() / "tmp_exports" / f"{timestamp}_quotes_out.csv")

    count = quotes_from_duckdb_to_csv(
        duckdb_path=args.duckdb_path,
        output_csv_path=output_csv,
        rules_dir=args.rules_dir,
        unit_code=args.unit_code,
        version_id=args.version_id,
        at_date=args.at_date,
        schema=str(args.schema),
        table=str(args.table),
        limit=args.limit,
        invalid_tier=str(args.invalid_tier),
        coerce_tier=str(args.coerce_tier) if args.coerce_tier else None,
    )

    print(f"Wrote {count} rows to {Path(output_csv).expanduser().resolve()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

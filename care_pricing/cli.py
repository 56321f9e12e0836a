from __future__ import annotations

import functools
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

import duckdb
import typer
import yaml
from pydantic import ValidationError

from care_pricing.enterprise_engine.calculator import PricingCalculator
from care_pricing.enterprise_engine.duckdb_to_csv import (
    default_duckdb_path,
    quotes_from_duckdb_to_csv,
)
from care_pricing.enterprise_engine.models import RuleSnapshot
from care_pricing.enterprise_engine.planning import PlanningInput, generate_schedule
from care_pricing.enterprise_engine.snapshot_loader import (
    default_rules_dir,
    iter_snapshots,
    resolve_snapshot,
    validate_snapshot,
)
from care_pricing.errors import PricingError
from care_pricing.logging_config import configure_logging

app = typer.Typer(no_args_is_help=True, help="care-pricing - Home-care shift pricing utilities")

RulesDirOption = typer.Option(
    None, "--rules-dir", help="Rules directory (default: CARE_PRICING_RULES_DIR or packaged rules)"
)
UnitCodeOption = typer.Option(None, "--unit-code", help="Unit code (default: MATRIZ)")
VersionIdOption = typer.Option(None, "--version-id", help="Pin a rule snapshot version")
AtDateOption = typer.Option(None, "--at-date", help="Resolve the snapshot in effect on YYYY-MM-DD")
SummaryOption = typer.Option(False, "--summary", help="Print only the one-line summary")


def _handle_errors(func):
    """Turn pricing and validation errors into a non-zero exit."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (PricingError, ValidationError) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc

    return wrapper


def _load_request(path: Path) -> dict[str, Any]:
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise typer.BadParameter(f"{path} must contain a mapping", param_hint="REQUEST_FILE")
    return data


def _parse_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"{value!r} is not a YYYY-MM-DD date", param_hint="--at-date") from exc


def _snapshot(
    rules_dir: Optional[Path],
    unit_code: Optional[str],
    version_id: Optional[str],
    at_date: Optional[str],
) -> RuleSnapshot:
    snapshot = resolve_snapshot(
        rules_dir,
        version_id=version_id,
        unit_code=unit_code,
        at_date=_parse_date(at_date),
    )
    validate_snapshot(snapshot)
    return snapshot


def _echo_yaml(data: Any) -> None:
    typer.echo(yaml.safe_dump(data, sort_keys=False, allow_unicode=True).rstrip())


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (default: CARE_PRICING_LOG_LEVEL or INFO)"
    ),
) -> None:
    configure_logging(log_level)


@app.command(name="quote")
@_handle_errors
def quote(
    request_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    rules_dir: Optional[Path] = RulesDirOption,
    unit_code: Optional[str] = UnitCodeOption,
    version_id: Optional[str] = VersionIdOption,
    at_date: Optional[str] = AtDateOption,
    summary: bool = SummaryOption,
) -> None:
    """Price a single occurrence described in a YAML/JSON request file."""
    snapshot = _snapshot(rules_dir, unit_code, version_id, at_date)
    output = PricingCalculator(snapshot).quote(_load_request(request_file))

    if summary:
        typer.echo(output.summary)
        return
    _echo_yaml(output.model_dump(mode="json"))


@app.command(name="quote-schedule")
@_handle_errors
def quote_schedule(
    request_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    rules_dir: Optional[Path] = RulesDirOption,
    unit_code: Optional[str] = UnitCodeOption,
    version_id: Optional[str] = VersionIdOption,
    at_date: Optional[str] = AtDateOption,
    summary: bool = SummaryOption,
) -> None:
    """Price a schedule.

    The request holds the quote parameters plus either a `schedule` block
    (explicit occurrences) or a `planning` block expanded into one.
    """
    request = _load_request(request_file)
    planning = request.pop("planning", None)
    if planning is not None:
        request["schedule"] = generate_schedule(PlanningInput.model_validate(planning))

    snapshot = _snapshot(rules_dir, unit_code, version_id, at_date)
    output = PricingCalculator(snapshot).quote_schedule(request)

    if summary:
        typer.echo(output.summary)
        return
    _echo_yaml(output.model_dump(mode="json"))


@app.command(name="plan")
@_handle_errors
def plan(
    planning_file: Path = typer.Argument(..., exists=True, dir_okay=False),
) -> None:
    """Expand a planning block into the schedule it generates."""
    schedule = generate_schedule(PlanningInput.model_validate(_load_request(planning_file)))
    _echo_yaml(schedule.model_dump(mode="json"))


@app.command(name="validate-rules")
@_handle_errors
def validate_rules(
    rules_dir: Optional[Path] = RulesDirOption,
    strict: bool = typer.Option(False, "--strict", help="Exit non-zero when warnings are found"),
) -> None:
    """Check every snapshot under the rules directory for configuration warnings."""
    directory = rules_dir or default_rules_dir()
    total = 0
    for snapshot in iter_snapshots(directory):
        warnings = validate_snapshot(snapshot)
        total += len(warnings)
        status = "OK" if not warnings else f"{len(warnings)} warning(s)"
        typer.echo(f"{snapshot.unit_code} {snapshot.version_id}: {status}")
        for warning in warnings:
            typer.echo(f"  - {warning}")

    if strict and total:
        raise typer.Exit(code=1)


@app.command(name="batch-quote")
@_handle_errors
def batch_quote(
    duckdb_path: str = typer.Option(default_duckdb_path(), "--duckdb-path"),
    output_csv: Optional[str] = typer.Option(None, "--output-csv"),
    rules_dir: Optional[Path] = RulesDirOption,
    unit_code: Optional[str] = UnitCodeOption,
    version_id: Optional[str] = VersionIdOption,
    at_date: Optional[str] = AtDateOption,
    schema: str = typer.Option("main", "--schema"),
    table: str = typer.Option("quote_requests", "--table"),
    limit: Optional[int] = typer.Option(None, "--limit"),
    invalid_tier: str = typer.Option("skip", "--invalid-tier", help="skip or coerce"),
    coerce_tier: Optional[str] = typer.Option(None, "--coerce-tier"),
) -> None:
    """Re-quote requests stored in DuckDB and export them to CSV."""
    if not output_csv:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S%f")
        output_csv = str(Path.cwd() / "tmp_exports" / f"{timestamp}_quotes_out.csv")

    try:
        count = quotes_from_duckdb_to_csv(
            duckdb_path=duckdb_path,
            output_csv_path=output_csv,
            rules_dir=str(rules_dir) if rules_dir else None,
            unit_code=unit_code,
            version_id=version_id,
            at_date=_parse_date(at_date),
            schema=schema,
            table=table,
            limit=limit,
            invalid_tier=invalid_tier,
            coerce_tier=coerce_tier,
        )
    except duckdb.Error as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        if isinstance(exc, (PricingError, ValidationError)):
            raise
        raise typer.BadParameter(str(exc)) from exc

    typer.echo(f"Wrote {count} rows to {Path(output_csv).expanduser().resolve()}")


if __name__ == "__main__":
    app()

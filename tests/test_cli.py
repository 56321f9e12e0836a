"""Tests for the care-pricing command line."""

from pathlib import Path

import duckdb
import pytest
import yaml
from typer.testing import CliRunner

from care_pricing.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _packaged_rules(monkeypatch):
    monkeypatch.delenv("CARE_PRICING_RULES_DIR", raising=False)


def _write(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestQuoteCommand:
    def test_quote_prints_full_result(self, tmp_path):
        request = _write(tmp_path / "request.yaml", {"tier": "CAREGIVER", "hours": 10})

        result = runner.invoke(app, ["quote", str(request)])

        assert result.exit_code == 0, result.output
        output = yaml.safe_load(result.stdout)
        assert output["hour_factor"] == pytest.approx(0.86)
        assert output["professional_base"] == pytest.approx(154.8)
        assert output["breakdown"][-1]["key"] == "final_total"

    def test_quote_summary(self, tmp_path):
        request = _write(tmp_path / "request.yaml", {"tier": "CAREGIVER", "hours": 10})

        result = runner.invoke(app, ["--log-level", "DEBUG", "quote", str(request), "--summary"])

        assert result.exit_code == 0, result.output
        assert "CAREGIVER 10h (factor 0.86)" in result.stdout

    def test_invalid_request_exits_non_zero(self, tmp_path):
        request = _write(tmp_path / "request.yaml", {"tier": "CAREGIVER", "hours": -2})

        result = runner.invoke(app, ["quote", str(request)])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_unknown_unit_exits_non_zero(self, tmp_path):
        request = _write(tmp_path / "request.yaml", {"tier": "CAREGIVER", "hours": 10})

        result = runner.invoke(app, ["quote", str(request), "--unit-code", "NOWHERE"])

        assert result.exit_code == 1
        assert "NOWHERE" in result.output


class TestScheduleCommands:
    def test_quote_schedule_with_planning_block(self, tmp_path):
        request = _write(
            tmp_path / "schedule.yaml",
            {
                "tier": "CAREGIVER",
                "planning": {
                    "start_date": "2026-03-02",
                    "end_date": "2026-03-15",
                    "days_of_week": [1, 3],
                },
            },
        )

        result = runner.invoke(app, ["quote-schedule", str(request)])

        assert result.exit_code == 0, result.output
        output = yaml.safe_load(result.stdout)
        assert output["total_occurrences"] == 4
        assert output["total_hours"] == 48
        assert output["final_price"] >= output["professional_total"]

    def test_quote_schedule_with_explicit_schedule(self, tmp_path):
        request = _write(
            tmp_path / "schedule.yaml",
            {
                "tier": "CAREGIVER",
                "schedule": {"occurrences": [{"date": "2026-03-07", "hours": 12}]},
            },
        )

        result = runner.invoke(app, ["quote-schedule", str(request), "--summary"])

        assert result.exit_code == 0, result.output
        assert "1 occurrences" in result.stdout

    def test_plan(self, tmp_path):
        planning = _write(
            tmp_path / "planning.yaml",
            {"recurrence_type": "PACKAGE", "start_date": "2026-03-02", "occurrences": 3},
        )

        result = runner.invoke(app, ["plan", str(planning)])

        assert result.exit_code == 0, result.output
        schedule = yaml.safe_load(result.stdout)
        assert [o["date"] for o in schedule["occurrences"]] == [
            "2026-03-02",
            "2026-03-03",
            "2026-03-04",
        ]

    def test_plan_rejects_end_before_start(self, tmp_path):
        planning = _write(
            tmp_path / "planning.yaml",
            {"start_date": "2026-03-02", "end_date": "2026-03-01"},
        )

        result = runner.invoke(app, ["plan", str(planning)])

        assert result.exit_code == 1


class TestValidateRules:
    def test_packaged_rules_are_clean(self):
        result = runner.invoke(app, ["validate-rules", "--strict"])

        assert result.exit_code == 0, result.output
        assert "MATRIZ matriz-v1: OK" in result.stdout

    def test_strict_fails_on_warnings(self, tmp_path):
        version_dir = tmp_path / "MATRIZ" / "v1"
        version_dir.mkdir(parents=True)
        _write(
            version_dir / "snapshot.yaml",
            {
                "base12h": {"caregiver": 180, "nursing_auxiliary": 240, "nursing_technician": 300},
                "margin_percent": 120,
            },
        )

        result = runner.invoke(app, ["validate-rules", "--rules-dir", str(tmp_path), "--strict"])

        assert result.exit_code == 1
        assert "margin_percent outside 0..100" in result.output


class TestBatchQuote:
    def test_batch_quote(self, tmp_path):
        db_path = tmp_path / "care_pricing.duckdb"
        con = duckdb.connect(str(db_path))
        try:
            con.execute(
                """
                CREATE TABLE main.quote_requests AS
                SELECT
                    'Q1' AS request_id,
                    'CAREGIVER' AS tier,
                    12.0 AS hours,
                    1 AS patient_count,
                    []::VARCHAR[] AS condition_codes,
                    false AS night,
                    false AS weekend,
                    false AS holiday,
                    false AS high_risk,
                    'PIX' AS payment_method,
                    'SEMANAL' AS payment_period,
                    NULL::VARCHAR AS discount_preset,
                    NULL::DOUBLE AS manual_discount_percent
                """
            )
        finally:
            con.close()
        out_csv = tmp_path / "quotes.csv"

        result = runner.invoke(
            app,
            ["batch-quote", "--duckdb-path", str(db_path), "--output-csv", str(out_csv)],
        )

        assert result.exit_code == 0, result.output
        assert "Wrote 1 rows" in result.stdout
        assert out_csv.exists()

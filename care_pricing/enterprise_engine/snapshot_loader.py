"""Load rule snapshots from a rules directory.

Layout (one directory per unit and version):
    <rules_dir>/<UNIT_CODE>/v<N>/snapshot.yaml
    <rules_dir>/<UNIT_CODE>/v<N>/hour_rules.csv          (optional)
    <rules_dir>/<UNIT_CODE>/v<N>/payment_fee_rules.csv   (optional)
    <rules_dir>/<UNIT_CODE>/v<N>/minicost_rules.csv      (optional)
    <rules_dir>/<UNIT_CODE>/v<N>/commission_rules.csv    (optional)
    <rules_dir>/<UNIT_CODE>/v<N>/condition_rules.csv     (optional)
    <rules_dir>/<UNIT_CODE>/v<N>/discount_presets.csv    (optional)

snapshot.yaml holds the scalar settings and may list rules inline; a CSV
table, when present, replaces the inline list. The packaged default rules
live in rule_tables/ next to this module.
"""

import logging
import os
import re
from collections.abc import Iterable
from datetime import date
from pathlib import Path
from typing import Any

import polars as pl
import yaml

from care_pricing.enterprise_engine.models import RuleSnapshot
from care_pricing.errors import SnapshotNotFoundError

logger = logging.getLogger(__name__)

# Packaged default rules
DATA_DIR = Path(__file__).parent / "rule_tables"
DEFAULT_UNIT_CODE = "MATRIZ"
SNAPSHOT_FILE = "snapshot.yaml"

TABLE_FILES = {
    "hour_rules": "hour_rules.csv",
    "payment_fee_rules": "payment_fee_rules.csv",
    "minicost_rules": "minicost_rules.csv",
    "commission_rules": "commission_rules.csv",
    "condition_rules": "condition_rules.csv",
    "discount_presets": "discount_presets.csv",
}

PERCENT_FIELDS = ("margin_percent", "tax_over_margin_percent")
ADDITIVE_PERCENT_FIELDS = ("extra_patient", "night", "weekend", "holiday", "high_risk")

_VERSION_DIR_RE = re.compile(r"^v(\d+)$")

# Cache loaded snapshots
_CACHE: dict[str, RuleSnapshot] = {}


def default_rules_dir() -> Path:
    """CARE_PRICING_RULES_DIR if set, else the packaged rules."""
    env_path = os.environ.get("CARE_PRICING_RULES_DIR")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return DATA_DIR


def _read_table(path: Path) -> list[dict[str, Any]]:
    df = pl.read_csv(path)
    return [
        {key: value for key, value in row.items() if value is not None}
        for row in df.iter_rows(named=True)
    ]


def load_snapshot(version_dir: str | Path) -> RuleSnapshot:
    """Load one snapshot directory.

    Args:
        version_dir: Directory containing snapshot.yaml (and optional CSV tables)

    Returns:
        Validated RuleSnapshot; unit_code, version and version_id default
        from the directory names when not set in the YAML
    """
    version_dir = Path(version_dir).expanduser().resolve()
    cache_key = str(version_dir)
    if cache_key in _CACHE:
        return _CACHE[cache_key]

    snapshot_path = version_dir / SNAPSHOT_FILE
    if not snapshot_path.exists():
        raise SnapshotNotFoundError(f"Rule snapshot not found. Expected file: {snapshot_path}")

    with snapshot_path.open(encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    for field_name, file_name in TABLE_FILES.items():
        table_path = version_dir / file_name
        if table_path.exists():
            data[field_name] = _read_table(table_path)

    data.setdefault("unit_code", version_dir.parent.name)
    data.setdefault("unit_id", data["unit_code"])
    match = _VERSION_DIR_RE.match(version_dir.name)
    if match:
        data.setdefault("version", int(match.group(1)))
    data.setdefault("version_id", f"{data['unit_code']}-v{data.get('version', 1)}")

    snapshot = RuleSnapshot.model_validate(data)
    _CACHE[cache_key] = snapshot
    return snapshot


def _version_sort_key(path: Path) -> tuple[int, str]:
    match = _VERSION_DIR_RE.match(path.name)
    return (int(match.group(1)) if match else -1, path.name)


def iter_snapshots(rules_dir: str | Path) -> Iterable[RuleSnapshot]:
    """Yield every snapshot under rules_dir, ordered by unit then version."""
    rules_dir = Path(rules_dir)
    if not rules_dir.is_dir():
        raise SnapshotNotFoundError(f"Rules directory not found: {rules_dir}")

    for unit_dir in sorted(p for p in rules_dir.iterdir() if p.is_dir()):
        version_dirs = [
            p for p in unit_dir.iterdir() if p.is_dir() and (p / SNAPSHOT_FILE).exists()
        ]
        for version_dir in sorted(version_dirs, key=_version_sort_key):
            yield load_snapshot(version_dir)


def find_active_version(
    snapshots: Iterable[RuleSnapshot], at_date: date | None = None
) -> RuleSnapshot | None:
    """Pick the active snapshot in effect at at_date.

    Versions whose effective range contains at_date win (latest
    effective_from, then highest version). Otherwise the highest active
    version is used.
    """
    at_date = at_date or date.today()
    active = [s for s in snapshots if s.active]
    if not active:
        return None

    in_range = [
        s
        for s in active
        if s.effective_from is not None
        and s.effective_from <= at_date
        and (s.effective_to is None or s.effective_to >= at_date)
    ]
    if in_range:
        return max(in_range, key=lambda s: (s.effective_from, s.version))
    return max(active, key=lambda s: s.version)


def resolve_snapshot(
    rules_dir: str | Path | None = None,
    version_id: str | None = None,
    unit_id: str | None = None,
    unit_code: str | None = None,
    at_date: date | None = None,
) -> RuleSnapshot:
    """Resolve the rule snapshot for a lookup key.

    Priority: version_id, then unit_id, then unit_code, then the default unit.

    Raises:
        SnapshotNotFoundError: the key matches nothing, or the unit has no active version
    """
    rules_dir = Path(rules_dir) if rules_dir else default_rules_dir()
    snapshots = list(iter_snapshots(rules_dir))

    if version_id:
        for snapshot in snapshots:
            if snapshot.version_id == version_id:
                return snapshot
        raise SnapshotNotFoundError(f"Rule snapshot version {version_id!r} not found")

    if unit_id:
        key_desc = f"unit id {unit_id!r}"
        candidates = [s for s in snapshots if s.unit_id == unit_id]
    else:
        code = (unit_code or DEFAULT_UNIT_CODE).strip().upper()
        key_desc = f"unit code {code!r}"
        candidates = [s for s in snapshots if s.unit_code.strip().upper() == code]

    if not candidates:
        raise SnapshotNotFoundError(f"No rule snapshot for {key_desc} in {rules_dir}")

    snapshot = find_active_version(candidates, at_date)
    if snapshot is None:
        raise SnapshotNotFoundError(f"No active rule snapshot for {key_desc}")

    logger.debug("Resolved %s to snapshot %s", key_desc, snapshot.version_id)
    return snapshot


def validate_snapshot(snapshot: RuleSnapshot) -> list[str]:
    """Return (and log) configuration warnings; never raises.

    Checks percent settings are within 0..100 and that the hour curve
    covers every segment size 1..12.
    """
    warnings: list[str] = []

    def check_percent(name: str, value: float) -> None:
        if not (0 <= value <= 100):
            warnings.append(f"{name} outside 0..100: {value}")

    for name in PERCENT_FIELDS:
        check_percent(name, getattr(snapshot, name))
    for name in ADDITIVE_PERCENT_FIELDS:
        check_percent(f"additive_percents.{name}", getattr(snapshot.additive_percents, name))

    hours = {rule.hour for rule in snapshot.hour_rules}
    for hour in range(1, 13):
        if hour not in hours:
            warnings.append(f"hour curve incomplete: missing hour {hour}")

    if warnings:
        logger.warning(
            "Snapshot %s (unit %s) has %d validation warnings: %s",
            snapshot.version_id,
            snapshot.unit_id,
            len(warnings),
            "; ".join(warnings),
        )
    return warnings


def clear_cache() -> None:
    """Clear the snapshot cache."""
    _CACHE.clear()

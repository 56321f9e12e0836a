"""Stable hashing of pricing requests.

Identical requests priced against the same snapshot produce the same hash,
which lets callers recognise idempotent re-quotes. Volatile bookkeeping keys
are dropped and mappings are key-sorted before hashing.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

VOLATILE_KEYS = frozenset(
    {
        "request_id",
        "timestamp",
        "created_at",
        "updated_at",
        "recalculated_at",
        "duration_ms",
    }
)


def normalize(value: Any) -> Any:
    """Convert a value into a JSON-ready structure with a canonical shape."""
    if isinstance(value, BaseModel):
        return normalize(value.model_dump(mode="json"))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {
            str(key): normalize(item)
            for key, item in sorted(value.items(), key=lambda kv: str(kv[0]))
            if str(key) not in VOLATILE_KEYS and item is not None
        }
    if isinstance(value, (list, tuple)):
        return [normalize(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted(normalize(item) for item in value)
    return value


def json_dumps(obj: Any) -> str:
    return json.dumps(normalize(obj), separators=(",", ":"), sort_keys=True, default=str)


def compute_input_hash(value: Any) -> str:
    """SHA-256 hex digest of the canonical JSON rendering of `value`."""
    return hashlib.sha256(json_dumps(value).encode("utf-8")).hexdigest()

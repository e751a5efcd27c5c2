"""Shared utility helpers for dannyswok-rewards."""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Any

# Sort key for entries whose timestamp is missing or unparseable
EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def now_utc() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Return current UTC time as an ISO-8601 string."""
    return now_utc().isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def parse_timestamp(ts: Any) -> datetime | None:
    """Parse an ISO timestamp string to a timezone-aware datetime, or None.

    A trailing ``Z`` is accepted; naive values are treated as UTC.
    """
    if isinstance(ts, datetime):
        dt = ts
    elif isinstance(ts, str) and ts:
        try:
            dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def timestamp_key(ts: Any) -> datetime:
    """Sort key for timestamps; unparseable values sort oldest."""
    return parse_timestamp(ts) or EPOCH


def to_number(value: Any, fallback: float = 0) -> float:
    """Coerce *value* to a finite number, returning *fallback* on failure."""
    if isinstance(value, bool) or value is None:
        return fallback
    if isinstance(value, (int, float)):
        numeric = value
    elif isinstance(value, str):
        try:
            numeric = float(value.strip())
        except ValueError:
            return fallback
    else:
        return fallback
    return numeric if math.isfinite(numeric) else fallback


def to_int(value: Any, fallback: int = 0) -> int:
    """Like :func:`to_number` but truncated to an integer."""
    return int(to_number(value, fallback))


def clamp_percent(value: float) -> float:
    if not math.isfinite(value):
        return 0
    return min(100, max(0, value))

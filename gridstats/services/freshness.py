# gridstats/services/freshness.py
from __future__ import annotations

from typing import Any, Optional

from gridstats.models.types import FreshnessState, FreshnessStatus
from gridstats.services.timestamps import parse_timestamp

FRESH_MS = 30_000
STALE_MS = 150_000

SECOND_MS = 1_000
MINUTE_MS = 60_000
HOUR_MS = 3_600_000
DAY_MS = 86_400_000

AWAITING_SYNC = "Awaiting sync"


def _parse_iso(value: Any) -> Optional[float]:
    # numbers are not a valid lastUpdated here, only strings
    if not isinstance(value, str):
        return None
    return parse_timestamp(value)


def compute_freshness_state(last_updated: str | None, now: float) -> FreshnessState:
    """
    fresh   : age <= 30s
    stale   : 30s < age <= 150s
    offline : older, missing or unparseable
    `now` is epoch ms and always supplied by the caller.
    """
    ts = _parse_iso(last_updated)
    if ts is None:
        return "offline"
    age = now - ts
    if age <= FRESH_MS:
        return "fresh"
    if age <= STALE_MS:
        return "stale"
    return "offline"


def format_relative_time(last_updated: str | None, now: float) -> str:
    ts = _parse_iso(last_updated)
    if ts is None:
        return AWAITING_SYNC
    age = now - ts
    if age < SECOND_MS:
        return "just now"
    if age < MINUTE_MS:
        return f"{int(age // SECOND_MS)}s ago"
    if age < HOUR_MS:
        return f"{int(age // MINUTE_MS)}m ago"
    if age < DAY_MS:
        return f"{int(age // HOUR_MS)}h ago"
    return f"{int(age // DAY_MS)}d ago"


def freshness_status(last_updated: str | None, now: float, label: str = "Data") -> FreshnessStatus:
    """Payload for the dashboard status badge."""
    return {
        "label": label,
        "state": compute_freshness_state(last_updated, now),
        "relative": format_relative_time(last_updated, now),
        "lastUpdated": last_updated if isinstance(last_updated, str) else None,
    }

# gridstats/services/timestamps.py
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# epoch ms bounds that still render as a datetime
MIN_MS = (datetime(1, 1, 1, tzinfo=timezone.utc) - EPOCH) / timedelta(milliseconds=1)
MAX_MS = (datetime(9999, 12, 31, 23, 59, 59, tzinfo=timezone.utc) - EPOCH) / timedelta(milliseconds=1)


def parse_timestamp(value: Any) -> Optional[float]:
    """
    ISO-8601 string (or datetime) -> epoch milliseconds. Naive values are taken
    as UTC. Numbers are assumed to already be epoch ms. None when unparseable
    or outside the range a datetime can hold.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        ms = float(value)
        if not math.isfinite(ms):
            return None
    else:
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, str):
            s = value.strip()
            if not s:
                return None
            try:
                dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
            except ValueError:
                return None
        else:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        ms = (dt - EPOCH) / timedelta(milliseconds=1)
    if not MIN_MS <= ms <= MAX_MS:
        return None
    return ms


def to_iso(ms: float) -> str:
    """Epoch ms -> '2025-08-01T00:00:20.000Z'."""
    dt = EPOCH + timedelta(milliseconds=ms)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")

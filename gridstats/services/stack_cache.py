# gridstats/services/stack_cache.py
from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional

from gridstats.models.types import Aggregate, CacheEntry, Projection

Clock = Callable[[], float]

DEFAULT_MAX_TENANTS = 50


def _now_ms() -> float:
    return time.time() * 1000.0


class StackCache:
    """
    One most-recent-result slot per tenant. A new signature for a tenant
    replaces its slot; beyond `max_tenants` the least recently computed
    slots are dropped.
    """

    def __init__(self, max_tenants: int = DEFAULT_MAX_TENANTS, clock: Clock = _now_ms):
        self.max_tenants = max(1, int(max_tenants))
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, team_id: str, signature: str) -> Optional[CacheEntry]:
        entry = self._entries.get(team_id)
        if entry is not None and entry["signature"] == signature:
            return entry
        return None

    def put(self, team_id: str, signature: str, aggregate: Aggregate, projection: Projection) -> CacheEntry:
        entry: CacheEntry = {
            "teamId": team_id,
            "signature": signature,
            "aggregate": aggregate,
            "projection": projection,
            "computedAt": self._clock(),
        }
        with self._lock:
            self._entries[team_id] = entry
            self._prune(keep=team_id)
        return entry

    def _prune(self, keep: str) -> None:
        extra = len(self._entries) - self.max_tenants
        if extra <= 0:
            return
        candidates = [kv for kv in self._entries.items() if kv[0] != keep]
        oldest = sorted(candidates, key=lambda kv: kv[1]["computedAt"])[:extra]
        for key, _ in oldest:
            del self._entries[key]

    def invalidate(self, team_id: str) -> None:
        with self._lock:
            self._entries.pop(team_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, team_id: object) -> bool:
        return team_id in self._entries

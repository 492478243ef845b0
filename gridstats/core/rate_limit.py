# gridstats/core/rate_limit.py
from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

from gridstats.core.errors import RateLimitExceeded
from gridstats.models.types import RateLimitResult

Clock = Callable[[], float]


def _now_ms() -> float:
    return time.time() * 1000.0


class RateLimitStore(ABC):
    @abstractmethod
    def consume(self, key: str, points: int, window_ms: float) -> RateLimitResult:
        ...


class MemoryRateLimitStore(RateLimitStore):
    """
    Process-local fixed windows. A bucket is (tokens, resetAt); the first hit
    after resetAt opens a new window. Nothing is shared between instances.
    Once `max_keys` buckets exist, expired ones are dropped before a new key
    is added.
    """

    def __init__(self, clock: Clock = _now_ms, max_keys: int = 10_000):
        self._clock = clock
        self.max_keys = max_keys
        self._buckets: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def consume(self, key: str, points: int, window_ms: float) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            current = self._buckets.get(key)

            if current is None and len(self._buckets) >= self.max_keys:
                self._sweep(now)

            if current is None or now > current[1]:
                reset_at = now + window_ms
                remaining = max(points - 1, 0)
                self._buckets[key] = (remaining, reset_at)
                return {"allowed": True, "remaining": remaining, "resetAt": reset_at}

            tokens, reset_at = current
            if tokens <= 0:
                return {"allowed": False, "remaining": 0, "resetAt": reset_at}

            remaining = tokens - 1
            self._buckets[key] = (remaining, reset_at)
            return {"allowed": True, "remaining": remaining, "resetAt": reset_at}

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, reset_at) in self._buckets.items() if now > reset_at]
        for k in expired:
            del self._buckets[k]

    def __len__(self) -> int:
        return len(self._buckets)


class RateLimiter:
    def __init__(self, points: int, window_ms: float, store: Optional[RateLimitStore] = None):
        self.points = int(points)
        self.window_ms = float(window_ms)
        self.store = store if store is not None else MemoryRateLimitStore()

    def check(self, key: str) -> RateLimitResult:
        return self.store.consume(key, self.points, self.window_ms)


class TenantRateLimiter:
    def __init__(self, limiter: RateLimiter):
        self.limiter = limiter

    async def guard(self, key: str) -> RateLimitResult:
        """check(); raises RateLimitExceeded (status 429, retry_at=resetAt) on denial."""
        result = self.limiter.check(key)
        if not result["allowed"]:
            raise RateLimitExceeded(retry_at=result["resetAt"], key=key)
        return result


def create_tenant_rate_limiter(
    points: int,
    window_ms: float,
    store: Optional[RateLimitStore] = None,
) -> TenantRateLimiter:
    return TenantRateLimiter(RateLimiter(points, window_ms, store))

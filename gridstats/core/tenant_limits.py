# gridstats/core/tenant_limits.py
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from gridstats.core.errors import RateLimitExceeded
from gridstats.core.rate_limit import (
    MemoryRateLimitStore,
    RateLimitStore,
    TenantRateLimiter,
    create_tenant_rate_limiter,
)
from gridstats.models.types import RateLimitResult

logger = logging.getLogger("gridstats.limits")

# tier -> action -> {points, windowMs}
DEFAULT_QUOTAS: Dict[str, Dict[str, Dict[str, float]]] = {
    "standard": {
        "default": {"points": 300, "windowMs": 60_000},
        "write": {"points": 120, "windowMs": 60_000},
        "ingest": {"points": 40, "windowMs": 60_000},
    },
    "elite": {
        "default": {"points": 500, "windowMs": 60_000},
        "write": {"points": 200, "windowMs": 60_000},
        "ingest": {"points": 80, "windowMs": 60_000},
    },
}


class TenantLimits:
    """
    Per-tier, per-action budgets. Limiters are built lazily per distinct quota
    and share one store, so keys stay isolated by team and action.
    """

    def __init__(
        self,
        quotas: Optional[Mapping[str, Mapping[str, Mapping[str, float]]]] = None,
        store: Optional[RateLimitStore] = None,
    ):
        self.quotas = quotas or DEFAULT_QUOTAS
        self.store = store if store is not None else MemoryRateLimitStore()
        self._limiters: Dict[str, TenantRateLimiter] = {}

    def resolve_quota(self, tier: Optional[str], action: str) -> Dict[str, float]:
        tier_cfg = self.quotas.get((tier or "standard").lower()) or self.quotas["standard"]
        return dict(tier_cfg.get(action) or tier_cfg["default"])

    def _limiter(self, points: int, window_ms: float) -> TenantRateLimiter:
        cache_key = f"{points}:{window_ms}"
        lim = self._limiters.get(cache_key)
        if lim is None:
            lim = create_tenant_rate_limiter(points, window_ms, self.store)
            self._limiters[cache_key] = lim
        return lim

    async def guard_tenant_action(
        self,
        team_id: str,
        action: str = "default",
        tier: Optional[str] = None,
        override: Optional[Mapping[str, Any]] = None,
    ) -> RateLimitResult:
        quota = self.resolve_quota(tier, action)
        if override:
            quota.update({k: v for k, v in override.items() if k in ("points", "windowMs") and v is not None})
        points, window_ms = int(quota["points"]), float(quota["windowMs"])

        # the window is part of the key so an override never drains the tier budget
        key = f"team:{team_id}:{action}:{points}:{int(window_ms)}"
        try:
            return await self._limiter(points, window_ms).guard(key)
        except RateLimitExceeded:
            logger.warning(
                "RATE LIMIT hit team=%s action=%s tier=%s points=%s windowMs=%s",
                team_id, action, tier or "standard", points, window_ms,
            )
            raise

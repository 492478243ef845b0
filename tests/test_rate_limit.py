import asyncio
import logging

import pytest

from gridstats.core.errors import RateLimitExceeded
from gridstats.core.rate_limit import MemoryRateLimitStore, RateLimiter, create_tenant_rate_limiter
from gridstats.core.tenant_limits import DEFAULT_QUOTAS, TenantLimits


def test_window_budget_per_key(clock):
    limiter = RateLimiter(points=2, window_ms=10_000, store=MemoryRateLimitStore(clock))

    first = limiter.check("k")
    second = limiter.check("k")
    third = limiter.check("k")

    assert (first["allowed"], first["remaining"]) == (True, 1)
    assert (second["allowed"], second["remaining"]) == (True, 0)
    assert (third["allowed"], third["remaining"]) == (False, 0)
    assert first["resetAt"] == second["resetAt"] == third["resetAt"] == clock.t + 10_000


def test_window_resets_strictly_after_reset_at(clock):
    limiter = RateLimiter(points=1, window_ms=1_000, store=MemoryRateLimitStore(clock))
    opened = limiter.check("k")

    clock.advance(1_000)  # now == resetAt: same window
    denied = limiter.check("k")
    assert denied["allowed"] is False
    assert denied["resetAt"] == opened["resetAt"]

    clock.advance(1)
    again = limiter.check("k")
    assert again["allowed"] is True
    assert again["resetAt"] == clock.t + 1_000


def test_keys_are_independent(clock):
    limiter = RateLimiter(points=1, window_ms=10_000, store=MemoryRateLimitStore(clock))
    assert limiter.check("team-a")["allowed"]
    assert limiter.check("team-b")["allowed"]
    assert not limiter.check("team-a")["allowed"]


def test_limiters_do_not_share_default_stores():
    a = RateLimiter(points=1, window_ms=10_000)
    b = RateLimiter(points=1, window_ms=10_000)
    assert a.check("k")["allowed"]
    assert b.check("k")["allowed"]


def test_guard_rejects_with_429_metadata():
    limiter = create_tenant_rate_limiter(1, 50_000)
    ok = asyncio.run(limiter.guard("tenant-x"))
    assert ok["allowed"] is True

    with pytest.raises(RateLimitExceeded) as exc:
        asyncio.run(limiter.guard("tenant-x"))
    assert exc.value.status == 429
    assert isinstance(exc.value.retry_at, float)
    assert exc.value.retry_at == ok["resetAt"]


def test_tenant_quota_resolution():
    limits = TenantLimits()
    assert limits.resolve_quota(None, "write") == DEFAULT_QUOTAS["standard"]["write"]
    assert limits.resolve_quota("ELITE", "ingest") == DEFAULT_QUOTAS["elite"]["ingest"]
    assert limits.resolve_quota("platinum", "default") == DEFAULT_QUOTAS["standard"]["default"]
    assert limits.resolve_quota("elite", "export") == DEFAULT_QUOTAS["elite"]["default"]


def test_guard_tenant_action_isolates_teams_and_logs_hits(clock, caplog):
    limits = TenantLimits(store=MemoryRateLimitStore(clock))
    override = {"points": 1, "windowMs": 5_000}

    asyncio.run(limits.guard_tenant_action("t1", "write", override=override))
    asyncio.run(limits.guard_tenant_action("t2", "write", override=override))

    with caplog.at_level(logging.WARNING, logger="gridstats.limits"):
        with pytest.raises(RateLimitExceeded) as exc:
            asyncio.run(limits.guard_tenant_action("t1", "write", override=override))
    assert exc.value.retry_at == clock.t + 5_000
    assert "team=t1" in caplog.text

    # the override bucket does not spend the tier budget
    res = asyncio.run(limits.guard_tenant_action("t1", "write"))
    assert res["remaining"] == DEFAULT_QUOTAS["standard"]["write"]["points"] - 1


def test_store_drops_expired_buckets_at_capacity(clock):
    store = MemoryRateLimitStore(clock, max_keys=2)
    limiter = RateLimiter(points=1, window_ms=1_000, store=store)
    limiter.check("a")
    limiter.check("b")

    # both windows still open: nothing to drop
    limiter.check("c")
    assert len(store) == 3

    clock.advance(1_001)
    limiter.check("d")
    assert len(store) == 1
    assert limiter.check("d")["allowed"] is False

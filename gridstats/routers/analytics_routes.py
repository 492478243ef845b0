# gridstats/routers/analytics_routes.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, HTTPException, Query, Request, Response

from gridstats.core import db
from gridstats.core.errors import InvalidTeamIdError
from gridstats.core.repository import load_analytics_preferences, load_games, load_play_events
from gridstats.models.types import RateLimitResult
from gridstats.services.freshness import freshness_status
from gridstats.services.pipeline import build_stacks_for_games

logger = logging.getLogger("gridstats.analytics")
router = APIRouter(tags=["analytics"])


def _now_ms() -> float:
    return time.time() * 1000.0


async def _guard(request: Request, response: Response, team_id: str, action: str = "default") -> RateLimitResult:
    limits = request.app.state.tenant_limits
    tier = request.headers.get("x-team-tier")
    result = await limits.guard_tenant_action(team_id, action, tier=tier)
    response.headers["X-RateLimit-Remaining"] = str(result["remaining"])
    response.headers["X-RateLimit-Reset"] = str(int(result["resetAt"]))
    return result


def _stacks_response(
    request: Request,
    team_id: str,
    events: Any,
    games: Any,
    preferences: Any,
) -> Dict[str, Any]:
    try:
        result = build_stacks_for_games(
            events,
            games,
            team_id,
            preferences=preferences,
            cache=request.app.state.stack_cache,
        )
    except InvalidTeamIdError as e:
        raise HTTPException(status_code=400, detail=str(e))

    fresh = freshness_status(result["aggregate"]["lastEventAt"], _now_ms(), label="Live stats")
    return {**result, "freshness": fresh}


# ---------------- Stacks from a caller-supplied event set ----------------
@router.post("/{team_id}/stacks")
async def post_stacks(
    team_id: str,
    request: Request,
    response: Response,
    payload: Dict[str, Any] = Body(...),
):
    """
    Body: {"events": [...], "games": [...], "preferences": {...}?}
    Returns {stacks, aggregate, projection, signature, freshness}.
    """
    await _guard(request, response, team_id)

    events = payload.get("events")
    games = payload.get("games")
    if not isinstance(events, list) or not isinstance(games, list):
        raise HTTPException(status_code=400, detail="events and games must be lists")

    out = _stacks_response(request, team_id, events, games, payload.get("preferences"))
    logger.info("ANALYTICS stacks team=%s events=%d games=%d", team_id, len(events), len(games))
    return out


# ---------------- Stacks from storage ----------------
@router.get("/{team_id}/stacks")
async def get_stacks(team_id: str, request: Request, response: Response):
    await _guard(request, response, team_id)

    if not db.engine_ready():
        raise HTTPException(status_code=503, detail="storage_unavailable")

    try:
        events, games, prefs = await asyncio.gather(
            load_play_events(team_id),
            load_games(team_id),
            load_analytics_preferences(team_id),
        )
    except Exception as e:
        logger.exception("ANALYTICS load failed team=%s: %s", team_id, e)
        raise HTTPException(status_code=502, detail="storage_query_failed")

    return _stacks_response(request, team_id, events, games, prefs)


# ---------------- Freshness badge ----------------
@router.get("/{team_id}/freshness")
async def get_freshness(
    team_id: str,
    request: Request,
    response: Response,
    lastUpdated: Optional[str] = Query(None, description="ISO-8601 timestamp of the last update"),
    label: str = Query("Data", max_length=64),
    now: Optional[float] = Query(None, description="epoch ms; defaults to server time"),
):
    await _guard(request, response, team_id)
    return freshness_status(lastUpdated, now if now is not None else _now_ms(), label=label)

# gridstats/services/pipeline.py
from __future__ import annotations

import hashlib
import json
import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from gridstats.core.errors import InvalidTeamIdError
from gridstats.models.classification import as_number
from gridstats.models.projection_model import project_season
from gridstats.models.types import (
    Aggregate,
    AnalyticsPreferences,
    GameMeta,
    PlayEvent,
    Stack,
    StacksResult,
)
from gridstats.services.preferences import apply_analytics_preferences, resolve_preferences
from gridstats.services.stack_cache import StackCache
from gridstats.services.timestamps import parse_timestamp, to_iso

logger = logging.getLogger("gridstats.pipeline")

# Classified event fields that feed the signature. Together with the game ids
# they cover every input to the aggregate.
SIGNATURE_FIELDS = (
    "id", "gameId", "createdAt", "gainedYards", "playFamily",
    "turnover", "success", "explosive", "scoring",
)


def _require_team_id(team_id: Any) -> str:
    if not isinstance(team_id, str) or not team_id.strip():
        raise InvalidTeamIdError(f"teamId must be a non-empty string, got {team_id!r}")
    return team_id


def _event_sort_key(ev: Mapping[str, Any]) -> str:
    return str(ev.get("id") or "")


def compute_signature(
    team_id: str,
    preferences: AnalyticsPreferences,
    events: Iterable[Mapping[str, Any]],
    game_ids: Iterable[str] = (),
) -> str:
    """
    sha256 over teamId, the preference values in effect, the game ids and each
    event's signature fields, events sorted by id so input order does not matter.
    """
    rows = [{k: ev.get(k) for k in SIGNATURE_FIELDS} for ev in events]
    rows.sort(key=lambda r: (str(r.get("id") or ""), json.dumps(r, sort_keys=True, default=str)))
    payload = {
        "teamId": team_id,
        "preferences": {k: preferences[k] for k in sorted(preferences)},
        "games": sorted(str(g) for g in game_ids),
        "events": rows,
    }
    blob = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


def _rate(count: int, plays: int) -> float:
    return count / plays if plays else 0.0


def build_game_stack(
    game: Mapping[str, Any],
    events: List[PlayEvent],
    team_id: str,
    preferences: AnalyticsPreferences,
) -> Stack:
    """Summarise one game's already-classified events."""
    plays = len(events)
    total_yards = 0.0
    successes = explosives = turnovers = 0
    positions: List[float] = []
    last_ms: Optional[float] = None

    for ev in events:
        total_yards += as_number(ev.get("gainedYards")) or 0.0
        successes += 1 if ev.get("success") else 0
        explosives += 1 if ev.get("explosive") else 0
        turnovers += 1 if ev.get("turnover") else 0

        pos = ev.get("fieldPosition")
        if isinstance(pos, float) and not math.isnan(pos):
            positions.append(pos)

        ts = parse_timestamp(ev.get("createdAt"))
        if ts is not None and (last_ms is None or ts > last_ms):
            last_ms = ts

    game_id = str(game.get("id"))
    return {
        "gameId": game_id,
        "opponent": game.get("opponentName"),
        "startTime": game.get("startTime"),
        "seasonLabel": game.get("seasonLabel"),
        "status": game.get("status"),
        "plays": plays,
        "totalYards": total_yards,
        "successRate": _rate(successes, plays),
        "explosiveRate": _rate(explosives, plays),
        "turnoverRate": _rate(turnovers, plays),
        "avgFieldPosition": (sum(positions) / len(positions)) if positions else None,
        "lastEventAt": to_iso(last_ms) if last_ms is not None else None,
        "signature": compute_signature(f"{team_id}|{game_id}", preferences, events),
    }


def aggregate_stacks(team_id: str, stacks: List[Stack]) -> Aggregate:
    """Plays-weighted rollup; games with zero plays carry zero weight."""
    plays = sum(s["plays"] for s in stacks)

    def weighted(field: str) -> float:
        if not plays:
            return 0.0
        return sum(s[field] * s["plays"] for s in stacks) / plays  # type: ignore[literal-required]

    last_ms: Optional[float] = None
    for s in stacks:
        ts = parse_timestamp(s["lastEventAt"])
        if ts is not None and (last_ms is None or ts > last_ms):
            last_ms = ts

    return {
        "teamId": team_id,
        "games": len(stacks),
        "gamesWithPlays": sum(1 for s in stacks if s["plays"] > 0),
        "plays": plays,
        "totalYards": sum(s["totalYards"] for s in stacks),
        "successRate": weighted("successRate"),
        "explosiveRate": weighted("explosiveRate"),
        "turnoverRate": weighted("turnoverRate"),
        "lastEventAt": to_iso(last_ms) if last_ms is not None else None,
    }


def build_stacks_for_games(
    events: Iterable[Mapping[str, Any]],
    games: Iterable[Mapping[str, Any]],
    team_id: str,
    preferences: Optional[Mapping[str, Any]] = None,
    cache: Optional[StackCache] = None,
) -> StacksResult:
    """
    Per-game Stacks, the team Aggregate and its Projection for one tenant.

    Stacks are rebuilt on every call. The aggregate/projection pair comes from
    `cache` when the signature is unchanged, so callers can compare them with `is`.
    Without a cache every call returns fresh objects.
    """
    team_id = _require_team_id(team_id)
    prefs = resolve_preferences(preferences)

    game_list: List[GameMeta] = []
    seen = set()
    for g in games or []:
        if not isinstance(g, Mapping) or g.get("id") is None:
            continue
        gid = str(g["id"])
        if gid in seen:
            continue
        seen.add(gid)
        game_list.append(g)  # type: ignore[arg-type]

    own = [
        ev for ev in (events or [])
        if isinstance(ev, Mapping)
        and ev.get("teamId") == team_id
        and ev.get("gameId") is not None
        and str(ev.get("gameId")) in seen
    ]
    adjusted = apply_analytics_preferences(own, prefs)

    by_game: Dict[str, List[PlayEvent]] = {}
    for ev in adjusted:
        by_game.setdefault(str(ev["gameId"]), []).append(ev)
    for bucket in by_game.values():
        bucket.sort(key=_event_sort_key)

    stacks = [build_game_stack(g, by_game.get(str(g["id"]), []), team_id, prefs) for g in game_list]
    signature = compute_signature(team_id, prefs, adjusted, seen)

    if cache is not None:
        hit = cache.get(team_id, signature)
        if hit is not None:
            logger.debug("PIPELINE cache hit team=%s sig=%s", team_id, signature[:12])
            return {
                "stacks": stacks,
                "aggregate": hit["aggregate"],
                "projection": hit["projection"],
                "signature": signature,
            }

    aggregate = aggregate_stacks(team_id, stacks)
    projection = project_season(aggregate)
    if cache is not None:
        cache.put(team_id, signature, aggregate, projection)
        logger.debug("PIPELINE cache miss team=%s sig=%s", team_id, signature[:12])

    logger.info(
        "PIPELINE team=%s games=%d plays=%d winRate=%.3f",
        team_id, len(stacks), aggregate["plays"], projection["projectedWinRate"],
    )
    return {"stacks": stacks, "aggregate": aggregate, "projection": projection, "signature": signature}


class AggregationPipeline:
    """build_stacks_for_games bound to an explicit cache."""

    def __init__(self, cache: Optional[StackCache] = None):
        self.cache = cache if cache is not None else StackCache()

    def build(
        self,
        events: Iterable[Mapping[str, Any]],
        games: Iterable[Mapping[str, Any]],
        team_id: str,
        preferences: Optional[Mapping[str, Any]] = None,
    ) -> StacksResult:
        return build_stacks_for_games(events, games, team_id, preferences=preferences, cache=self.cache)

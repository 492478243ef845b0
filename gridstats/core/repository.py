# gridstats/core/repository.py
from typing import Any, Dict, List, Mapping
from datetime import datetime, timezone

from gridstats.core.db import fetch_all
from gridstats.models.types import GameMeta, PlayEvent

# Read side only. Aggregates are never written back.

EVENT_COLUMNS = ", ".join([
    "id", "team_id", "game_id", "play_family", "gained_yards", "down", "distance",
    "ball_on", "quarter", "clock_seconds", "created_at", "turnover", "turnover_type",
    "possession", "scoring_points", "scoring_type", "scoring_team_side",
    "st_return_yards", "tags",
])

EVENTS_SQL = f"""
SELECT {EVENT_COLUMNS}
FROM chart_events
WHERE team_id = :team_id
ORDER BY created_at ASC, id ASC;
"""

GAMES_SQL = """
SELECT id, opponent_name, start_time, season_label, status
FROM games
WHERE team_id = :team_id
ORDER BY start_time ASC NULLS LAST, id ASC;
"""

PREFERENCES_SQL = """
SELECT cd.explosive_run_threshold, cd.explosive_pass_threshold, tp.include_turnover_on_downs
FROM teams t
LEFT JOIN charting_defaults cd ON cd.team_id = t.id
LEFT JOIN team_preferences tp ON tp.team_id = t.id
WHERE t.id = :team_id;
"""

def _iso(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    return str(value)

def _num(value: Any) -> float | None:
    # Postgres numeric comes back as Decimal
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None

def _int(value: Any) -> int | None:
    n = _num(value)
    return int(n) if n is not None else None

def _lost_by_side(row: Mapping[str, Any]) -> str:
    return "OPPONENT" if row.get("possession") == "DEFENSE" else "TEAM"

def map_chart_row(row: Mapping[str, Any]) -> PlayEvent:
    """chart_events row (snake_case) -> PlayEvent (camelCase)."""
    turnover_type = row.get("turnover_type")
    detail = None
    if turnover_type:
        detail = {
            "type": str(turnover_type).upper(),
            "lostBy": "OFFENSE" if row.get("possession") != "DEFENSE" else "DEFENSE",
            "lostBySide": _lost_by_side(row),
        }

    scoring = None
    if row.get("scoring_points") is not None or row.get("scoring_type"):
        scoring = {
            "type": row.get("scoring_type") or "OTHER",
            "points": _int(row.get("scoring_points")) or 0,
            "scoring_team_side": row.get("scoring_team_side") or "TEAM",
        }

    raw_turnover = row.get("turnover")
    family = row.get("play_family")
    return {
        "id": str(row.get("id")),
        "teamId": str(row.get("team_id")),
        "gameId": str(row.get("game_id")) if row.get("game_id") is not None else None,
        "playFamily": str(family).upper() if family else None,
        "gainedYards": _num(row.get("gained_yards")),
        "down": _int(row.get("down")),
        "distance": _num(row.get("distance")),
        "ballOn": row.get("ball_on"),
        "quarter": _int(row.get("quarter")),
        "clockSeconds": _int(row.get("clock_seconds")),
        "createdAt": _iso(row.get("created_at")),
        "turnover": raw_turnover if isinstance(raw_turnover, bool) else detail is not None,
        "turnoverDetail": detail,
        "scoring": scoring,
        "tags": list(row.get("tags") or []),
        "stReturnYards": _num(row.get("st_return_yards")),
    }

def map_game_row(row: Mapping[str, Any]) -> GameMeta:
    return {
        "id": str(row.get("id")),
        "opponentName": row.get("opponent_name"),
        "startTime": _iso(row.get("start_time")),
        "seasonLabel": row.get("season_label"),
        "status": row.get("status"),
    }

def map_preferences_row(row: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Only fields the tenant actually set; the overlay fills the rest."""
    if not row:
        return {}
    out: Dict[str, Any] = {}
    if row.get("explosive_run_threshold") is not None:
        out["explosiveRunYards"] = _num(row["explosive_run_threshold"])
    if row.get("explosive_pass_threshold") is not None:
        out["explosivePassYards"] = _num(row["explosive_pass_threshold"])
    if row.get("include_turnover_on_downs") is not None:
        out["includeTurnoverOnDowns"] = bool(row["include_turnover_on_downs"])
    return out

async def load_play_events(team_id: str) -> List[PlayEvent]:
    rows = await fetch_all(EVENTS_SQL, {"team_id": team_id})
    return [map_chart_row(r) for r in rows]

async def load_games(team_id: str) -> List[GameMeta]:
    rows = await fetch_all(GAMES_SQL, {"team_id": team_id})
    return [map_game_row(r) for r in rows]

async def load_analytics_preferences(team_id: str) -> Dict[str, Any]:
    rows = await fetch_all(PREFERENCES_SQL, {"team_id": team_id})
    return map_preferences_row(rows[0] if rows else None)

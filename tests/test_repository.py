from datetime import datetime, timezone
from decimal import Decimal

from gridstats.core.db import normalize_database_url
from gridstats.core.repository import map_chart_row, map_game_row, map_preferences_row
from gridstats.services.preferences import apply_analytics_preferences


def test_map_chart_row_builds_play_event():
    row = {
        "id": 101,
        "team_id": "team-1",
        "game_id": "game-1",
        "play_family": "run",
        "gained_yards": Decimal("4.0"),
        "down": 4,
        "distance": Decimal("6"),
        "ball_on": "D35",
        "quarter": 4,
        "clock_seconds": 120,
        "created_at": datetime(2025, 8, 1, 0, 0, 20, tzinfo=timezone.utc),
        "turnover": None,
        "turnover_type": "downs",
        "possession": "OFFENSE",
        "scoring_points": None,
        "scoring_type": None,
        "scoring_team_side": None,
        "st_return_yards": None,
        "tags": ["goal-to-go"],
    }
    ev = map_chart_row(row)
    assert ev["id"] == "101"
    assert ev["playFamily"] == "RUN"
    assert ev["gainedYards"] == 4.0
    assert ev["distance"] == 6.0
    assert ev["createdAt"] == "2025-08-01T00:00:20Z"
    assert ev["turnover"] is True
    assert ev["turnoverDetail"] == {"type": "DOWNS", "lostBy": "OFFENSE", "lostBySide": "TEAM"}
    assert ev["scoring"] is None
    assert ev["tags"] == ["goal-to-go"]

    adjusted = apply_analytics_preferences([ev], {"includeTurnoverOnDowns": False})
    assert adjusted[0]["turnover"] is False


def test_map_chart_row_scoring_and_naive_timestamp():
    ev = map_chart_row({
        "id": "x",
        "team_id": "t",
        "game_id": "g",
        "play_family": "PASS",
        "gained_yards": 35,
        "created_at": datetime(2025, 8, 1, 12, 0, 0),
        "turnover": False,
        "scoring_points": 7,
        "scoring_type": "TD",
    })
    assert ev["createdAt"] == "2025-08-01T12:00:00Z"
    assert ev["turnover"] is False
    assert ev["scoring"] == {"type": "TD", "points": 7, "scoring_team_side": "TEAM"}


def test_map_game_row():
    game = map_game_row({
        "id": "game-1",
        "opponent_name": "Rivals",
        "start_time": datetime(2025, 8, 2, 18, 0, tzinfo=timezone.utc),
        "season_label": "2025",
        "status": "final",
    })
    assert game == {
        "id": "game-1",
        "opponentName": "Rivals",
        "startTime": "2025-08-02T18:00:00Z",
        "seasonLabel": "2025",
        "status": "final",
    }


def test_map_preferences_row_only_sets_present_fields():
    assert map_preferences_row(None) == {}
    assert map_preferences_row({
        "explosive_run_threshold": 15,
        "explosive_pass_threshold": None,
        "include_turnover_on_downs": False,
    }) == {"explosiveRunYards": 15.0, "includeTurnoverOnDowns": False}


def test_normalize_database_url():
    assert (
        normalize_database_url("postgres://u:p@db.example.com:5432/stats")
        == "postgresql+asyncpg://u:p@db.example.com:5432/stats?ssl=require"
    )
    assert (
        normalize_database_url("postgresql+psycopg2://u:p@h/stats?sslmode=disable")
        == "postgresql+asyncpg://u:p@h/stats?ssl=disable"
    )
    assert normalize_database_url("") == ""

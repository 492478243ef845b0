import copy
import logging
import math

from conftest import make_event
from gridstats.services.preferences import (
    DEFAULT_PREFERENCES,
    apply_analytics_preferences,
    resolve_preferences,
)


def _scenario_events():
    return [
        make_event("1", teamId="t", gameId="g", playFamily="RUN", gainedYards=18),
        make_event("2", teamId="t", gameId="g", playFamily="PASS", gainedYards=30),
        make_event(
            "3",
            teamId="t",
            gameId="g",
            playFamily="RUN",
            gainedYards=2,
            turnover=True,
            turnoverDetail={"type": "DOWNS", "lostBy": "OFFENSE", "lostBySide": "TEAM"},
        ),
    ]


def test_custom_thresholds_and_turnover_on_downs_opt_out():
    prefs = {"explosiveRun": 15, "explosivePass": 25, "includeTurnoverOnDowns": False}
    adjusted = apply_analytics_preferences(_scenario_events(), prefs)

    assert adjusted[0]["explosive"] is True
    assert adjusted[1]["explosive"] is True
    assert adjusted[2]["turnover"] is False
    assert adjusted[2]["turnoverDetail"] is None


def test_turnover_on_downs_kept_when_included():
    prefs = {"explosiveRunYards": 15, "explosivePassYards": 25, "includeTurnoverOnDowns": True}
    adjusted = apply_analytics_preferences(_scenario_events(), prefs)
    assert adjusted[2]["turnover"] is True
    assert adjusted[2]["turnoverDetail"]["type"] == "DOWNS"


def test_inputs_are_not_mutated_and_output_is_repeatable():
    events = _scenario_events()
    snapshot = copy.deepcopy(events)
    prefs = {"explosiveRun": 15, "explosivePass": 25, "includeTurnoverOnDowns": False}

    first = apply_analytics_preferences(events, prefs)
    second = apply_analytics_preferences(events, prefs)

    assert events == snapshot
    assert first is not events
    assert all(a is not b for a, b in zip(first, events))
    assert [(e["explosive"], e["turnover"], e["success"]) for e in first] == [
        (e["explosive"], e["turnover"], e["success"]) for e in second
    ]


def test_missing_preferences_use_defaults():
    assert resolve_preferences(None) == DEFAULT_PREFERENCES
    assert resolve_preferences({}) == DEFAULT_PREFERENCES
    adjusted = apply_analytics_preferences([make_event("a", playFamily="RUN", gainedYards=12)])
    assert adjusted[0]["explosive"] is True


def test_invalid_fields_fall_back_to_defaults(caplog):
    raw = {"explosiveRunYards": "abc", "explosivePassYards": -5, "includeTurnoverOnDowns": "no"}
    with caplog.at_level(logging.WARNING, logger="gridstats.preferences"):
        prefs = resolve_preferences(raw)
    assert prefs == DEFAULT_PREFERENCES
    assert "explosiveRunYards" in caplog.text


def test_bool_is_not_a_yardage():
    prefs = resolve_preferences({"explosiveRunYards": True, "explosivePassYards": 22})
    assert prefs["explosiveRunYards"] == DEFAULT_PREFERENCES["explosiveRunYards"]
    assert prefs["explosivePassYards"] == 22.0


def test_overlay_adds_success_and_field_position():
    ev = make_event("a", playFamily="PASS", down=3, distance=7, gainedYards=9, ballOn="D30")
    out = apply_analytics_preferences([ev])[0]
    assert out["success"] is True
    assert out["fieldPosition"] == 70.0

    bad = apply_analytics_preferences([make_event("b", ballOn="??")])[0]
    assert math.isnan(bad["fieldPosition"])


def test_non_mapping_rows_are_skipped():
    out = apply_analytics_preferences([None, "oops", make_event("a")])
    assert [e["id"] for e in out] == ["a"]

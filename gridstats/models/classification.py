# gridstats/models/classification.py
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

# Tenant-facing defaults (charting settings screen)
DEFAULT_EXPLOSIVE_RUN_YARDS = 12.0
DEFAULT_EXPLOSIVE_PASS_YARDS = 18.0
DEFAULT_EXPLOSIVE_RETURN_YARDS = 30.0

# Down-and-distance efficiency rule
DEFAULT_FIRST_DOWN_PCT = 0.5
DEFAULT_SECOND_DOWN_PCT = 0.7

KNOWN_FAMILIES = ("RUN", "PASS", "RPO", "SPECIAL_TEAMS")

_BALL_ON_RE = re.compile(r"^\s*([ODX])?\s*(\d+(?:\.\d+)?)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class Thresholds:
    """Classification policy for one tenant."""

    explosive_run_yards: float = DEFAULT_EXPLOSIVE_RUN_YARDS
    explosive_pass_yards: float = DEFAULT_EXPLOSIVE_PASS_YARDS
    explosive_return_yards: float = DEFAULT_EXPLOSIVE_RETURN_YARDS
    first_down_pct: float = DEFAULT_FIRST_DOWN_PCT
    first_down_yards: Optional[float] = None
    second_down_pct: float = DEFAULT_SECOND_DOWN_PCT
    include_turnover_on_downs: bool = True

    @classmethod
    def from_preferences(cls, prefs: Mapping[str, Any]) -> "Thresholds":
        return cls(
            explosive_run_yards=float(prefs["explosiveRunYards"]),
            explosive_pass_yards=float(prefs["explosivePassYards"]),
            include_turnover_on_downs=bool(prefs["includeTurnoverOnDowns"]),
        )


DEFAULT_THRESHOLDS = Thresholds()


def as_number(value: Any) -> Optional[float]:
    """float(value) for real numbers; None for bools, strings, NaN and friends."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def play_family(event: Mapping[str, Any]) -> Optional[str]:
    fam = event.get("playFamily")
    if isinstance(fam, str) and fam.upper() in KNOWN_FAMILIES:
        return fam.upper()
    return None


def is_successful_play(event: Mapping[str, Any], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> bool:
    """
    1st down: half the distance (or the tenant's fixed minimum, capped at the distance).
    2nd down: second_down_pct of the distance.
    3rd/4th: full conversion.
    Anything missing -> not successful.
    """
    if play_family(event) is None:
        return False
    down = as_number(event.get("down"))
    distance = as_number(event.get("distance"))
    gained = as_number(event.get("gainedYards"))
    if down is None or distance is None or gained is None:
        return False

    if down == 1:
        if thresholds.first_down_yards is not None:
            return gained >= min(thresholds.first_down_yards, distance)
        return gained >= distance * thresholds.first_down_pct
    if down == 2:
        return gained >= distance * thresholds.second_down_pct
    if down in (3, 4):
        return gained >= distance
    return False


def is_explosive_play(event: Mapping[str, Any], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> bool:
    gained = as_number(event.get("gainedYards"))
    if gained is None:
        return False
    family = play_family(event)
    if family == "RUN":
        return gained >= thresholds.explosive_run_yards
    if family in ("PASS", "RPO"):
        return gained >= thresholds.explosive_pass_yards
    if family == "SPECIAL_TEAMS":
        ret = as_number(event.get("stReturnYards"))
        yards = ret if ret is not None else gained
        return yards >= max(thresholds.explosive_return_yards, thresholds.explosive_pass_yards)
    return False


def classify_turnover(event: Mapping[str, Any], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> bool:
    """Raw flag, except a turnover on downs is dropped when the tenant opts out."""
    detail = event.get("turnoverDetail")
    on_downs = isinstance(detail, Mapping) and detail.get("type") == "DOWNS"
    if on_downs and thresholds.include_turnover_on_downs is False:
        return False
    return bool(event.get("turnover"))


def field_position(ball_on: Any) -> float:
    """
    "O25" -> 25 (own side), "D43" -> 57 (opponent side), "X" reads like "D".
    0 = own goal line, 100 = opponent goal line. Returns NaN when unparseable.
    """
    if not isinstance(ball_on, str):
        return math.nan
    m = _BALL_ON_RE.match(ball_on)
    if not m:
        return math.nan
    side, num = m.group(1), float(m.group(2))
    if num > 100:
        return math.nan
    if side and side.upper() in ("D", "X"):
        return 100.0 - num
    return num


def field_zone(position: Optional[float]) -> Optional[str]:
    if position is None or math.isnan(position):
        return None
    if position <= 10:
        return "BACKED_UP"
    if position <= 25:
        return "COMING_OUT"
    if position >= 80:
        return "RED_ZONE"
    if position >= 60:
        return "SCORING_RANGE"
    return "OPEN_FIELD"


class Classifier:
    """The classification rules bound to one tenant's thresholds."""

    def __init__(self, thresholds: Thresholds = DEFAULT_THRESHOLDS):
        self.thresholds = thresholds

    def is_successful(self, event: Mapping[str, Any]) -> bool:
        return is_successful_play(event, self.thresholds)

    def is_explosive(self, event: Mapping[str, Any]) -> bool:
        return is_explosive_play(event, self.thresholds)

    def classify_turnover(self, event: Mapping[str, Any]) -> bool:
        return classify_turnover(event, self.thresholds)

    @staticmethod
    def field_position(ball_on: Any) -> float:
        return field_position(ball_on)

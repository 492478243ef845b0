# gridstats/services/preferences.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from gridstats.core.errors import PreferenceValidationError
from gridstats.models.classification import (
    DEFAULT_EXPLOSIVE_PASS_YARDS,
    DEFAULT_EXPLOSIVE_RUN_YARDS,
    Classifier,
    Thresholds,
    as_number,
)
from gridstats.models.types import AnalyticsPreferences, PlayEvent

logger = logging.getLogger("gridstats.preferences")

DEFAULT_PREFERENCES: AnalyticsPreferences = {
    "explosiveRunYards": DEFAULT_EXPLOSIVE_RUN_YARDS,
    "explosivePassYards": DEFAULT_EXPLOSIVE_PASS_YARDS,
    "includeTurnoverOnDowns": True,
}

# settings store / older clients use the short names
_ALIASES = {
    "explosiveRunYards": ("explosiveRunYards", "explosiveRun"),
    "explosivePassYards": ("explosivePassYards", "explosivePass"),
    "includeTurnoverOnDowns": ("includeTurnoverOnDowns",),
}

MAX_THRESHOLD_YARDS = 100.0


def _lookup(raw: Mapping[str, Any], field: str) -> Any:
    for name in _ALIASES[field]:
        if raw.get(name) is not None:
            return raw[name]
    return None


def _validate_yards(field: str, value: Any) -> float:
    num = as_number(value)
    if num is None:
        raise PreferenceValidationError(field, value, "not a number")
    if num <= 0 or num > MAX_THRESHOLD_YARDS:
        raise PreferenceValidationError(field, value, f"must be in (0, {MAX_THRESHOLD_YARDS:g}]")
    return num


def _validate_flag(field: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise PreferenceValidationError(field, value, "not a boolean")
    return value


def resolve_preferences(raw: Optional[Mapping[str, Any]]) -> AnalyticsPreferences:
    """
    Fill missing fields with defaults; invalid fields are logged and replaced
    with the default instead of failing the request.
    """
    prefs: Dict[str, Any] = dict(DEFAULT_PREFERENCES)
    if not isinstance(raw, Mapping):
        return prefs  # type: ignore[return-value]

    checks = (
        ("explosiveRunYards", _validate_yards),
        ("explosivePassYards", _validate_yards),
        ("includeTurnoverOnDowns", _validate_flag),
    )
    for field, check in checks:
        value = _lookup(raw, field)
        if value is None:
            continue
        try:
            prefs[field] = check(field, value)
        except PreferenceValidationError as exc:
            logger.warning("PREFS invalid %s; using default %r", exc, DEFAULT_PREFERENCES[field])
    return prefs  # type: ignore[return-value]


def apply_analytics_preferences(
    events: Iterable[Mapping[str, Any]],
    preferences: Optional[Mapping[str, Any]] = None,
) -> List[PlayEvent]:
    """
    Returns copies of `events` with explosive / turnover / success / fieldPosition
    recomputed under the tenant's preferences. Inputs are never mutated.
    """
    prefs = resolve_preferences(preferences)
    clf = Classifier(Thresholds.from_preferences(prefs))

    out: List[PlayEvent] = []
    for ev in events:
        if not isinstance(ev, Mapping):
            continue
        turnover = clf.classify_turnover(ev)
        detail = ev.get("turnoverDetail")
        if (
            not turnover
            and isinstance(detail, Mapping)
            and detail.get("type") == "DOWNS"
            and not prefs["includeTurnoverOnDowns"]
        ):
            detail = None
        out.append({
            **ev,
            "explosive": clf.is_explosive(ev),
            "success": clf.is_successful(ev),
            "turnover": turnover,
            "turnoverDetail": detail,
            "fieldPosition": clf.field_position(ev.get("ballOn")),
        })
    return out

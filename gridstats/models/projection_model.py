# gridstats/models/projection_model.py
from typing import Mapping, Any

from gridstats.models.types import Projection

# Rule-based weights on the team aggregate. Success is centred on a coin flip.
W_SUCCESS = 0.4
W_EXPLOSIVE = 0.3
W_TURNOVER = 0.5

def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(x, hi))

def project_season(aggregate: Mapping[str, Any]) -> Projection:
    """
    projectedWinRate = clamp(0.5 + 0.4*(success - 0.5) + 0.3*explosive - 0.5*turnover, 0, 1)
    """
    success = float(aggregate.get("successRate") or 0.0)
    explosive = float(aggregate.get("explosiveRate") or 0.0)
    turnover = float(aggregate.get("turnoverRate") or 0.0)
    wp = 0.5 + W_SUCCESS * (success - 0.5) + W_EXPLOSIVE * explosive - W_TURNOVER * turnover
    return {
        "projectedWinRate": _clamp(wp, 0.0, 1.0),
        "gamesModeled": int(aggregate.get("gamesWithPlays") or 0),
    }

# gridstats/models/types.py
from typing_extensions import TypedDict, Literal, NotRequired
from typing import Any, Dict, List, Optional

PlayFamily = Literal["RUN", "PASS", "RPO", "SPECIAL_TEAMS"]
FreshnessState = Literal["fresh", "stale", "offline"]
FieldZone = Literal["BACKED_UP", "COMING_OUT", "OPEN_FIELD", "SCORING_RANGE", "RED_ZONE"]

class TurnoverDetail(TypedDict):
    type: str
    lostBy: Optional[str]
    lostBySide: Optional[str]

class PlayEvent(TypedDict):
    id: str
    teamId: str
    gameId: str
    playFamily: Optional[str]
    gainedYards: Optional[float]
    down: Optional[int]
    distance: Optional[float]
    ballOn: Optional[str]
    quarter: Optional[int]
    clockSeconds: Optional[int]
    createdAt: Optional[str]
    turnover: bool
    turnoverDetail: Optional[TurnoverDetail]
    scoring: Optional[Dict[str, Any]]
    tags: List[str]
    stReturnYards: NotRequired[Optional[float]]
    # filled in by the preference overlay
    explosive: NotRequired[bool]
    success: NotRequired[bool]
    fieldPosition: NotRequired[float]

class GameMeta(TypedDict):
    id: str
    opponentName: Optional[str]
    startTime: Optional[str]
    seasonLabel: Optional[str]
    status: Optional[str]

class AnalyticsPreferences(TypedDict):
    explosiveRunYards: float
    explosivePassYards: float
    includeTurnoverOnDowns: bool

class Stack(TypedDict):
    gameId: str
    opponent: Optional[str]
    startTime: Optional[str]
    seasonLabel: Optional[str]
    status: Optional[str]
    plays: int
    totalYards: float
    successRate: float
    explosiveRate: float
    turnoverRate: float
    avgFieldPosition: Optional[float]
    lastEventAt: Optional[str]
    signature: str

class Aggregate(TypedDict):
    teamId: str
    games: int
    gamesWithPlays: int
    plays: int
    totalYards: float
    successRate: float
    explosiveRate: float
    turnoverRate: float
    lastEventAt: Optional[str]

class Projection(TypedDict):
    projectedWinRate: float
    gamesModeled: int

class CacheEntry(TypedDict):
    teamId: str
    signature: str
    aggregate: Aggregate
    projection: Projection
    computedAt: float

class StacksResult(TypedDict):
    stacks: List[Stack]
    aggregate: Aggregate
    projection: Projection
    signature: str

class RateLimitResult(TypedDict):
    allowed: bool
    remaining: int
    resetAt: float

class FreshnessStatus(TypedDict):
    label: str
    state: FreshnessState
    relative: str
    lastUpdated: Optional[str]

import pytest


class FakeClock:
    def __init__(self, start: float = 1_700_000_000_000.0):
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, ms: float) -> None:
        self.t += ms


@pytest.fixture
def clock():
    return FakeClock()


def make_event(id, **kw):
    ev = {
        "id": id,
        "teamId": "team-1",
        "gameId": "game-1",
        "playFamily": "RUN",
        "gainedYards": 0,
        "down": None,
        "distance": None,
        "ballOn": None,
        "quarter": 1,
        "clockSeconds": 900,
        "createdAt": None,
        "turnover": False,
        "turnoverDetail": None,
        "scoring": None,
        "tags": [],
    }
    ev.update(kw)
    return ev


@pytest.fixture
def game_events():
    return [
        make_event(
            "g1-play-1",
            playFamily="RUN",
            gainedYards=6,
            down=1,
            distance=10,
            ballOn="O25",
            createdAt="2025-08-01T00:00:00Z",
        ),
        make_event(
            "g1-play-2",
            playFamily="PASS",
            gainedYards=18,
            down=2,
            distance=4,
            ballOn="O43",
            clockSeconds=880,
            createdAt="2025-08-01T00:00:20Z",
            scoring={"type": "TD", "points": 7, "scoring_team_side": "TEAM"},
        ),
    ]


@pytest.fixture
def games():
    return [
        {
            "id": "game-1",
            "opponentName": "Rivals",
            "startTime": "2025-08-02T18:00:00Z",
            "seasonLabel": "2025",
            "status": "scheduled",
        },
    ]

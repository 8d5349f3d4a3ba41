"""Shared pytest fixtures for lappeleken tests."""
import sys
from pathlib import Path
from typing import AsyncGenerator, Dict, Generator, Iterable, List, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from lappeleken.core.circuit_breaker import football_data_breaker
from lappeleken.models.game import Player, Position, Team
from lappeleken.models.match import (
    Competition,
    Lineup,
    Match,
    MatchDetail,
    MatchStatus,
    MatchUpdate,
    TeamLineup,
)
from lappeleken.services.football_data.errors import FootballDataError
from lappeleken.services.football_data.sample_data import SampleDataService
from lappeleken.services.football_data.service import ServiceCapability
from lappeleken.services.game_session import GameSession
from lappeleken.services.persistence import InMemoryGameStore


@pytest.fixture(autouse=True)
def reset_circuit_breaker():
    """The football-data breaker is process-wide; start every test closed."""
    football_data_breaker.close()
    yield
    football_data_breaker.close()


# Entity builders
# ─────────────────────────────────────────────────────────────

@pytest.fixture
def home_team() -> Team:
    return Team(id="team-ars", api_id="57", name="Arsenal", short_name="ARS")


@pytest.fixture
def away_team() -> Team:
    return Team(id="team-che", api_id="61", name="Chelsea", short_name="CHE")


def make_player(name: str, team: Team, api_id: Optional[str] = None,
                position: Position = Position.MIDFIELDER) -> Player:
    slug = name.lower().replace(" ", "-")
    return Player(id=f"player-{slug}", api_id=api_id, name=name, team=team, position=position)


@pytest.fixture
def squad(home_team, away_team) -> List[Player]:
    """Four home and four away players with feed ids."""
    return [
        make_player("Bukayo Saka", home_team, "7001", Position.FORWARD),
        make_player("Martin Ødegaard", home_team, "7002"),
        make_player("Declan Rice", home_team, "7003"),
        make_player("William Saliba", home_team, "7004", Position.DEFENDER),
        make_player("Cole Palmer", away_team, "8001", Position.FORWARD),
        make_player("Enzo Fernández", away_team, "8002"),
        make_player("Moisés Caicedo", away_team, "8003"),
        make_player("Reece James", away_team, "8004", Position.DEFENDER),
    ]


@pytest.fixture
def match(home_team, away_team) -> Match:
    from lappeleken.models.game import utc_now
    return Match(
        id="500",
        home_team=home_team,
        away_team=away_team,
        start_time=utc_now(),
        status=MatchStatus.IN_PROGRESS,
        competition=Competition(id="2021", name="Premier League", code="PL"),
    )


# Collaborator fakes
# ─────────────────────────────────────────────────────────────

class FakeMatchSource:
    """
    In-memory enhanced match data source.

    ``updates`` is consumed one item per ``fetch_match_update`` call; an
    exception instance in the queue is raised instead of returned.
    """

    capability = ServiceCapability.ENHANCED

    def __init__(self, matches: Iterable[Match] = (), lineup: Optional[Lineup] = None,
                 players: Iterable[Player] = ()):
        self.matches = list(matches)
        self.lineup = lineup
        self.players = list(players)
        self.updates: List = []
        self.update_calls: List[Dict] = []
        self.closed = False

    async def fetch_live_matches(self, competition_code=None):
        return [m for m in self.matches if m.status.is_live]

    async def fetch_upcoming_matches(self, competition_code=None):
        return [m for m in self.matches if m.status == MatchStatus.UPCOMING]

    async def fetch_matches_in_range(self, days=7):
        return list(self.matches)

    async def fetch_match_details(self, match_id):
        for m in self.matches:
            if m.id == match_id:
                return MatchDetail(match=m)
        raise FootballDataError.server(404, f"match {match_id}")

    async def fetch_match_lineup(self, match_id):
        if self.lineup is None:
            raise FootballDataError.server(404, "no lineup")
        return self.lineup

    async def fetch_match_players(self, match_id):
        return [p.model_copy(deep=True) for p in self.players]

    async def fetch_match_update(self, match_id, seen_event_ids=()):
        self.update_calls.append({"match_id": match_id, "seen": set(seen_event_ids)})
        item = self.updates.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True


class FakeScheduler:
    """Records scheduler calls instead of running APScheduler."""

    def __init__(self):
        self.jobs: Dict[str, Dict] = {}
        self.rescheduled: List[tuple] = []
        self.removed: List[str] = []
        self.running = True

    def add_interval_job(self, func, job_id, seconds, kwargs=None, name=None):
        self.jobs[job_id] = {"func": func, "seconds": seconds, "kwargs": kwargs or {}, "name": name}

    def reschedule(self, job_id, seconds):
        if job_id not in self.jobs:
            return False
        self.jobs[job_id]["seconds"] = seconds
        self.rescheduled.append((job_id, seconds))
        return True

    def remove_job(self, job_id):
        self.removed.append(job_id)
        return self.jobs.pop(job_id, None) is not None

    def has_job(self, job_id):
        return job_id in self.jobs

    def job_ids(self):
        return list(self.jobs)


@pytest.fixture
def fake_source(match, home_team, away_team, squad) -> FakeMatchSource:
    lineup = Lineup(
        home_team=TeamLineup(team=home_team, starting_eleven=[p.model_copy(deep=True) for p in squad[:3]],
                             substitutes=[squad[3].model_copy(deep=True)]),
        away_team=TeamLineup(team=away_team, starting_eleven=[p.model_copy(deep=True) for p in squad[4:7]],
                             substitutes=[squad[7].model_copy(deep=True)]),
    )
    return FakeMatchSource(matches=[match], lineup=lineup, players=squad)


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def store() -> InMemoryGameStore:
    return InMemoryGameStore()


@pytest.fixture
def game(store, squad) -> GameSession:
    """Offline session with the test squad in the available pool."""
    session = GameSession(SampleDataService(), store)
    session.add_players(squad)
    return session


def update_for(match: Match, events=(), status: Optional[MatchStatus] = None) -> MatchUpdate:
    current = match.model_copy(update={"status": status}) if status else match
    return MatchUpdate(match=current, new_events=list(events))


# Database
# ─────────────────────────────────────────────────────────────

@pytest.fixture(scope="function")
def session_factory() -> Generator[sessionmaker, None, None]:
    """Session factory over a fresh in-memory SQLite database."""
    from lappeleken.models.saved_game import Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    yield factory

    engine.dispose()


# HTTP
# ─────────────────────────────────────────────────────────────

@pytest.fixture(scope="function")
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with app state wired to offline collaborators."""
    from lappeleken.main import app
    from lappeleken.services.entitlements import EntitlementGate
    from lappeleken.services.persistence import SqlAlchemyGameStore
    from lappeleken.services.session_registry import SessionRegistry

    source = SampleDataService()
    gate = EntitlementGate()
    app.state.data_source = source
    app.state.entitlements = gate
    app.state.registry = SessionRegistry(source, SqlAlchemyGameStore(session_factory), entitlements=gate)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.state.registry.shutdown()

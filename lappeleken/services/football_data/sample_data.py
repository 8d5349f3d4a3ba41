"""
Offline sample data (basic capability).

A fixed set of teams and players so a game can be played without an API
key or network. There are no live matches or events; live monitoring is
refused for sessions backed by this source.
"""
from datetime import timedelta
from typing import Iterable, List, Optional

from lappeleken.core.logging import get_logger
from lappeleken.models.game import Player, Position, Team, utc_now
from lappeleken.models.match import (
    Competition,
    Lineup,
    Match,
    MatchDetail,
    MatchStatus,
    MatchUpdate,
    TeamLineup,
)
from lappeleken.services.football_data.errors import ApiErrorKind, FootballDataError
from lappeleken.services.football_data.service import ServiceCapability

logger = get_logger(__name__)

# (name, short name, primary colour)
_TEAMS = [
    ("Arsenal", "ARS", "#EF0107"),
    ("Chelsea", "CHE", "#034694"),
    ("Liverpool", "LIV", "#C8102E"),
    ("Manchester City", "MCI", "#6CABDD"),
    ("Manchester United", "MUN", "#DA020E"),
    ("Tottenham", "TOT", "#132257"),
]

# short name -> (player name, position)
_PLAYERS = {
    "ARS": [
        ("Bukayo Saka", Position.FORWARD),
        ("Martin Ødegaard", Position.MIDFIELDER),
        ("Gabriel Jesus", Position.FORWARD),
    ],
    "CHE": [
        ("Enzo Fernández", Position.MIDFIELDER),
        ("Nicolas Jackson", Position.FORWARD),
        ("Raheem Sterling", Position.FORWARD),
    ],
    "LIV": [
        ("Mohamed Salah", Position.FORWARD),
        ("Virgil van Dijk", Position.DEFENDER),
        ("Darwin Núñez", Position.FORWARD),
    ],
    "MCI": [
        ("Erling Haaland", Position.FORWARD),
        ("Kevin De Bruyne", Position.MIDFIELDER),
        ("Phil Foden", Position.MIDFIELDER),
    ],
    "MUN": [
        ("Marcus Rashford", Position.FORWARD),
        ("Bruno Fernandes", Position.MIDFIELDER),
        ("Casemiro", Position.MIDFIELDER),
    ],
    "TOT": [
        ("Son Heung-min", Position.FORWARD),
        ("James Maddison", Position.MIDFIELDER),
        ("Cristian Romero", Position.DEFENDER),
    ],
}

SAMPLE_COMPETITION = Competition(id="sample-pl", name="Premier League", code="PL")


def _slug(value: str) -> str:
    return value.lower().replace(" ", "-")


def sample_teams() -> List[Team]:
    """Fresh Team objects with stable ids."""
    return [
        Team(
            id=f"sample-team-{short.lower()}",
            name=name,
            short_name=short,
            logo_name=f"{_slug(name)}_logo",
            primary_color=color,
        )
        for name, short, color in _TEAMS
    ]


def sample_players(teams: Optional[List[Team]] = None) -> List[Player]:
    """Fresh Player objects; ids are stable so saved games re-link."""
    teams = teams or sample_teams()
    players = []
    for team in teams:
        for name, position in _PLAYERS.get(team.short_name, []):
            players.append(Player(
                id=f"sample-player-{_slug(name)}",
                name=name,
                team=team,
                position=position,
            ))
    return players


def _unavailable(what: str) -> FootballDataError:
    return FootballDataError(ApiErrorKind.UNKNOWN, f"{what} is not available in offline mode")


class SampleDataService:
    """Match data source backed by the static sample set."""

    capability = ServiceCapability.BASIC

    def __init__(self):
        self.teams = sample_teams()
        self.players = sample_players(self.teams)

    async def close(self) -> None:
        return None

    def find_team(self, name: str) -> Optional[Team]:
        """Team by full or short name, case-insensitive."""
        wanted = name.strip().lower()
        for team in self.teams:
            if team.name.lower() == wanted or team.short_name.lower() == wanted:
                return team
        return None

    def search_players(self, term: str) -> List[Player]:
        """Players whose name or team name contains ``term``."""
        term = term.strip().lower()
        return [
            p for p in self.players
            if term in p.name.lower() or term in p.team.name.lower()
        ]

    def _fixtures(self) -> List[Match]:
        kickoff = utc_now().replace(minute=0, second=0, microsecond=0) + timedelta(days=1)
        return [
            Match(
                id=f"sample-{home.short_name.lower()}-{away.short_name.lower()}",
                home_team=home,
                away_team=away,
                start_time=kickoff + timedelta(hours=2 * i),
                status=MatchStatus.UPCOMING,
                competition=SAMPLE_COMPETITION,
            )
            for i, (home, away) in enumerate(zip(self.teams[::2], self.teams[1::2]))
        ]

    def _find_fixture(self, match_id: str) -> Match:
        for match in self._fixtures():
            if match.id == match_id:
                return match
        raise _unavailable(f"Match {match_id}")

    async def fetch_live_matches(self, competition_code: Optional[str] = None) -> List[Match]:
        return []

    async def fetch_upcoming_matches(self, competition_code: Optional[str] = None) -> List[Match]:
        if competition_code and competition_code != SAMPLE_COMPETITION.code:
            return []
        return self._fixtures()

    async def fetch_matches_in_range(self, days: int = 7) -> List[Match]:
        return self._fixtures()

    async def fetch_match_details(self, match_id: str) -> MatchDetail:
        return MatchDetail(match=self._find_fixture(match_id))

    def _team_players(self, team_id: str) -> List[Player]:
        # Copies: each session keeps its own stat counters
        return [p.model_copy(deep=True) for p in self.players if p.team.id == team_id]

    async def fetch_match_players(self, match_id: str) -> List[Player]:
        match = self._find_fixture(match_id)
        return self._team_players(match.home_team.id) + self._team_players(match.away_team.id)

    async def fetch_match_lineup(self, match_id: str) -> Lineup:
        match = self._find_fixture(match_id)
        return Lineup(
            home_team=TeamLineup(
                team=match.home_team,
                starting_eleven=self._team_players(match.home_team.id),
            ),
            away_team=TeamLineup(
                team=match.away_team,
                starting_eleven=self._team_players(match.away_team.id),
            ),
        )

    async def fetch_match_update(self, match_id: str, seen_event_ids: Iterable[str] = ()) -> MatchUpdate:
        raise _unavailable("Live match data")

"""
Match data shapes delivered by the match data collaborator.

``MatchEvent`` is the wire shape of a live event; event ingestion maps it
onto a ``GameEvent`` or a substitution.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from lappeleken.models.game import Player, Team, utc_now


class MatchStatus(str, Enum):
    UPCOMING = "SCHEDULED"
    IN_PROGRESS = "IN_PLAY"
    HALFTIME = "HALFTIME"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"
    POSTPONED = "POSTPONED"
    CANCELLED = "CANCELLED"
    SUSPENDED = "SUSPENDED"
    UNKNOWN = "UNKNOWN"

    @property
    def display_name(self) -> str:
        return _STATUS_DISPLAY[self]

    @property
    def is_live(self) -> bool:
        return self in (MatchStatus.IN_PROGRESS, MatchStatus.HALFTIME, MatchStatus.PAUSED)

    @property
    def is_over(self) -> bool:
        """No further events will arrive for the match."""
        return self in (MatchStatus.FINISHED, MatchStatus.POSTPONED, MatchStatus.CANCELLED)


_STATUS_DISPLAY = {
    MatchStatus.UPCOMING: "Upcoming",
    MatchStatus.IN_PROGRESS: "Live",
    MatchStatus.HALFTIME: "Half Time",
    MatchStatus.PAUSED: "Paused",
    MatchStatus.FINISHED: "Finished",
    MatchStatus.POSTPONED: "Postponed",
    MatchStatus.CANCELLED: "Cancelled",
    MatchStatus.SUSPENDED: "Suspended",
    MatchStatus.UNKNOWN: "Unknown",
}


class Competition(BaseModel):
    id: str
    name: str
    code: str


class Match(BaseModel):
    id: str
    home_team: Team
    away_team: Team
    start_time: datetime
    status: MatchStatus = MatchStatus.UNKNOWN
    competition: Competition
    home_score: Optional[int] = None
    away_score: Optional[int] = None


class MatchEvent(BaseModel):
    """A live event as reported by the match feed."""
    id: str
    type: str  # goal, assist, yellow_card, substitution, ...
    player_id: str
    player_name: Optional[str] = None
    minute: int = 0
    team_id: Optional[str] = None
    player_off_id: Optional[str] = None
    player_on_id: Optional[str] = None

    @property
    def is_substitution(self) -> bool:
        return self.type.lower() == "substitution"


class MatchDetail(BaseModel):
    match: Match
    venue: Optional[str] = None
    referee: Optional[str] = None
    events: List[MatchEvent] = Field(default_factory=list)


class TeamLineup(BaseModel):
    team: Team
    formation: Optional[str] = None
    starting_eleven: List[Player] = Field(default_factory=list)
    substitutes: List[Player] = Field(default_factory=list)
    coach: Optional[str] = None

    @property
    def players(self) -> List[Player]:
        return self.starting_eleven + self.substitutes


class Lineup(BaseModel):
    home_team: TeamLineup
    away_team: TeamLineup

    @property
    def players(self) -> List[Player]:
        return self.home_team.players + self.away_team.players


class MatchUpdate(BaseModel):
    """One poll result: the latest match state plus events not seen before."""
    match: Match
    new_events: List[MatchEvent] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=utc_now)

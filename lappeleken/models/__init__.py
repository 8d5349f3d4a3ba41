"""
Models for the settlement service.

- game: entity model (players, teams, bets, events, participants)
- match: match data from the live feed
- saved_game: SQLAlchemy table for saved sessions
"""
from lappeleken.models.game import (
    Bet,
    BetEventType,
    GameEvent,
    Participant,
    Player,
    Position,
    Substitution,
    SubstitutionState,
    SubstitutionStatus,
    Team,
)
from lappeleken.models.match import (
    Competition,
    Lineup,
    Match,
    MatchDetail,
    MatchEvent,
    MatchStatus,
    MatchUpdate,
    TeamLineup,
)
from lappeleken.models.saved_game import Base, SavedGame

__all__ = [
    "Bet", "BetEventType", "GameEvent", "Participant", "Player", "Position",
    "Substitution", "SubstitutionState", "SubstitutionStatus", "Team",
    "Competition", "Lineup", "Match", "MatchDetail", "MatchEvent",
    "MatchStatus", "MatchUpdate", "TeamLineup",
    "Base", "SavedGame",
]

"""
Game entity model.

Plain pydantic records shared by the settlement calculator, event
ingestion and the game session. Players are mutated in place when events
are recorded or undone; everything else is append-only or replaced
wholesale by the session.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Position(str, Enum):
    """Player position."""
    GOALKEEPER = "Goalkeeper"
    DEFENDER = "Defender"
    MIDFIELDER = "Midfielder"
    FORWARD = "Forward"


class BetEventType(str, Enum):
    """Event types a bet can be placed on. Values are display names."""
    GOAL = "Goal"
    ASSIST = "Assist"
    YELLOW_CARD = "Yellow Card"
    RED_CARD = "Red Card"
    OWN_GOAL = "Own Goal"
    PENALTY = "Penalty Scored"
    PENALTY_MISSED = "Penalty Missed"
    CLEAN_SHEET = "Clean Sheet"
    CUSTOM = "Custom Event"


# Event type -> Player counter attribute. Other types leave stats alone.
STAT_FIELDS = {
    BetEventType.GOAL: "goals",
    BetEventType.ASSIST: "assists",
    BetEventType.YELLOW_CARD: "yellow_cards",
    BetEventType.RED_CARD: "red_cards",
}


class SubstitutionState(str, Enum):
    ACTIVE = "active"
    SUBSTITUTED_ON = "substituted_on"
    SUBSTITUTED_OFF = "substituted_off"


class SubstitutionStatus(BaseModel):
    """Whether a player is on the pitch, and since when."""
    state: SubstitutionState = SubstitutionState.ACTIVE
    at: Optional[datetime] = None

    @classmethod
    def substituted_on(cls, at: Optional[datetime] = None) -> "SubstitutionStatus":
        return cls(state=SubstitutionState.SUBSTITUTED_ON, at=at or utc_now())

    @classmethod
    def substituted_off(cls, at: Optional[datetime] = None) -> "SubstitutionStatus":
        return cls(state=SubstitutionState.SUBSTITUTED_OFF, at=at or utc_now())


class Team(BaseModel):
    """A football team. Not modified after creation."""
    id: str = Field(default_factory=new_id)
    name: str
    short_name: str = ""
    logo_name: str = "soccerball"
    primary_color: str = "#1A5276"
    api_id: Optional[str] = None


class Player(BaseModel):
    """A real or fictional footballer that participants can own."""
    id: str = Field(default_factory=new_id)
    api_id: Optional[str] = None
    name: str
    team: Team
    position: Position = Position.MIDFIELDER
    substitution_status: SubstitutionStatus = Field(default_factory=SubstitutionStatus)

    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0

    @property
    def is_active(self) -> bool:
        return self.substitution_status.state != SubstitutionState.SUBSTITUTED_OFF


class Bet(BaseModel):
    """
    A wager on one event type.

    Positive ``amount``: every non-holder pays ``amount`` and the pot is
    split between holders. Negative ``amount``: holders pay non-holders.
    Custom bets carry their display name in ``name``.
    """
    id: str = Field(default_factory=new_id)
    event_type: BetEventType
    amount: float
    name: Optional[str] = None

    @property
    def is_custom(self) -> bool:
        return self.event_type == BetEventType.CUSTOM

    @property
    def display_name(self) -> str:
        if self.is_custom and self.name:
            return self.name
        return self.event_type.value


class GameEvent(BaseModel):
    """One recorded event. The event log is the source of truth for balances."""
    id: str = Field(default_factory=new_id)
    player: Player
    event_type: BetEventType
    timestamp: datetime = Field(default_factory=utc_now)
    minute: Optional[int] = None
    custom_event_name: Optional[str] = None
    bet_id: Optional[str] = None  # custom bet this event settles against


class Participant(BaseModel):
    """A person playing the game."""
    id: str = Field(default_factory=new_id)
    name: str
    selected_players: List[Player] = Field(default_factory=list)
    substituted_players: List[Player] = Field(default_factory=list)
    balance: float = 0.0

    def holds(self, player_id: str) -> bool:
        """True if the player is, or was before a substitution, on this roster."""
        return any(p.id == player_id for p in self.selected_players) or any(
            p.id == player_id for p in self.substituted_players
        )

    def holds_active(self, player_id: str) -> bool:
        return any(p.id == player_id for p in self.selected_players)


class Substitution(BaseModel):
    """Audit record of a substitution. Not used for settlement."""
    id: str = Field(default_factory=new_id)
    from_player: Player
    to_player: Player
    timestamp: datetime = Field(default_factory=utc_now)
    team: Team
    minute: Optional[int] = None

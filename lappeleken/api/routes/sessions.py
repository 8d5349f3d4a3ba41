"""
Game session API routes: setup, event recording, live mode and saving.
"""
import logging
import random
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from lappeleken.api.dependencies import (
    football_data_http_error,
    get_registry,
    get_session,
    live_mode_http_error,
    persistence_http_error,
)
from lappeleken.models.game import BetEventType, Player, Position, Team
from lappeleken.models.match import MatchEvent
from lappeleken.services.football_data.errors import FootballDataError
from lappeleken.services.game_session import GameSession, LiveModeError
from lappeleken.services.persistence import PersistenceError
from lappeleken.services.session_registry import SessionRegistry
from lappeleken.services.stats_calculator import StatsCalculator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


# Request/Response models
class CreateSessionRequest(BaseModel):
    is_live_mode: bool = Field(False, description="Take events from the live match feed")


class ParticipantRequest(BaseModel):
    name: str = Field(..., description="Participant display name")


class PlayerInput(BaseModel):
    """A player to add to the available pool."""
    id: Optional[str] = Field(None, description="Stable id; generated if omitted")
    api_id: Optional[str] = Field(None, description="football-data.org player id")
    name: str
    team_name: str
    position: Position = Position.MIDFIELDER


class AddPlayersRequest(BaseModel):
    players: List[PlayerInput] = Field(..., min_length=1)


class SelectPlayersRequest(BaseModel):
    player_ids: List[str] = Field(..., description="Players to put in the selected pool")
    replace: bool = Field(False, description="Clear the selected pool first")


class BetRequest(BaseModel):
    event_type: BetEventType
    amount: float = Field(..., description="Positive: non-holders pay holders. Negative: holders pay")


class CustomBetRequest(BaseModel):
    name: str
    amount: float


class RecreateBetsRequest(BaseModel):
    amounts: Dict[BetEventType, float] = Field(..., description="Standard bet amounts by event type")


class AssignRequest(BaseModel):
    seed: Optional[int] = Field(None, description="Shuffle seed for reproducible assignment")


class EventRequest(BaseModel):
    player_id: str
    event_type: BetEventType
    minute: Optional[int] = Field(None, ge=0, le=130)


class CustomEventRequest(BaseModel):
    player_id: str
    event_name: str
    minute: Optional[int] = Field(None, ge=0, le=130)


class LiveEventsRequest(BaseModel):
    events: List[MatchEvent]


class SubstitutionRequest(BaseModel):
    player_off_id: str
    player_on_id: str
    minute: Optional[int] = Field(None, ge=0, le=130)


class SaveRequest(BaseModel):
    name: str = Field("", description="Blank names become 'Game <date time>'")
    is_update: bool = Field(False, description="Overwrite this session's previous save")


class SelectMatchRequest(BaseModel):
    match_id: str


class StartLiveRequest(BaseModel):
    match_id: Optional[str] = Field(None, description="Match to poll; defaults to the selected match")
    interval: Optional[int] = Field(None, ge=10, le=600, description="First poll interval in seconds")


def session_state(session: GameSession) -> dict:
    """Serializable view of a session."""
    return {
        "id": session.id,
        "status": session.status.value,
        "capability": session.capability.value,
        "is_live_mode": session.is_live_mode,
        "is_monitoring": session.is_monitoring,
        "can_undo_last_event": session.can_undo_last_event,
        "save_id": session.save_id,
        "current_save_name": session.current_save_name,
        "selected_match": session.selected_match.model_dump(mode="json") if session.selected_match else None,
        "participants": [p.model_dump(mode="json") for p in session.participants],
        "bets": [
            {**b.model_dump(mode="json"), "display_name": session.bet_display_name(b)}
            for b in session.bets
        ],
        "events": [
            {**e.model_dump(mode="json"), "display_name": session.event_display_name(e)}
            for e in session.events
        ],
        "available_players": len(session.available_players),
        "selected_players": [p.model_dump(mode="json") for p in session.selected_players],
        "substitutions": len(session.substitutions),
    }


def _require_player(session: GameSession, player_id: str) -> Player:
    player = session.find_player(player_id)
    if player is None:
        raise HTTPException(status_code=404, detail=f"Player {player_id} not found in this session")
    return player


def _team_for(session: GameSession, team_name: str) -> Team:
    wanted = team_name.strip().lower()
    for player in session.available_players:
        if player.team.name.lower() == wanted:
            return player.team
    return Team(name=team_name.strip(), short_name=team_name.strip()[:3].upper())


@router.post("", response_model=dict, status_code=201)
async def create_session(
    request: CreateSessionRequest,
    registry: SessionRegistry = Depends(get_registry)
):
    """Start a new, idle game session."""
    session = registry.create(is_live_mode=request.is_live_mode)
    return session_state(session)


@router.get("/{session_id}", response_model=dict)
async def get_session_state(session: GameSession = Depends(get_session)):
    return session_state(session)


@router.delete("/{session_id}", response_model=dict)
async def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    if not registry.remove(session_id):
        raise HTTPException(status_code=404, detail=f"Game session {session_id} not found")
    return {"deleted": True}


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

@router.post("/{session_id}/participants", response_model=dict, status_code=201)
async def add_participant(request: ParticipantRequest, session: GameSession = Depends(get_session)):
    participant = session.add_participant(request.name)
    if participant is None:
        raise HTTPException(status_code=400, detail="Participant name cannot be blank")
    return participant.model_dump(mode="json")


@router.post("/{session_id}/players", response_model=dict)
async def add_players(request: AddPlayersRequest, session: GameSession = Depends(get_session)):
    """Add players to the available pool (duplicates by id are skipped)."""
    players = []
    for item in request.players:
        fields = dict(
            api_id=item.api_id,
            name=item.name,
            team=_team_for(session, item.team_name),
            position=item.position,
        )
        if item.id:
            fields["id"] = item.id
        players.append(Player(**fields))
    added = session.add_players(players)
    return {"added": added, "available_players": len(session.available_players)}


@router.post("/{session_id}/players/select", response_model=dict)
async def select_players(request: SelectPlayersRequest, session: GameSession = Depends(get_session)):
    if request.replace:
        for player in list(session.selected_players):
            session.deselect_player(player.id)
    selected = 0
    for player_id in request.player_ids:
        if session.select_player(_require_player(session, player_id)):
            selected += 1
    return {"selected": selected, "selected_players": len(session.selected_players)}


@router.get("/{session_id}/matches", response_model=dict)
async def fetch_matches(
    competition: Optional[str] = None,
    session: GameSession = Depends(get_session)
):
    """Live matches, else upcoming, else the next week's fixtures."""
    try:
        matches = await session.fetch_available_matches(competition)
    except FootballDataError as e:
        raise football_data_http_error(e)
    return {"matches": [m.model_dump(mode="json") for m in matches], "count": len(matches)}


@router.post("/{session_id}/match", response_model=dict)
async def select_match(request: SelectMatchRequest, session: GameSession = Depends(get_session)):
    """Select a match and load its lineup into the player pools."""
    match = next((m for m in session.available_matches if m.id == request.match_id), None)
    try:
        if match is None:
            match = (await session.data_source.fetch_match_details(request.match_id)).match
        players = await session.select_match(match)
    except FootballDataError as e:
        raise football_data_http_error(e)
    return {"match": match.model_dump(mode="json"), "players": len(players)}


# ---------------------------------------------------------------------------
# Bets
# ---------------------------------------------------------------------------

@router.post("/{session_id}/bets", response_model=dict, status_code=201)
async def add_bet(request: BetRequest, session: GameSession = Depends(get_session)):
    bet = session.add_bet(request.event_type, request.amount)
    if bet is None:
        raise HTTPException(status_code=409, detail="An unnamed custom bet already exists")
    return bet.model_dump(mode="json")


@router.put("/{session_id}/bets", response_model=dict)
async def recreate_bets(request: RecreateBetsRequest, session: GameSession = Depends(get_session)):
    """Replace the standard bets, keeping named custom bets."""
    session.recreate_bets_with_preservation(request.amounts)
    return {"bets": [b.model_dump(mode="json") for b in session.bets]}


@router.post("/{session_id}/bets/custom", response_model=dict, status_code=201)
async def add_custom_bet(request: CustomBetRequest, session: GameSession = Depends(get_session)):
    bet = session.add_custom_bet(request.name, request.amount)
    if bet is None:
        raise HTTPException(status_code=409, detail="Custom bet name is blank or already in use")
    return bet.model_dump(mode="json")


@router.delete("/{session_id}/bets/{bet_id}", response_model=dict)
async def remove_custom_bet(bet_id: str, session: GameSession = Depends(get_session)):
    if not session.remove_custom_bet(bet_id):
        raise HTTPException(status_code=404, detail=f"Custom bet {bet_id} not found")
    return {"deleted": True}


@router.post("/{session_id}/assign", response_model=dict)
async def assign_players(request: AssignRequest, session: GameSession = Depends(get_session)):
    rng = random.Random(request.seed) if request.seed is not None else None
    if not session.assign_players_randomly(rng):
        raise HTTPException(status_code=409, detail="Add participants and select players first")
    return session_state(session)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@router.post("/{session_id}/events", response_model=dict, status_code=201)
async def record_event(request: EventRequest, session: GameSession = Depends(get_session)):
    player = _require_player(session, request.player_id)
    event = session.record_event(player, request.event_type, minute=request.minute)
    return {
        "event": event.model_dump(mode="json"),
        "balances": {p.id: p.balance for p in session.participants},
    }


@router.post("/{session_id}/events/custom", response_model=dict, status_code=201)
async def record_custom_event(request: CustomEventRequest, session: GameSession = Depends(get_session)):
    player = _require_player(session, request.player_id)
    event = session.record_custom_event(player, request.event_name, minute=request.minute)
    if event is None:
        raise HTTPException(status_code=404, detail=f"No custom bet named '{request.event_name}'")
    return {
        "event": event.model_dump(mode="json"),
        "balances": {p.id: p.balance for p in session.participants},
    }


@router.post("/{session_id}/events/live", response_model=dict)
async def ingest_live_events(request: LiveEventsRequest, session: GameSession = Depends(get_session)):
    """Feed raw match events through deduplication and player resolution."""
    results = session.ingestor.ingest_many(request.events)
    return {"results": [r.value for r in results]}


@router.post("/{session_id}/events/undo", response_model=dict)
async def undo_last_event(session: GameSession = Depends(get_session)):
    event = session.undo_last_event()
    if event is None:
        raise HTTPException(status_code=409, detail="No events to undo")
    return {
        "undone": event.model_dump(mode="json"),
        "balances": {p.id: p.balance for p in session.participants},
    }


@router.post("/{session_id}/recalculate", response_model=dict)
async def recalculate_balances(session: GameSession = Depends(get_session)):
    return {"balances": session.recalculate_balances_from_events()}


@router.post("/{session_id}/substitutions", response_model=dict, status_code=201)
async def substitute_player(request: SubstitutionRequest, session: GameSession = Depends(get_session)):
    player_off = _require_player(session, request.player_off_id)
    player_on = _require_player(session, request.player_on_id)
    substitution = session.substitute_player(player_off, player_on, minute=request.minute)
    if substitution is None:
        raise HTTPException(status_code=409, detail="Substitution is not possible")
    return {
        "substitution": substitution.model_dump(mode="json"),
        "remaining_for_team": session.remaining_substitutions(substitution.team.id),
    }


@router.get("/{session_id}/timeline", response_model=dict)
async def get_timeline(session: GameSession = Depends(get_session)):
    return {
        "timeline": [
            {
                "kind": entry.kind,
                "timestamp": entry.timestamp.isoformat(),
                "minute": entry.minute,
                "description": entry.description,
                "id": entry.item_id,
            }
            for entry in session.timeline()
        ]
    }


@router.get("/{session_id}/stats", response_model=dict)
async def get_stats(session: GameSession = Depends(get_session)):
    calculator = StatsCalculator(session)
    return {
        "teams": [
            {
                "team": s.team.name,
                "goals": s.goals,
                "assists": s.assists,
                "yellow_cards": s.yellow_cards,
                "red_cards": s.red_cards,
                "players": s.players,
            }
            for s in calculator.team_stats()
        ],
        "players": [
            {
                "player": s.player.name,
                "participant": s.participant,
                "events": s.events_count,
                "points": s.points_generated,
                "efficiency": s.efficiency,
            }
            for s in calculator.player_stats()
        ],
        "participants": [
            {
                "participant": s.participant.name,
                "balance": s.participant.balance,
                "total_events": s.total_events,
                "most_valuable_player": s.most_valuable_player.name if s.most_valuable_player else None,
                "roi": s.roi,
            }
            for s in calculator.participant_stats()
        ],
    }


# ---------------------------------------------------------------------------
# Lifecycle, saving and live mode
# ---------------------------------------------------------------------------

@router.post("/{session_id}/reset", response_model=dict)
async def reset_session(session: GameSession = Depends(get_session)):
    session.reset()
    return session_state(session)


@router.post("/{session_id}/save", response_model=dict)
async def save_session(request: SaveRequest, session: GameSession = Depends(get_session)):
    try:
        save_id = session.save_game(request.name, is_update=request.is_update)
    except PersistenceError as e:
        raise persistence_http_error(e)
    return {"save_id": save_id, "name": session.current_save_name}


@router.post("/{session_id}/live/start", response_model=dict)
async def start_live(request: StartLiveRequest, session: GameSession = Depends(get_session)):
    """Start polling a match; without a match id, the selected match in live mode."""
    try:
        if request.match_id:
            handle = session.start_monitoring_match(request.match_id, request.interval)
        else:
            handle = session.setup_event_driven_mode(request.interval)
    except LiveModeError as e:
        raise live_mode_http_error(e)
    if handle is None:
        raise HTTPException(status_code=409, detail="Session is not in live mode")
    return {"match_id": handle.match_id, "interval": handle.interval, "job_id": handle.job_id}


@router.post("/{session_id}/live/stop", response_model=dict)
async def stop_live(session: GameSession = Depends(get_session)):
    return {"stopped": session.stop_all_monitoring()}

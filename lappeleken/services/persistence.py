"""
Persistence gateway for saved games.

A saved game is a ``GameSnapshot``: the full participant, bet, event and
player state of a session. The SQLAlchemy store keeps the snapshot as one
JSON payload plus the columns the saved-games list shows.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lappeleken.models.game import Bet, GameEvent, Participant, Player, Substitution, new_id, utc_now
from lappeleken.models.match import Match
from lappeleken.repositories.saved_game_repository import SavedGameRepository

logger = logging.getLogger(__name__)


class GameSnapshot(BaseModel):
    """Everything needed to restore a game session."""
    id: str = Field(default_factory=new_id)
    name: str
    date_saved: datetime = Field(default_factory=utc_now)
    participants: List[Participant] = Field(default_factory=list)
    bets: List[Bet] = Field(default_factory=list)
    events: List[GameEvent] = Field(default_factory=list)
    selected_players: List[Player] = Field(default_factory=list)
    available_players: List[Player] = Field(default_factory=list)
    substitutions: List[Substitution] = Field(default_factory=list)
    selected_match: Optional[Match] = None
    is_live_mode: bool = False
    processed_event_keys: List[str] = Field(default_factory=list)  # live feed dedup keys


class SavedGameSummary(BaseModel):
    id: str
    name: str
    date_saved: datetime
    participant_count: int
    event_count: int


class PersistenceError(Exception):
    """A saved game could not be written or read."""


class PersistenceStore(Protocol):
    def save(self, snapshot: GameSnapshot) -> None: ...

    def load(self, save_id: str) -> Optional[GameSnapshot]: ...

    def load_all(self) -> List[GameSnapshot]: ...

    def list_summaries(self) -> List[SavedGameSummary]: ...

    def delete(self, save_id: str) -> bool: ...

    def name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool: ...


def _summary(snapshot: GameSnapshot) -> SavedGameSummary:
    return SavedGameSummary(
        id=snapshot.id,
        name=snapshot.name,
        date_saved=snapshot.date_saved,
        participant_count=len(snapshot.participants),
        event_count=len(snapshot.events),
    )


class InMemoryGameStore:
    """Process-local store; used for tests and when no database is configured."""

    def __init__(self):
        self._snapshots: Dict[str, str] = {}  # id -> JSON

    def save(self, snapshot: GameSnapshot) -> None:
        self._snapshots[snapshot.id] = snapshot.model_dump_json()

    def load(self, save_id: str) -> Optional[GameSnapshot]:
        payload = self._snapshots.get(save_id)
        return GameSnapshot.model_validate_json(payload) if payload else None

    def load_all(self) -> List[GameSnapshot]:
        snapshots = [GameSnapshot.model_validate_json(p) for p in self._snapshots.values()]
        return sorted(snapshots, key=lambda s: s.date_saved, reverse=True)

    def list_summaries(self) -> List[SavedGameSummary]:
        return [_summary(s) for s in self.load_all()]

    def delete(self, save_id: str) -> bool:
        return self._snapshots.pop(save_id, None) is not None

    def name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        wanted = name.strip().lower()
        return any(
            s.name.strip().lower() == wanted and s.id != exclude_id
            for s in self.load_all()
        )


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class SqlAlchemyGameStore:
    """
    Saved games in the ``saved_games`` table.

    Args:
        session_factory: Callable returning a new SQLAlchemy Session
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def save(self, snapshot: GameSnapshot) -> None:
        """Insert, or overwrite the save with the same id."""
        db = self.session_factory()
        try:
            repo = SavedGameRepository(db)
            fields = dict(
                name=snapshot.name,
                date_saved=_naive_utc(snapshot.date_saved),
                participant_count=len(snapshot.participants),
                event_count=len(snapshot.events),
                payload=snapshot.model_dump_json(),
            )
            if repo.find_by_id(snapshot.id):
                repo.update(snapshot.id, **fields)
            else:
                now = _naive_utc(utc_now())
                repo.create(id=snapshot.id, created_at=now, updated_at=now, **fields)
            repo.save()
            logger.info(f"Saved game '{snapshot.name}' ({snapshot.id})")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to save game {snapshot.id}: {e}")
            raise PersistenceError(f"Could not save game '{snapshot.name}'") from e
        finally:
            db.close()

    def load(self, save_id: str) -> Optional[GameSnapshot]:
        db = self.session_factory()
        try:
            row = SavedGameRepository(db).find_by_id(save_id)
            if row is None:
                return None
            return GameSnapshot.model_validate_json(row.payload)
        finally:
            db.close()

    def load_all(self) -> List[GameSnapshot]:
        db = self.session_factory()
        try:
            return [GameSnapshot.model_validate_json(row.payload)
                    for row in SavedGameRepository(db).list_recent()]
        finally:
            db.close()

    def list_summaries(self) -> List[SavedGameSummary]:
        db = self.session_factory()
        try:
            return [
                SavedGameSummary(
                    id=row.id,
                    name=row.name,
                    date_saved=row.date_saved.replace(tzinfo=timezone.utc),
                    participant_count=row.participant_count,
                    event_count=row.event_count,
                )
                for row in SavedGameRepository(db).list_recent()
            ]
        finally:
            db.close()

    def delete(self, save_id: str) -> bool:
        db = self.session_factory()
        try:
            repo = SavedGameRepository(db)
            deleted = repo.delete(save_id)
            repo.save()
            return deleted
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Could not delete saved game {save_id}") from e
        finally:
            db.close()

    def name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        db = self.session_factory()
        try:
            return SavedGameRepository(db).name_exists(name, exclude_id)
        finally:
            db.close()

"""
Saved game repository.
"""
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from lappeleken.models.saved_game import SavedGame
from lappeleken.repositories.base import BaseRepository


class SavedGameRepository(BaseRepository[SavedGame]):
    """Queries over the saved_games table."""

    def __init__(self, db: Session):
        super().__init__(SavedGame, db)

    def list_recent(self, limit: Optional[int] = None) -> List[SavedGame]:
        """Saved games, most recently saved first."""
        return self.find_all(limit=limit, order_by="-date_saved")

    def name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        """Case-insensitive name check, optionally ignoring one save."""
        criteria = [func.lower(SavedGame.name) == name.strip().lower()]
        if exclude_id:
            criteria.append(SavedGame.id != exclude_id)
        return self.exists_where(*criteria)

"""
Repository layer for data access.

Usage:
    from lappeleken.repositories import SavedGameRepository
    from lappeleken.core.database import get_session_factory

    db = get_session_factory()()
    saves = SavedGameRepository(db).list_recent(limit=20)
    db.close()
"""

from lappeleken.repositories.base import BaseRepository
from lappeleken.repositories.saved_game_repository import SavedGameRepository

__all__ = [
    "BaseRepository",
    "SavedGameRepository",
]

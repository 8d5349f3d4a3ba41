"""
Base repository for the SQLAlchemy data access layer.

Repositories hold the query logic; the persistence gateway owns sessions
and transactions and converts rows to snapshots.
"""
from abc import ABC
from datetime import datetime, timezone
from typing import TypeVar, Generic, Type, Optional, List

from sqlalchemy import desc
from sqlalchemy.orm import Session

T = TypeVar("T")


def _utcnow() -> datetime:
    # Columns are naive DateTime, stored in UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseRepository(Generic[T], ABC):
    """
    Row-level helpers shared by the repositories.

    Attributes:
        model_type: Mapped class for the table
        db: Session supplied by the caller, which also commits
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    def find_by_id(self, id: str) -> Optional[T]:
        return self.db.get(self.model_type, id)

    def find_all(self, limit: Optional[int] = None, order_by: Optional[str] = None) -> List[T]:
        """
        All rows, optionally ordered and capped.

        Args:
            limit: Maximum number of rows
            order_by: Column name; a leading '-' sorts descending
        """
        query = self.db.query(self.model_type)
        if order_by:
            column = getattr(self.model_type, order_by.lstrip("-"))
            query = query.order_by(desc(column) if order_by.startswith("-") else column)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def create(self, **fields) -> T:
        """Add a new row to the session; the caller commits."""
        row = self.model_type(**fields)
        self.db.add(row)
        return row

    def update(self, id: str, **fields) -> Optional[T]:
        """Overwrite columns on an existing row and touch ``updated_at``."""
        row = self.find_by_id(id)
        if row is None:
            return None
        for key, value in fields.items():
            if hasattr(row, key):
                setattr(row, key, value)
        row.updated_at = _utcnow()
        return row

    def delete(self, id: str) -> bool:
        row = self.find_by_id(id)
        if row is None:
            return False
        self.db.delete(row)
        return True

    def exists_where(self, *criterion) -> bool:
        """True if any row matches all criteria."""
        return self.db.query(
            self.db.query(self.model_type).filter(*criterion).exists()
        ).scalar()

    def save(self) -> None:
        """Commit pending changes."""
        self.db.commit()

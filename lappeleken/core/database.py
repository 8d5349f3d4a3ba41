"""
Database configuration and session management for saved games.
"""
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def _engine_kwargs(database_url: str) -> dict:
    """Engine options per backend; SQLite has no connection pool to size."""
    echo = os.getenv("SQL_ECHO", "false").lower() == "true"
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}, "echo": echo}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,  # Verify connections before using
        "echo": echo,
    }


def get_engine() -> Engine:
    """Get or create the database engine."""
    global _engine, _SessionLocal

    if _engine is None:
        from lappeleken.core.config import settings
        _engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    return _engine


def get_session_factory() -> sessionmaker:
    """Session factory bound to the application engine."""
    get_engine()
    return _SessionLocal


def init_db() -> None:
    """Create the saved games tables if they do not exist."""
    from lappeleken.models.saved_game import Base
    Base.metadata.create_all(bind=get_engine(), checkfirst=True)

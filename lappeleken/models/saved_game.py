"""
Database model for saved game sessions.

A saved game is stored as one JSON document (the session snapshot) plus a
few columns the saved-games list needs without decoding the payload.
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class SavedGame(Base):
    """A named snapshot of a game session."""
    __tablename__ = "saved_games"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    date_saved = Column(DateTime, nullable=False, index=True)
    participant_count = Column(Integer, nullable=False, default=0)
    event_count = Column(Integer, nullable=False, default=0)
    payload = Column(Text, nullable=False)  # GameSnapshot JSON
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index('ix_saved_games_name_date', 'name', 'date_saved'),
    )

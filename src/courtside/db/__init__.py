"""
Database module for Courtside.

Provides SQLAlchemy ORM models and session management for the match
record store.

Usage:
    from courtside.db import get_session, Match

    with get_session() as session:
        matches = session.query(Match).filter(Match.group_id == "A").all()
"""

from courtside.db.models import (
    Base,
    Match,
    Player,
    RatingDeltaRecord,
    StandingRecord,
    Team,
)
from courtside.db.session import SessionLocal, get_engine, get_session

__all__ = [
    # Base
    "Base",
    # Models
    "Player",
    "Team",
    "Match",
    "RatingDeltaRecord",
    "StandingRecord",
    # Session
    "get_session",
    "get_engine",
    "SessionLocal",
]

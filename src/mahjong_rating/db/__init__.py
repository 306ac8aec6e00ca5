"""
Database module for the rating service.

Provides SQLAlchemy ORM models and session management.

Usage:
    from mahjong_rating.db import get_session, UserRatingChange

    with get_session() as session:
        entries = session.query(UserRatingChange).filter_by(event_id=1).all()
"""

from mahjong_rating.db.models import (
    Base,
    User,
    GameRules,
    Event,
    Game,
    GamePlayer,
    UserRatingChange,
)
from mahjong_rating.db.session import get_session, get_engine, SessionLocal

__all__ = [
    # Base
    "Base",
    # Models
    "User",
    "GameRules",
    "Event",
    "Game",
    "GamePlayer",
    "UserRatingChange",
    # Session
    "get_session",
    "get_engine",
    "SessionLocal",
]

"""
Database session management for the rating service.

Provides the SQLAlchemy engine and session factory. Uses the settings from
config.py.

The rating engine never commits: applying or reversing a match touches
several ledger rows, and a failure halfway leaves the chain invariant broken.
get_session() makes the whole unit of work one transaction that is rolled
back wholesale on any exception.

Usage:
    from mahjong_rating.db import get_session

    with get_session() as session:
        MatchService(session).delete_match(game_id)
        # Commits automatically on exit, rolls back on exception
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from mahjong_rating.config import settings


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create SQLAlchemy engine.

    The engine is configured with:
    - Connection pool for efficient reuse (not for SQLite)
    - Echo mode only when LOG_LEVEL=DEBUG
    - Pre-ping to verify connections before use (handles stale connections)
    """
    url = database_url or settings.database_url
    kwargs = {
        "pool_pre_ping": True,
        "echo": settings.log_level == "DEBUG",
    }
    if not url.startswith("sqlite"):
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow
    return create_engine(url, **kwargs)


# Created on first use so importing models never opens a connection
_engine: Optional[Engine] = None


def _get_engine() -> Engine:
    """Get or create the singleton engine instance."""
    global _engine
    if _engine is None:
        _engine = get_engine()
    return _engine


# Session factory - bound to an engine when a session is opened
SessionLocal = sessionmaker(
    autoflush=False,  # Ledger code flushes explicitly
)


@contextmanager
def get_session(engine: Optional[Engine] = None) -> Generator[Session, None, None]:
    """
    Context manager for a transactional unit of work.

    Commits on successful exit, rolls back on exception.

    Args:
        engine: Engine to bind to. Defaults to the one built from settings.

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = SessionLocal(bind=engine or _get_engine())
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

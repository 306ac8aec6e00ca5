"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

from datetime import datetime

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from mahjong_rating.db.models import Base, Event, Game, GamePlayer, GameRules, User, UserRatingChange
from mahjong_rating.rating.rules import RuleSet


@pytest.fixture(scope="session")
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory; the ledger relies on nothing PostgreSQL-specific.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
    )
    return engine


@pytest.fixture(scope="session")
def tables(test_engine):
    """
    Create all tables for testing.

    This fixture runs once per test session.
    """
    Base.metadata.create_all(test_engine)
    yield
    Base.metadata.drop_all(test_engine)


@pytest.fixture
def db_session(test_engine, tables):
    """
    Create a database session for a test.

    Each test gets its own session with automatic rollback,
    ensuring tests don't affect each other.
    """
    connection = test_engine.connect()
    transaction = connection.begin()

    Session = sessionmaker(bind=connection, autoflush=False)
    session = Session()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def game_rules(db_session):
    """4-player rules: uma 16/8/-8/-16, 30000 start, rating starts at 0."""
    rules = GameRules(
        name="Test rules",
        number_of_players=4,
        uma=[16, 8, -8, -16],
        starting_points=30000,
        starting_rating=0,
        minimum_games_for_rating=3,
    )
    db_session.add(rules)
    db_session.flush()
    return rules


@pytest.fixture
def rules(game_rules):
    return RuleSet.from_model(game_rules)


@pytest.fixture
def event(db_session, game_rules):
    event = Event(name="Test season", game_rules_id=game_rules.id)
    db_session.add(event)
    db_session.flush()
    return event


@pytest.fixture
def users(db_session):
    """Six active users; tests pick four per game."""
    users = [User(name=f"Player {i}") for i in range(1, 7)]
    db_session.add_all(users)
    db_session.flush()
    return users


@pytest.fixture
def add_game(db_session, event):
    """
    Persist a game row without touching the ledger.

    Usage:
        game = add_game([(user_a.id, 40000), ...], datetime(2026, 1, 1, 12))
    """
    def _add_game(results, timestamp: datetime, event_id=None) -> Game:
        game = Game(event_id=event_id or event.id, timestamp=timestamp)
        for user_id, points in results:
            game.players.append(GamePlayer(user_id=user_id, points=points))
        db_session.add(game)
        db_session.flush()
        return game

    return _add_game


@pytest.fixture
def ledger_snapshot(db_session):
    """Ledger content of an event as a comparable set (row ids excluded)."""
    def _snapshot(event_id: int) -> set[tuple]:
        rows = db_session.scalars(
            select(UserRatingChange).where(UserRatingChange.event_id == event_id)
        ).all()
        return {(r.user_id, r.game_id, r.rating_change, r.rating, r.timestamp) for r in rows}

    return _snapshot

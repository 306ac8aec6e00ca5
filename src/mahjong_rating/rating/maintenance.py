"""
Ledger verification and repair.

find_chain_violations() walks every user's entries of an event in timestamp
order and reports entries whose running rating does not equal the previous
running rating (or the starting rating) plus their own rating change.

rebuild_event_ledger() is the slow path: it drops the event's ledger and
re-applies all games oldest first. Each game then lands at the end of every
history, so no propagation happens during a rebuild.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import groupby

from sqlalchemy import select
from sqlalchemy.orm import Session

from mahjong_rating.db.models import Event, Game
from mahjong_rating.errors import EventNotFoundError
from mahjong_rating.rating.engine import MatchResult, RatingLedgerEngine
from mahjong_rating.rating.ledger import RatingLedgerStore
from mahjong_rating.rating.rules import RuleSet

logger = logging.getLogger(__name__)


@dataclass
class ChainViolation:
    user_id: int
    game_id: int
    expected_rating: int
    actual_rating: int

    def __repr__(self) -> str:
        return (
            f"<ChainViolation(user={self.user_id}, game={self.game_id}, "
            f"expected={self.expected_rating}, actual={self.actual_rating})>"
        )


def _get_event(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise EventNotFoundError(event_id)
    return event


def find_chain_violations(session: Session, event_id: int) -> list[ChainViolation]:
    """Return every ledger entry of the event that breaks the chain invariant."""
    event = _get_event(session, event_id)
    rules = RuleSet.from_model(event.game_rules)
    store = RatingLedgerStore(session, lock_rows=False)

    violations: list[ChainViolation] = []
    for user_id, entries in groupby(store.event_entries(event_id), key=lambda e: e.user_id):
        previous = rules.starting_rating_scaled
        for entry in entries:
            expected = previous + entry.rating_change
            if entry.rating != expected:
                violations.append(
                    ChainViolation(
                        user_id=user_id,
                        game_id=entry.game_id,
                        expected_rating=expected,
                        actual_rating=entry.rating,
                    )
                )
            previous = entry.rating

    if violations:
        logger.warning("Event %s: %d ledger entries break the chain", event_id, len(violations))
    return violations


def rebuild_event_ledger(session: Session, event_id: int) -> int:
    """
    Recompute an event's ledger from its games.

    Returns:
        Number of games re-applied
    """
    event = _get_event(session, event_id)
    rules = RuleSet.from_model(event.game_rules)
    engine = RatingLedgerEngine.from_session(session)

    removed = engine.store.delete_event_entries(event_id)
    logger.info("Event %s: removed %d ledger entries for rebuild", event_id, removed)

    games = session.scalars(
        select(Game).where(Game.event_id == event_id).order_by(Game.timestamp, Game.id)
    ).all()
    for game in games:
        engine.apply_match(MatchResult.from_game(game), rules)

    session.flush()
    logger.info("Event %s: re-applied %d games", event_id, len(games))
    return len(games)

"""
Rating ledger persistence.

Indexed reads and writes over user_rating_changes. Every lookup the engine
depends on is a range query on (user_id, event_id, timestamp) so that cost
does not grow with the length of a user's history:

- latest_before: ORDER BY timestamp DESC LIMIT 1 with strict "<"
- shift_after: one bulk UPDATE over timestamp ">" a point in time

The store only flushes. Committing or rolling back is up to the session
owner (see db/session.py).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from mahjong_rating.config import settings
from mahjong_rating.db.models import UserRatingChange


class RatingLedgerStore:
    """CRUD and range queries over ledger rows keyed by (user, event, game)."""

    def __init__(self, session: Session, lock_rows: Optional[bool] = None):
        self.session = session
        self.lock_rows = settings.ledger_row_locking if lock_rows is None else lock_rows

    def latest_before(
        self,
        user_id: int,
        event_id: int,
        before: datetime,
    ) -> Optional[UserRatingChange]:
        """Return the user's last entry strictly before a point in time."""
        stmt = (
            select(UserRatingChange)
            .where(
                UserRatingChange.user_id == user_id,
                UserRatingChange.event_id == event_id,
                UserRatingChange.timestamp < before,
            )
            .order_by(UserRatingChange.timestamp.desc())
            .limit(1)
        )
        if self.lock_rows:
            stmt = stmt.with_for_update()
        return self.session.scalars(stmt).first()

    def find_entry(self, user_id: int, event_id: int, game_id: int) -> Optional[UserRatingChange]:
        stmt = select(UserRatingChange).where(
            UserRatingChange.user_id == user_id,
            UserRatingChange.event_id == event_id,
            UserRatingChange.game_id == game_id,
        )
        return self.session.scalars(stmt).first()

    def entries_at(self, user_id: int, event_id: int, timestamp: datetime) -> list[UserRatingChange]:
        """Entries sharing exactly this timestamp."""
        stmt = select(UserRatingChange).where(
            UserRatingChange.user_id == user_id,
            UserRatingChange.event_id == event_id,
            UserRatingChange.timestamp == timestamp,
        )
        return list(self.session.scalars(stmt))

    def entries_for(self, user_id: int, event_id: int) -> list[UserRatingChange]:
        """All entries of a user in an event, oldest first."""
        stmt = (
            select(UserRatingChange)
            .where(
                UserRatingChange.user_id == user_id,
                UserRatingChange.event_id == event_id,
            )
            .order_by(UserRatingChange.timestamp, UserRatingChange.id)
        )
        return list(self.session.scalars(stmt))

    def event_entries(self, event_id: int) -> list[UserRatingChange]:
        """All entries of an event grouped by user, oldest first."""
        stmt = (
            select(UserRatingChange)
            .where(UserRatingChange.event_id == event_id)
            .order_by(UserRatingChange.user_id, UserRatingChange.timestamp, UserRatingChange.id)
        )
        return list(self.session.scalars(stmt))

    def add_entry(
        self,
        user_id: int,
        event_id: int,
        game_id: int,
        rating_change: int,
        rating: int,
        timestamp: datetime,
    ) -> UserRatingChange:
        entry = UserRatingChange(
            user_id=user_id,
            event_id=event_id,
            game_id=game_id,
            rating_change=rating_change,
            rating=rating,
            timestamp=timestamp,
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def shift_after(self, user_id: int, event_id: int, after: datetime, delta: int) -> int:
        """
        Add delta to the running rating of every entry strictly after a time.

        rating_change of the shifted rows is left untouched.

        Returns:
            Number of rows shifted
        """
        if delta == 0:
            return 0
        stmt = (
            update(UserRatingChange)
            .where(
                UserRatingChange.user_id == user_id,
                UserRatingChange.event_id == event_id,
                UserRatingChange.timestamp > after,
            )
            .values(rating=UserRatingChange.rating + delta)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return result.rowcount

    def delete_game_entries(self, game_id: int) -> int:
        stmt = (
            delete(UserRatingChange)
            .where(UserRatingChange.game_id == game_id)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return result.rowcount

    def delete_event_entries(self, event_id: int) -> int:
        stmt = (
            delete(UserRatingChange)
            .where(UserRatingChange.event_id == event_id)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return result.rowcount

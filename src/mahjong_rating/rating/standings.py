"""
Read-only queries over the rating ledger.

All ratings returned here are divided by RATING_SCALE.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mahjong_rating.db.models import Event, User, UserRatingChange
from mahjong_rating.errors import EventNotFoundError, UserNotFoundError
from mahjong_rating.rating.constants import to_display


@dataclass
class UserRating:
    """Current rating of a user in an event."""
    user_id: int
    user_name: str
    rating: Decimal
    games_played: int
    has_minimum_games: bool


@dataclass
class RatingSnapshot:
    timestamp: datetime
    rating: Decimal


@dataclass
class UserRatingChangeTotal:
    user_id: int
    user_name: str
    rating_change: Decimal


class StandingsAndHistoryReader:
    """
    Current ratings, rating history, period totals and standings of an event.

    Usage:
        reader = StandingsAndHistoryReader(session)
        for row in reader.current_ratings(event_id):
            print(row.user_name, row.rating)
    """

    def __init__(self, session: Session):
        self.session = session

    def current_ratings(self, event_id: int) -> list[UserRating]:
        """
        Rating of each user's latest entry, highest first.

        Equal ratings are ordered by user id, which carries no meaning.
        """
        event = self._get_event(event_id)
        minimum_games = event.game_rules.minimum_games_for_rating

        latest = (
            select(
                UserRatingChange.user_id.label("user_id"),
                UserRatingChange.rating.label("rating"),
                func.row_number()
                .over(
                    partition_by=UserRatingChange.user_id,
                    order_by=(UserRatingChange.timestamp.desc(), UserRatingChange.id.desc()),
                )
                .label("rn"),
                func.count()
                .over(partition_by=UserRatingChange.user_id)
                .label("games_played"),
            )
            .where(UserRatingChange.event_id == event_id)
            .subquery()
        )
        stmt = (
            select(User.id, User.name, latest.c.rating, latest.c.games_played)
            .join(latest, latest.c.user_id == User.id)
            .where(latest.c.rn == 1)
            .order_by(latest.c.rating.desc(), User.id)
        )

        return [
            UserRating(
                user_id=user_id,
                user_name=name,
                rating=to_display(rating),
                games_played=games_played,
                has_minimum_games=games_played >= minimum_games,
            )
            for user_id, name, rating, games_played in self.session.execute(stmt)
        ]

    def rating_history(self, user_id: int, event_id: int) -> list[RatingSnapshot]:
        """Running rating after each game, oldest first. Empty if never played."""
        self._get_user(user_id)
        self._get_event(event_id)

        stmt = (
            select(UserRatingChange.timestamp, UserRatingChange.rating)
            .where(
                UserRatingChange.user_id == user_id,
                UserRatingChange.event_id == event_id,
            )
            .order_by(UserRatingChange.timestamp, UserRatingChange.id)
        )
        return [
            RatingSnapshot(timestamp=timestamp, rating=to_display(rating))
            for timestamp, rating in self.session.execute(stmt)
        ]

    def total_change_during_period(
        self,
        event_id: int,
        date_from: datetime,
        date_to: datetime,
    ) -> list[UserRatingChangeTotal]:
        """
        Sum of per-game rating changes with date_from <= timestamp <= date_to.

        Users without games in the period are left out rather than reported
        with zero.
        """
        self._get_event(event_id)

        stmt = (
            select(User.id, User.name, func.sum(UserRatingChange.rating_change))
            .join(User, User.id == UserRatingChange.user_id)
            .where(
                UserRatingChange.event_id == event_id,
                UserRatingChange.timestamp >= date_from,
                UserRatingChange.timestamp <= date_to,
            )
            .group_by(User.id, User.name)
            .order_by(User.id)
        )
        return [
            UserRatingChangeTotal(user_id=user_id, user_name=name, rating_change=to_display(total))
            for user_id, name, total in self.session.execute(stmt)
        ]

    def standings(self, event_id: int, shared_ties: bool = False) -> dict[int, int]:
        """
        Map user id to 1-based rank by current rating.

        Args:
            event_id: Event to rank
            shared_ties: If True, equal ratings share a rank and the next
                distinct rating skips ahead (1, 1, 3). By default every user
                gets a distinct successive rank.
        """
        ranks: dict[int, int] = {}
        previous_rating = None
        current_rank = 0
        for position, row in enumerate(self.current_ratings(event_id), start=1):
            if not shared_ties or row.rating != previous_rating:
                current_rank = position
            ranks[row.user_id] = current_rank
            previous_rating = row.rating
        return ranks

    def _get_event(self, event_id: int) -> Event:
        event = self.session.get(Event, event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def _get_user(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

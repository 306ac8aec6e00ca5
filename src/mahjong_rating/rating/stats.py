"""
Per-user statistics for one event.

Statistics are derived from the user's ledger entries joined with the final
points of every game they played. Placement in a game is

    1 + number of other players with strictly more points

so tied players share a placement and placements need not be contiguous
(two players can both be 1st, the next one is 3rd). Every game still lands
in exactly one placement bucket, so the bucket percentages always add up to
100 for a user with at least one game.

A user without games in the event gets a NoParticipation value instead of a
zero-filled UserEventStats: averages over zero games are undefined and a
rank does not exist.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Union

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session, aliased

from mahjong_rating.db.models import Event, Game, GamePlayer, User, UserRatingChange
from mahjong_rating.errors import EventNotFoundError, UserNotFoundError
from mahjong_rating.rating.constants import to_display
from mahjong_rating.rating.standings import StandingsAndHistoryReader


@dataclass
class GameStatsRow:
    """One game of the user, as pulled from the database."""
    game_id: int
    points: int
    placement: int
    rating_change: int


@dataclass
class NoParticipation:
    """The user has not played in the event."""
    user_id: int
    event_id: int
    remaining_games_to_rating: int


@dataclass
class UserEventStats:
    """
    Statistics of a user who played at least one game in an event.

    Percentages are in 0..100 and left unrounded; rounding is a display
    concern.
    """
    user_id: int
    event_id: int
    place: int
    rating: Decimal
    games_played: int
    has_minimum_games: bool
    remaining_games_to_rating: int

    sum_of_points: int
    min_points: int
    max_points: int
    average_points: float

    total_rating_change: Decimal
    average_rating_change: Decimal

    average_placement: float
    # placement (1..number_of_players) -> percentage of games
    placement_percentages: dict[int, float] = field(default_factory=dict)
    negative_points_percentage: float = 0.0
    share_of_event_games: float = 0.0


EventStatsResult = Union[UserEventStats, NoParticipation]


class EventStatsAggregator:
    """Builds UserEventStats from ledger rows and game results."""

    def __init__(self, session: Session):
        self.session = session
        self.reader = StandingsAndHistoryReader(session)

    def stats(self, user_id: int, event_id: int) -> EventStatsResult:
        if self.session.get(User, user_id) is None:
            raise UserNotFoundError(user_id)
        event = self.session.get(Event, event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        rules = event.game_rules

        rows = self.game_rows(user_id, event_id)
        games_played = len(rows)
        remaining = max(rules.minimum_games_for_rating - games_played, 0)
        if games_played == 0:
            return NoParticipation(
                user_id=user_id,
                event_id=event_id,
                remaining_games_to_rating=remaining,
            )

        history = self.reader.rating_history(user_id, event_id)
        place = self.reader.standings(event_id)[user_id]

        points = [r.points for r in rows]
        total_change = sum(r.rating_change for r in rows)

        placement_counts = {placement: 0 for placement in range(1, rules.number_of_players + 1)}
        for row in rows:
            placement_counts[row.placement] = placement_counts.get(row.placement, 0) + 1

        total_event_games = self._count_event_games(event_id)

        return UserEventStats(
            user_id=user_id,
            event_id=event_id,
            place=place,
            rating=history[-1].rating,
            games_played=games_played,
            has_minimum_games=remaining == 0,
            remaining_games_to_rating=remaining,
            sum_of_points=sum(points),
            min_points=min(points),
            max_points=max(points),
            average_points=sum(points) / games_played,
            total_rating_change=to_display(total_change),
            average_rating_change=to_display(total_change) / games_played,
            average_placement=sum(r.placement for r in rows) / games_played,
            placement_percentages={
                placement: count / games_played * 100
                for placement, count in placement_counts.items()
            },
            negative_points_percentage=sum(1 for p in points if p < 0) / games_played * 100,
            share_of_event_games=games_played / total_event_games * 100,
        )

    def game_rows(self, user_id: int, event_id: int) -> list[GameStatsRow]:
        """Points, placement and rating change of each game, oldest first."""
        other = aliased(GamePlayer)
        better_players = (
            select(func.count(other.id))
            .where(other.game_id == GamePlayer.game_id, other.points > GamePlayer.points)
            .correlate(GamePlayer)
            .scalar_subquery()
        )
        stmt = (
            select(
                Game.id,
                GamePlayer.points,
                (better_players + 1).label("placement"),
                UserRatingChange.rating_change,
            )
            .join(GamePlayer, GamePlayer.game_id == Game.id)
            .join(
                UserRatingChange,
                and_(
                    UserRatingChange.game_id == Game.id,
                    UserRatingChange.user_id == GamePlayer.user_id,
                ),
            )
            .where(Game.event_id == event_id, GamePlayer.user_id == user_id)
            .order_by(Game.timestamp)
        )
        return [
            GameStatsRow(game_id=game_id, points=points, placement=placement, rating_change=change)
            for game_id, points, placement, change in self.session.execute(stmt)
        ]

    def _count_event_games(self, event_id: int) -> int:
        stmt = select(func.count(Game.id)).where(Game.event_id == event_id)
        return self.session.scalar(stmt) or 0

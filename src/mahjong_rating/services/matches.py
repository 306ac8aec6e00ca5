"""
Match service: validates game results and keeps the ledger in step with them.

This is the only caller of the rating engine's write path:

- add_match: validate, persist the game, apply it to the ledger
- update_match: validate, reverse the stored game, rewrite it, apply again
- delete_match: reverse the game, then delete it

and serves the read side of games:

- get_match: one game with every player's points and rating change
- list_matches: filtered, paginated game listing (at most
  MAX_MATCHES_PER_QUERY games per call)

An edit is always reverse-then-reapply. Changing points, players, the
timestamp or the event of a game without touching the ledger would leave
every later running rating stale.

Games of one event must have distinct timestamps. The ledger orders entries
strictly by timestamp, and two games at the same instant would not see each
other's rating changes.

All methods only flush; run them inside get_session() so that a failure
rolls back the game rows and the ledger together.

Usage:
    with get_session() as session:
        game = MatchService(session).add_match(
            event_id,
            [PlayerResult(1, 45000), PlayerResult(2, 30000),
             PlayerResult(3, 25000), PlayerResult(4, 20000)],
        )
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from mahjong_rating.db.models import Event, Game, GamePlayer, User, UserRatingChange
from mahjong_rating.errors import (
    DuplicateMatchTimestampError,
    DuplicatePlayerError,
    EventNotFoundError,
    GameNotFoundError,
    GameRulesNotFoundError,
    InactiveUserError,
    IncorrectPlayerCountError,
    IncorrectTotalPointsError,
    MatchOutsideEventError,
    TooManyMatchesFoundError,
    UserNotFoundError,
)
from mahjong_rating.rating.constants import to_display
from mahjong_rating.rating.engine import MatchResult, RatingLedgerEngine
from mahjong_rating.rating.rules import RuleSet

logger = logging.getLogger(__name__)

# Upper bound on games returned by one list_matches() call
MAX_MATCHES_PER_QUERY = 100


@dataclass(frozen=True)
class PlayerResult:
    """Submitted final points of one player."""
    user_id: int
    points: int
    start_place: Optional[str] = None


@dataclass
class MatchPlayerSummary:
    """One player of a stored game, with the rating change it earned."""
    user_id: int
    user_name: str
    points: int
    start_place: Optional[str]
    rating_change: Decimal


@dataclass
class MatchSummary:
    """A stored game as returned by the read methods."""
    id: int
    event_id: int
    timestamp: datetime
    created_at: datetime
    modified_at: datetime
    # Highest points first
    players: list[MatchPlayerSummary] = field(default_factory=list)


class MatchService:
    """Create, edit, delete and read games with their ledger effects."""

    def __init__(self, session: Session, engine: Optional[RatingLedgerEngine] = None):
        self.session = session
        self.engine = engine or RatingLedgerEngine.from_session(session)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_match(self, game_id: int) -> MatchSummary:
        """
        Return a game with each player's points and display rating change.

        Raises:
            GameNotFoundError: No game with this id
        """
        game = self._get_game(game_id)
        return self._summaries([game])[0]

    def list_matches(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        user_id: Optional[int] = None,
        event_id: Optional[int] = None,
        sort_order: str = "asc",
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[MatchSummary]:
        """
        List games matching all given filters, ordered by timestamp.

        Args:
            date_from: Only games with timestamp >= date_from
            date_to: Only games with timestamp <= date_to
            user_id: Only games this user played in
            event_id: Only games of this event
            sort_order: "desc" for newest first; anything else is oldest first
            limit: Page size
            offset: Number of games to skip

        Raises:
            UserNotFoundError, EventNotFoundError: Unknown filter references
            TooManyMatchesFoundError: The filters select more than
                MAX_MATCHES_PER_QUERY games
        """
        if user_id is not None and self.session.get(User, user_id) is None:
            raise UserNotFoundError(user_id)
        if event_id is not None:
            self._get_event(event_id)

        stmt = select(Game)
        if user_id is not None:
            stmt = stmt.where(
                Game.id.in_(select(GamePlayer.game_id).where(GamePlayer.user_id == user_id))
            )
        if date_from is not None:
            stmt = stmt.where(Game.timestamp >= date_from)
        if date_to is not None:
            stmt = stmt.where(Game.timestamp <= date_to)
        if event_id is not None:
            stmt = stmt.where(Game.event_id == event_id)

        if sort_order.lower() == "desc":
            stmt = stmt.order_by(Game.timestamp.desc(), Game.id.desc())
        else:
            stmt = stmt.order_by(Game.timestamp, Game.id)

        # One row past the cap is enough to detect an oversized result
        fetch = MAX_MATCHES_PER_QUERY + 1
        if limit is not None:
            fetch = min(limit, fetch)
        stmt = stmt.limit(fetch)
        if offset is not None:
            stmt = stmt.offset(offset)

        games = list(self.session.scalars(stmt))
        if len(games) > MAX_MATCHES_PER_QUERY:
            raise TooManyMatchesFoundError(MAX_MATCHES_PER_QUERY)
        return self._summaries(games)

    # =========================================================================
    # Writes
    # =========================================================================

    def add_match(
        self,
        event_id: int,
        players: Sequence[PlayerResult],
        timestamp: Optional[datetime] = None,
    ) -> Game:
        """
        Record a finished game and apply it to the ledger.

        Args:
            event_id: Event the game belongs to
            players: Final points of every player
            timestamp: Logical time of the game; defaults to now. May be in
                the past, in which case later ledger entries are shifted.

        Raises:
            EventNotFoundError, UserNotFoundError: Unknown references
            MatchValidationError: Invalid result (count, duplicates, points,
                dates, timestamp clash)
        """
        timestamp = timestamp or datetime.utcnow()
        event = self._get_event(event_id)
        rules = self._rules_for(event)

        self._validate_players(players, rules)
        self._validate_within_event_dates(event, timestamp)
        self._validate_unique_timestamp(event_id, timestamp)

        game = Game(event_id=event_id, timestamp=timestamp)
        self.session.add(game)
        self._set_players(game, players)
        self.session.flush()

        self.engine.apply_match(MatchResult.from_game(game), rules)
        logger.info("Added game %s to event %s at %s", game.id, event_id, timestamp.isoformat())
        return game

    def update_match(
        self,
        game_id: int,
        players: Sequence[PlayerResult],
        timestamp: Optional[datetime] = None,
        event_id: Optional[int] = None,
    ) -> Game:
        """
        Replace a game's result, timestamp and/or event.

        The stored game is reversed out of the ledger using its old players,
        timestamp and event, rewritten, and applied again with the new data
        under the rules of its (possibly new) event.

        Args:
            game_id: Game to edit
            players: New final points of every player
            timestamp: New logical time; defaults to the current one
            event_id: Event to move the game to; defaults to the current one
        """
        game = self._get_game(game_id)
        event = self._get_event(event_id if event_id is not None else game.event_id)
        rules = self._rules_for(event)
        new_timestamp = timestamp or game.timestamp

        self._validate_players(players, rules)
        if new_timestamp != game.timestamp or event.id != game.event_id:
            self._validate_within_event_dates(event, new_timestamp)
            self._validate_unique_timestamp(event.id, new_timestamp, exclude_game_id=game.id)

        self.engine.reverse_match(MatchResult.from_game(game))

        previous_event_id = game.event_id
        game.event = event
        game.event_id = event.id
        game.timestamp = new_timestamp
        game.players.clear()
        self.session.flush()
        self._set_players(game, players)
        self.session.flush()

        self.engine.apply_match(MatchResult.from_game(game), rules)
        if previous_event_id != event.id:
            logger.info("Moved game %s from event %s to event %s", game.id, previous_event_id, event.id)
        else:
            logger.info("Updated game %s in event %s", game.id, event.id)
        return game

    def delete_match(self, game_id: int) -> None:
        """Reverse a game's ledger entries and delete it."""
        game = self._get_game(game_id)
        self.engine.reverse_match(MatchResult.from_game(game))
        self.session.delete(game)
        self.session.flush()
        logger.info("Deleted game %s", game_id)

    # =========================================================================
    # Validation
    # =========================================================================

    def _validate_players(self, players: Sequence[PlayerResult], rules: RuleSet) -> None:
        if len(players) != rules.number_of_players:
            raise IncorrectPlayerCountError(rules.number_of_players, len(players))

        seen: set[int] = set()
        for player in players:
            if player.user_id in seen:
                raise DuplicatePlayerError(player.user_id)
            seen.add(player.user_id)

            user = self.session.get(User, player.user_id)
            if user is None:
                raise UserNotFoundError(player.user_id)
            if not user.is_active:
                raise InactiveUserError(player.user_id)

        total = sum(p.points for p in players)
        expected = rules.number_of_players * rules.starting_points
        if total != expected:
            raise IncorrectTotalPointsError(expected, total)

    @staticmethod
    def _validate_within_event_dates(event: Event, timestamp: datetime) -> None:
        if event.date_from is not None and timestamp < event.date_from:
            raise MatchOutsideEventError(event.name, timestamp)
        if event.date_to is not None and timestamp > event.date_to:
            raise MatchOutsideEventError(event.name, timestamp)

    def _validate_unique_timestamp(
        self,
        event_id: int,
        timestamp: datetime,
        exclude_game_id: Optional[int] = None,
    ) -> None:
        stmt = select(Game.id).where(Game.event_id == event_id, Game.timestamp == timestamp)
        if exclude_game_id is not None:
            stmt = stmt.where(Game.id != exclude_game_id)
        if self.session.scalars(stmt).first() is not None:
            raise DuplicateMatchTimestampError(event_id, timestamp)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_event(self, event_id: int) -> Event:
        event = self.session.get(Event, event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    @staticmethod
    def _rules_for(event: Event) -> RuleSet:
        if event.game_rules is None:
            raise GameRulesNotFoundError(event.id)
        return RuleSet.from_model(event.game_rules)

    @staticmethod
    def _set_players(game: Game, players: Sequence[PlayerResult]) -> None:
        for player in players:
            game.players.append(
                GamePlayer(user_id=player.user_id, points=player.points, start_place=player.start_place)
            )

    def _get_game(self, game_id: int) -> Game:
        game = self.session.get(Game, game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return game

    def _summaries(self, games: Sequence[Game]) -> list[MatchSummary]:
        """Attach players, names and ledger rating changes to games."""
        if not games:
            return []

        stmt = (
            select(GamePlayer, User.name, UserRatingChange.rating_change)
            .join(User, User.id == GamePlayer.user_id)
            .join(
                UserRatingChange,
                and_(
                    UserRatingChange.game_id == GamePlayer.game_id,
                    UserRatingChange.user_id == GamePlayer.user_id,
                ),
            )
            .where(GamePlayer.game_id.in_([g.id for g in games]))
            .order_by(GamePlayer.points.desc(), GamePlayer.user_id)
        )
        players_by_game: dict[int, list[MatchPlayerSummary]] = {g.id: [] for g in games}
        for player, name, rating_change in self.session.execute(stmt):
            players_by_game[player.game_id].append(
                MatchPlayerSummary(
                    user_id=player.user_id,
                    user_name=name,
                    points=player.points,
                    start_place=player.start_place,
                    rating_change=to_display(rating_change),
                )
            )

        return [
            MatchSummary(
                id=game.id,
                event_id=game.event_id,
                timestamp=game.timestamp,
                created_at=game.created_at,
                modified_at=game.modified_at,
                players=players_by_game[game.id],
            )
            for game in games
        ]

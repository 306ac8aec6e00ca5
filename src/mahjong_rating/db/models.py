"""
SQLAlchemy ORM models for the rating service.

The schema is built around the rating ledger: one row per (user, event, game)
holding an immutable per-game delta and a mutable running total. Everything
else (users, events, rules, games) exists so the ledger has something to
reference and so statistics can join placements and points back in.

Key design decisions:
- Ratings are stored as integers in RATING_SCALE units (see rating/constants.py)
- rating_change is written once; rating (the running total) is shifted in place
  when a game is inserted or removed before it
- Ledger rows are ordered by the game's timestamp, never by insertion order
- Games within an event have unique timestamps (enforced by the match service)

Tables:
- users: Participants
- game_rules: Rule sets (uma table, starting points/rating, minimum games)
- events: Seasons/tournaments, each bound to one rule set
- games: Matches played in an event
- game_players: Final points per participant of a game
- user_rating_changes: The rating ledger
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Users
# =============================================================================

class User(Base):
    """A participant. Identity and authentication live elsewhere."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.name}')>"


# =============================================================================
# Events and Rules
# =============================================================================

class GameRules(Base):
    """
    Rule set shared by every game of an event.

    The uma column holds either a flat list with one bonus/penalty per
    finishing position, or a list of such lists selected by how many players
    finished at or above starting points (see rating/uma.py).
    """

    __tablename__ = "game_rules"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    number_of_players: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    uma: Mapped[list] = mapped_column(JSON, nullable=False)
    starting_points: Mapped[int] = mapped_column(Integer, nullable=False)
    starting_rating: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    minimum_games_for_rating: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<GameRules(id={self.id}, name='{self.name}')>"


class Event(Base):
    """A season or tournament. Ratings never cross event boundaries."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    game_rules_id: Mapped[int] = mapped_column(ForeignKey("game_rules.id"), nullable=False)

    # Games outside this window are rejected by the match service
    date_from: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    date_to: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    game_rules: Mapped["GameRules"] = relationship()

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name='{self.name}')>"


# =============================================================================
# Games
# =============================================================================

class Game(Base):
    """
    A single finished match.

    timestamp is the logical time of the game and drives ledger ordering.
    It may lie in the past (backdated entry by an admin) and can be changed
    by an edit, so it is distinct from created_at.
    """

    __tablename__ = "games"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    modified_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    event: Mapped["Event"] = relationship()
    players: Mapped[list["GamePlayer"]] = relationship(
        back_populates="game",
        cascade="all, delete-orphan",
        order_by="GamePlayer.id",
    )

    __table_args__ = (
        Index("idx_games_event_timestamp", "event_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<Game(id={self.id}, event_id={self.event_id}, timestamp={self.timestamp})>"


class GamePlayer(Base):
    """Final point total of one participant in a game."""

    __tablename__ = "game_players"

    id: Mapped[int] = mapped_column(primary_key=True)
    game_id: Mapped[int] = mapped_column(ForeignKey("games.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    start_place: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)  # 'EAST', 'SOUTH', ...

    game: Mapped["Game"] = relationship(back_populates="players")

    __table_args__ = (
        UniqueConstraint("game_id", "user_id", name="uq_game_player"),
        Index("idx_game_players_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<GamePlayer(game_id={self.game_id}, user_id={self.user_id}, points={self.points})>"


# =============================================================================
# Rating Ledger
# =============================================================================

class UserRatingChange(Base):
    """
    One ledger entry: the rating movement of one user from one game.

    Chain invariant, per (user_id, event_id) ordered by timestamp:
        entries[0].rating == starting_rating * SCALE + entries[0].rating_change
        entries[i].rating == entries[i-1].rating + entries[i].rating_change

    Only the rating engine writes this table.
    """

    __tablename__ = "user_rating_changes"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), nullable=False)
    game_id: Mapped[int] = mapped_column(ForeignKey("games.id"), nullable=False)

    # Local contribution of this game (immutable once written)
    rating_change: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Cumulative rating right after this game (shifted by propagation)
    rating: Mapped[int] = mapped_column(BigInteger, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", "game_id", name="uq_rating_change_user_event_game"),
        # Baseline lookups and propagation range scans
        Index("idx_rating_changes_user_event_ts", "user_id", "event_id", "timestamp"),
        # Reversal
        Index("idx_rating_changes_game", "game_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserRatingChange(user_id={self.user_id}, game_id={self.game_id}, "
            f"change={self.rating_change}, rating={self.rating})>"
        )

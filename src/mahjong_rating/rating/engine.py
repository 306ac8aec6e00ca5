"""
Rating ledger engine: applies and reverses a game's effect on the ledger.

Each ledger entry stores two numbers:
- rating_change: what this one game contributed (never rewritten)
- rating: the user's cumulative rating right after this game

Inserting a game somewhere in the middle of a user's history therefore only
needs two steps per player:
1. Read the rating of the latest entry strictly before the game (or the
   starting rating) and write the new entry on top of it
2. Shift the running rating of every strictly later entry by the new delta

Later entries keep their own rating_change; only their cumulative snapshot
moves. Reversal is the mirror image: shift later entries back by the removed
delta and delete the game's entries. No full history recomputation is
needed in either direction.

Both operations perform several reads and writes and must run inside one
transaction owned by the caller. Two concurrent calls touching the same
players are only safe under serializable isolation or when the caller
serializes writes per event.

Usage:
    engine = RatingLedgerEngine.from_session(session)
    engine.apply_match(MatchResult.from_game(game), RuleSet.from_model(rules))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from sqlalchemy.orm import Session

from mahjong_rating.db.models import Game
from mahjong_rating.errors import LedgerEntryMissingError
from mahjong_rating.rating.constants import RATING_SCALE, to_display
from mahjong_rating.rating.ledger import RatingLedgerStore
from mahjong_rating.rating.rules import RuleSet
from mahjong_rating.rating.uma import resolve_uma

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Participant:
    user_id: int
    points: int


@dataclass(frozen=True)
class MatchResult:
    """A validated game result, as handed over by the match service."""

    id: int
    event_id: int
    timestamp: datetime
    participants: tuple[Participant, ...]

    @classmethod
    def from_game(cls, game: Game) -> "MatchResult":
        return cls(
            id=game.id,
            event_id=game.event_id,
            timestamp=game.timestamp,
            participants=tuple(Participant(p.user_id, p.points) for p in game.players),
        )


@dataclass
class AppliedRatingChange:
    """
    Rating movement written for one player of an applied game.

    Values are in ledger units; the display_* properties divide by
    RATING_SCALE.
    """
    user_id: int
    points: int
    uma: Decimal
    rating_before: int
    rating_change: int
    rating_after: int

    @property
    def display_rating_change(self) -> Decimal:
        return to_display(self.rating_change)

    @property
    def display_rating_after(self) -> Decimal:
        return to_display(self.rating_after)

    def __repr__(self) -> str:
        return (
            f"<AppliedRatingChange(user={self.user_id}, points={self.points}, "
            f"change={self.display_rating_change}, after={self.display_rating_after})>"
        )


def calculate_rating_change(points: int, uma: Decimal, starting_points: int) -> int:
    """
    Rating change of one player in ledger units.

    (points - starting_points) is already in ledger units; uma is in rating
    units and scaled up. Averaged uma can have a fractional part beyond
    1/RATING_SCALE (three-way ties), which is rounded half-up.
    """
    gained = points - starting_points
    scaled = (Decimal(gained) + uma * RATING_SCALE).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(scaled)


def calculate_rating_changes(
    points: Sequence[int],
    uma_values: Sequence[Decimal],
    starting_points: int,
) -> list[int]:
    """
    Rating changes of all players of a game, in ledger units.

    Tied players share fractional uma, so rounding each of them on its own
    can drift the group total by a unit or two. The group total is rounded
    once instead and the leftover units go to the group's first players, so
    a game's changes add up to the same total as its unrounded ones.

    Args:
        points: Final points in finishing order
        uma_values: Resolved uma per player, same order
        starting_points: Points every player started with
    """
    changes = [
        calculate_rating_change(p, uma, starting_points)
        for p, uma in zip(points, uma_values)
    ]

    groups: dict[int, list[int]] = {}
    for index, player_points in enumerate(points):
        groups.setdefault(player_points, []).append(index)

    for indices in groups.values():
        exact = sum(
            Decimal(points[i] - starting_points) + uma_values[i] * RATING_SCALE
            for i in indices
        )
        target = int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))
        remainder = target - sum(changes[i] for i in indices)
        step = 1 if remainder > 0 else -1
        for i in indices[:abs(remainder)]:
            changes[i] += step
    return changes


class RatingLedgerEngine:
    """Stateless service applying/reversing games against the ledger store."""

    def __init__(self, store: RatingLedgerStore):
        self.store = store

    @classmethod
    def from_session(cls, session: Session) -> "RatingLedgerEngine":
        return cls(RatingLedgerStore(session))

    def apply_match(self, match: MatchResult, rules: RuleSet) -> list[AppliedRatingChange]:
        """
        Write ledger entries for a game and propagate them forward.

        Args:
            match: Validated game result
            rules: Rule set of the game's event

        Returns:
            One AppliedRatingChange per participant, in finishing order
        """
        # sorted() is stable, so tied players keep their submitted order
        players = sorted(match.participants, key=lambda p: p.points, reverse=True)
        points = [p.points for p in players]
        uma_values = resolve_uma(points, rules.uma_table_for(points))
        changes = calculate_rating_changes(points, uma_values, rules.starting_points)

        applied: list[AppliedRatingChange] = []
        for player, uma, rating_change in zip(players, uma_values, changes):
            self._warn_on_shared_timestamp(player.user_id, match)

            latest = self.store.latest_before(player.user_id, match.event_id, match.timestamp)
            baseline = latest.rating if latest is not None else rules.starting_rating_scaled
            new_rating = baseline + rating_change

            self.store.add_entry(
                user_id=player.user_id,
                event_id=match.event_id,
                game_id=match.id,
                rating_change=rating_change,
                rating=new_rating,
                timestamp=match.timestamp,
            )
            shifted = self.store.shift_after(
                player.user_id, match.event_id, match.timestamp, rating_change
            )
            if shifted:
                logger.debug(
                    "Game %s inserted before %d later entries of user %s; shifted by %d",
                    match.id, shifted, player.user_id, rating_change,
                )

            applied.append(
                AppliedRatingChange(
                    user_id=player.user_id,
                    points=player.points,
                    uma=uma,
                    rating_before=baseline,
                    rating_change=rating_change,
                    rating_after=new_rating,
                )
            )

        logger.info(
            "Applied game %s (event %s): %s",
            match.id,
            match.event_id,
            ", ".join(f"{a.user_id}:{a.display_rating_change:+}" for a in applied),
        )
        return applied

    def reverse_match(self, match: MatchResult) -> None:
        """
        Remove a game's entries and shift later entries back.

        Raises:
            LedgerEntryMissingError: A participant has no entry for this game.
                The ledger already disagrees with the game history; this is
                never skipped.
        """
        for player in match.participants:
            entry = self.store.find_entry(player.user_id, match.event_id, match.id)
            if entry is None:
                logger.error(
                    "Ledger entry missing for user %s in game %s (event %s)",
                    player.user_id, match.id, match.event_id,
                )
                raise LedgerEntryMissingError(player.user_id, match.id)

            self.store.shift_after(
                player.user_id, match.event_id, match.timestamp, -entry.rating_change
            )

        deleted = self.store.delete_game_entries(match.id)
        logger.info("Reversed game %s (event %s): %d entries removed", match.id, match.event_id, deleted)

    def _warn_on_shared_timestamp(self, user_id: int, match: MatchResult) -> None:
        # Equal timestamps are neither "before" nor "after" each other, so such
        # games do not see each other's deltas. The match service rejects them.
        clashes = [
            e for e in self.store.entries_at(user_id, match.event_id, match.timestamp)
            if e.game_id != match.id
        ]
        if clashes:
            logger.warning(
                "Game %s shares timestamp %s with game(s) %s for user %s; "
                "their ledger entries will not chain",
                match.id,
                match.timestamp.isoformat(),
                [e.game_id for e in clashes],
                user_id,
            )

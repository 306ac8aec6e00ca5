"""In-memory rule set used by the rating engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from mahjong_rating.db.models import GameRules
from mahjong_rating.rating.constants import RATING_SCALE
from mahjong_rating.rating.uma import select_uma_table


def _freeze_uma(uma: Sequence) -> tuple:
    if len(uma) > 0 and isinstance(uma[0], (list, tuple)):
        return tuple(tuple(table) for table in uma)
    return tuple(uma)


@dataclass(frozen=True)
class RuleSet:
    """Immutable rule set of an event."""

    number_of_players: int
    uma: tuple
    starting_points: int
    starting_rating: int = 0
    minimum_games_for_rating: int = 0

    @classmethod
    def from_model(cls, rules: GameRules) -> "RuleSet":
        return cls(
            number_of_players=rules.number_of_players,
            uma=_freeze_uma(rules.uma),
            starting_points=rules.starting_points,
            starting_rating=rules.starting_rating,
            minimum_games_for_rating=rules.minimum_games_for_rating,
        )

    @property
    def starting_rating_scaled(self) -> int:
        """Baseline of a user with no earlier ledger entry, in ledger units."""
        return self.starting_rating * RATING_SCALE

    def uma_table_for(self, points: Sequence[int]) -> list[int]:
        return select_uma_table(points, self.uma, self.starting_points)

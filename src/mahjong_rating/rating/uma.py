"""
Uma (placement bonus) resolution.

Uma is a fixed table of bonus/penalty values indexed by finishing position.
When several players finish on identical points they cannot be separated, so
each of them receives the mean of the table slots they jointly occupy:

    points [34000, 34000, 28000, 24000], uma [16, 8, -8, -16]
    -> [12, 12, -8, -16]

Some rule sets use a "dynamic" uma: a list of tables, one per number of
players finishing at or above starting points. Table k-1 is used when k
players are at or above start; when everyone is, nobody gets uma.
"""

from decimal import Decimal
from typing import Sequence, Union

UmaTable = Sequence[int]
UmaRule = Union[Sequence[int], Sequence[Sequence[int]]]


def is_dynamic_uma(uma: UmaRule) -> bool:
    """Whether the rule holds one table per count of non-negative players."""
    return len(uma) > 0 and isinstance(uma[0], (list, tuple))


def select_uma_table(points: Sequence[int], uma: UmaRule, starting_points: int) -> list[int]:
    """
    Pick the uma table that applies to a finished game.

    Args:
        points: Final points of every player (any order)
        uma: Flat table, or list of tables for dynamic uma
        starting_points: Points every player started with

    Returns:
        Table with one value per finishing position

    Raises:
        ValueError: Dynamic uma and nobody finished at or above starting
            points, which a game whose points add up to
            number_of_players * starting_points cannot produce
    """
    if not is_dynamic_uma(uma):
        return list(uma)

    at_or_above_start = sum(1 for p in points if p >= starting_points)
    if at_or_above_start == len(points):
        return [0] * len(points)
    if at_or_above_start == 0:
        raise ValueError(
            f"No player reached starting points {starting_points}; no uma table applies"
        )
    return list(uma[at_or_above_start - 1])


def resolve_uma(points: Sequence[int], uma_table: UmaTable) -> list[Decimal]:
    """
    Resolve per-player uma, averaging the slots of tied players.

    The caller sorts: points must already be in finishing order (descending,
    stable on ties). The table has exactly one slot per player.

    Args:
        points: Final points in finishing order
        uma_table: Bonus/penalty per finishing position

    Returns:
        Uma value for each player, in the same order as points
    """
    slots_by_points: dict[int, list[int]] = {}
    for index, player_points in enumerate(points):
        slots_by_points.setdefault(player_points, []).append(index)

    resolved: list[Decimal] = [Decimal(0)] * len(points)
    for indices in slots_by_points.values():
        average = Decimal(sum(uma_table[i] for i in indices)) / len(indices)
        for i in indices:
            resolved[i] = average
    return resolved

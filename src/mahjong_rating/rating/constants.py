"""
Rating system constants.

RATING_SCALE separates the ratings shown to users (decimals such as 16.5)
from the integers stored in the ledger. A rating change is

    (final points - starting points) + uma * RATING_SCALE

so with the common 30000-point start, 1000 points equal one rating unit and
uma values (already in rating units) can be averaged over tied players
without losing precision in storage.
"""

from decimal import Decimal

RATING_SCALE = 1000


def to_display(value: int) -> Decimal:
    """Convert a stored ledger integer to the decimal shown to users."""
    return Decimal(value) / RATING_SCALE

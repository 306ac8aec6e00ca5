"""
Rating ledger module.

Implements the event rating system with:
- Uma resolution with averaging over tied players (flat or dynamic tables)
- An append-and-shift ledger kept consistent under out-of-order inserts
  and deletes
- Current ratings, rating history, period totals and standings
- Per-user event statistics
- Ledger verification and rebuild tools
"""

from mahjong_rating.rating.constants import RATING_SCALE, to_display
from mahjong_rating.rating.uma import resolve_uma, select_uma_table
from mahjong_rating.rating.rules import RuleSet
from mahjong_rating.rating.ledger import RatingLedgerStore
from mahjong_rating.rating.engine import (
    AppliedRatingChange,
    MatchResult,
    Participant,
    RatingLedgerEngine,
)
from mahjong_rating.rating.standings import (
    RatingSnapshot,
    StandingsAndHistoryReader,
    UserRating,
    UserRatingChangeTotal,
)
from mahjong_rating.rating.stats import EventStatsAggregator, NoParticipation, UserEventStats
from mahjong_rating.rating.maintenance import (
    ChainViolation,
    find_chain_violations,
    rebuild_event_ledger,
)

__all__ = [
    "RATING_SCALE",
    "to_display",
    "resolve_uma",
    "select_uma_table",
    "RuleSet",
    "RatingLedgerStore",
    "AppliedRatingChange",
    "MatchResult",
    "Participant",
    "RatingLedgerEngine",
    "RatingSnapshot",
    "StandingsAndHistoryReader",
    "UserRating",
    "UserRatingChangeTotal",
    "EventStatsAggregator",
    "NoParticipation",
    "UserEventStats",
    "ChainViolation",
    "find_chain_violations",
    "rebuild_event_ledger",
]

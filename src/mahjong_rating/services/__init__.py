"""
Services: business logic on top of the rating ledger.

Usage:
    from mahjong_rating.services import MatchService, PlayerResult
"""

from mahjong_rating.services.matches import (
    MAX_MATCHES_PER_QUERY,
    MatchPlayerSummary,
    MatchService,
    MatchSummary,
    PlayerResult,
)

__all__ = [
    "MAX_MATCHES_PER_QUERY",
    "MatchPlayerSummary",
    "MatchService",
    "MatchSummary",
    "PlayerResult",
]

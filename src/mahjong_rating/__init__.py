"""
Mahjong Rating - event rating ledger for 4-player Mahjong

Scores finished matches and keeps a running rating per player within an
event (season or tournament).

Main components:
- rating: Uma resolution, the rating ledger engine, standings and statistics
- services: Match service that validates results and drives the ledger
- db: SQLAlchemy models and session management
"""

__version__ = "1.0.0"

#!/usr/bin/env python3
"""
Rebuild the rating ledger of an event from its games.

Deletes all ledger entries of the event and re-applies every game in
timestamp order, in a single transaction. Use after verify_ledger.py
reports a broken chain.

Exits with status 1 if the rebuilt ledger still breaks the chain.

Usage:
    python scripts/rebuild_ledger.py --event-id 1 --dry-run
    python scripts/rebuild_ledger.py --event-id 1
"""

import argparse
import logging
from typing import Optional

from mahjong_rating.config import settings
from mahjong_rating.db.session import get_session
from mahjong_rating.rating.maintenance import find_chain_violations, rebuild_event_ledger

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


class _DryRunRollback(Exception):
    pass


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Recompute an event's rating ledger from scratch.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--event-id", type=int, required=True, help="Event to rebuild")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Rebuild and verify, then roll back",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    violations = []
    try:
        with get_session() as session:
            games = rebuild_event_ledger(session, args.event_id)
            violations = find_chain_violations(session, args.event_id)
            logger.info(
                "Event %s: rebuilt from %d games, %d chain violations after rebuild",
                args.event_id, games, len(violations),
            )
            if args.dry_run:
                raise _DryRunRollback()
    except _DryRunRollback:
        logger.info("[DRY RUN] Rolled back")

    if violations:
        logger.error(
            "Event %s: %d entries still break the chain after rebuild",
            args.event_id, len(violations),
        )
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

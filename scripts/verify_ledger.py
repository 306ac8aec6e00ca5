#!/usr/bin/env python3
"""
Check that the rating ledger of an event satisfies the chain invariant.

For every user, entries ordered by timestamp must satisfy
    first.rating == starting_rating * SCALE + first.rating_change
    next.rating  == previous.rating + next.rating_change

Exits with status 1 if any entry breaks the chain.

Usage:
    python scripts/verify_ledger.py --event-id 1
    python scripts/verify_ledger.py --event-id 1 --event-id 2
"""

import argparse
import logging
from typing import Optional

from mahjong_rating.config import settings
from mahjong_rating.db.session import get_session
from mahjong_rating.rating.maintenance import find_chain_violations

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Verify the running ratings of one or more events.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--event-id",
        type=int,
        action="append",
        required=True,
        help="Event to verify (repeatable)",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    broken = 0
    with get_session() as session:
        for event_id in args.event_id:
            violations = find_chain_violations(session, event_id)
            if not violations:
                logger.info("Event %s: ledger is consistent", event_id)
                continue
            broken += len(violations)
            for violation in violations:
                logger.error(
                    "Event %s: user %s game %s has rating %s, expected %s",
                    event_id,
                    violation.user_id,
                    violation.game_id,
                    violation.actual_rating,
                    violation.expected_rating,
                )

    return 1 if broken else 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Tests for the exit codes of scripts/verify_ledger.py and scripts/rebuild_ledger.py."""

from contextlib import contextmanager
from datetime import datetime

import pytest

from mahjong_rating.rating.engine import MatchResult, RatingLedgerEngine
from mahjong_rating.rating.ledger import RatingLedgerStore
from mahjong_rating.rating.maintenance import ChainViolation
from scripts import rebuild_ledger, verify_ledger


@pytest.fixture
def use_test_session(db_session, monkeypatch):
    """Route the scripts' get_session() to the per-test session."""
    @contextmanager
    def _session():
        yield db_session
        db_session.flush()

    monkeypatch.setattr(rebuild_ledger, "get_session", _session)
    monkeypatch.setattr(verify_ledger, "get_session", _session)


@pytest.fixture
def played(db_session, add_game, users, rules):
    engine = RatingLedgerEngine.from_session(db_session)
    games = []
    for day, points in [(1, [40000, 35000, 25000, 20000]), (2, [20000, 25000, 35000, 40000])]:
        game = add_game([(u.id, p) for u, p in zip(users[:4], points)], datetime(2026, 1, day, 12))
        engine.apply_match(MatchResult.from_game(game), rules)
        games.append(game)
    return games


def _corrupt_first_entry(db_session, game):
    entry = RatingLedgerStore(db_session).find_entry(game.players[0].user_id, game.event_id, game.id)
    entry.rating += 1000
    db_session.flush()


class TestVerifyLedger:

    def test_consistent_ledger_exits_zero(self, use_test_session, event, played):
        assert verify_ledger.main(["--event-id", str(event.id)]) == 0

    def test_broken_chain_exits_one(self, db_session, use_test_session, event, played):
        _corrupt_first_entry(db_session, played[0])

        assert verify_ledger.main(["--event-id", str(event.id)]) == 1


class TestRebuildLedger:

    def test_successful_rebuild_exits_zero(self, db_session, use_test_session, event, played):
        _corrupt_first_entry(db_session, played[0])

        assert rebuild_ledger.main(["--event-id", str(event.id)]) == 0
        assert verify_ledger.main(["--event-id", str(event.id)]) == 0

    def test_remaining_violations_exit_one(self, use_test_session, event, played, monkeypatch):
        monkeypatch.setattr(
            rebuild_ledger,
            "find_chain_violations",
            lambda session, event_id: [ChainViolation(1, played[0].id, 0, 1000)],
        )

        assert rebuild_ledger.main(["--event-id", str(event.id)]) == 1

    def test_dry_run_reports_remaining_violations(self, use_test_session, event, played, monkeypatch):
        monkeypatch.setattr(
            rebuild_ledger,
            "find_chain_violations",
            lambda session, event_id: [ChainViolation(1, played[0].id, 0, 1000)],
        )

        assert rebuild_ledger.main(["--event-id", str(event.id), "--dry-run"]) == 1

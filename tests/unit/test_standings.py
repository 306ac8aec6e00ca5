"""Unit tests for StandingsAndHistoryReader."""

from datetime import datetime
from decimal import Decimal

import pytest

from mahjong_rating.errors import EventNotFoundError, UserNotFoundError
from mahjong_rating.rating.engine import MatchResult, RatingLedgerEngine
from mahjong_rating.rating.standings import StandingsAndHistoryReader


def ts(day: int, hour: int = 12) -> datetime:
    return datetime(2026, 1, day, hour)


@pytest.fixture
def reader(db_session):
    return StandingsAndHistoryReader(db_session)


@pytest.fixture
def played(db_session, add_game, users, rules):
    """
    Three games between users 1-4 (user 5 plays once, user 6 never).

    Running ratings afterwards:
        user 1:  16 ->  42 ->  29
        user 2:  16 ->  29           (days 1 and 2 only)
        user 3: -10 -> -23 -> -10
        user 4: -22 -> -48 -> -22
        user 5:               -26    (day 3 only)
    """
    engine = RatingLedgerEngine.from_session(db_session)
    u = users
    games = [
        ([(u[0].id, 34000), (u[1].id, 34000), (u[2].id, 28000), (u[3].id, 24000)], ts(1)),
        ([(u[0].id, 40000), (u[1].id, 35000), (u[2].id, 25000), (u[3].id, 20000)], ts(2)),
        ([(u[3].id, 40000), (u[2].id, 35000), (u[0].id, 25000), (u[4].id, 20000)], ts(3)),
    ]
    for results, timestamp in games:
        game = add_game(results, timestamp)
        engine.apply_match(MatchResult.from_game(game), rules)


class TestCurrentRatings:

    def test_sorted_descending_with_display_values(self, reader, event, users, played):
        ratings = reader.current_ratings(event.id)

        assert [(r.user_id, r.rating) for r in ratings] == [
            (users[0].id, Decimal(29)),
            (users[1].id, Decimal(29)),
            (users[2].id, Decimal(-10)),
            (users[3].id, Decimal(-22)),
            (users[4].id, Decimal(-26)),
        ]

    def test_games_played_and_minimum(self, reader, event, users, played):
        by_user = {r.user_id: r for r in reader.current_ratings(event.id)}

        assert by_user[users[0].id].games_played == 3
        assert by_user[users[0].id].has_minimum_games
        assert by_user[users[1].id].games_played == 2
        assert not by_user[users[1].id].has_minimum_games
        assert by_user[users[0].id].user_name == "Player 1"

    def test_empty_event(self, reader, event):
        assert reader.current_ratings(event.id) == []

    def test_unknown_event(self, reader):
        with pytest.raises(EventNotFoundError):
            reader.current_ratings(12345)


class TestRatingHistory:

    def test_history_is_ascending(self, reader, event, users, played):
        history = reader.rating_history(users[2].id, event.id)

        assert [h.timestamp for h in history] == [ts(1), ts(2), ts(3)]
        assert [h.rating for h in history] == [Decimal(-10), Decimal(-23), Decimal(-10)]

    def test_history_follows_timestamps_not_insert_order(
        self, db_session, reader, add_game, event, users, rules, played
    ):
        engine = RatingLedgerEngine.from_session(db_session)
        game = add_game(
            [(users[5].id, 40000), (users[1].id, 35000), (users[2].id, 25000), (users[3].id, 20000)],
            datetime(2025, 12, 31, 12),
        )
        engine.apply_match(MatchResult.from_game(game), rules)

        history = reader.rating_history(users[2].id, event.id)

        assert history[0].timestamp == datetime(2025, 12, 31, 12)
        assert [h.rating for h in history] == [Decimal(-13), Decimal(-23), Decimal(-36), Decimal(-23)]

    def test_never_played_is_empty(self, reader, event, users, played):
        assert reader.rating_history(users[5].id, event.id) == []

    def test_unknown_user(self, reader, event):
        with pytest.raises(UserNotFoundError):
            reader.rating_history(12345, event.id)


class TestTotalChangeDuringPeriod:

    def test_inclusive_bounds(self, reader, event, users, played):
        totals = reader.total_change_during_period(event.id, ts(2), ts(3))
        by_user = {t.user_id: t.rating_change for t in totals}

        assert by_user == {
            users[0].id: Decimal(26) + Decimal(-13),
            users[1].id: Decimal(13),
            users[2].id: Decimal(-13) + Decimal(13),
            users[3].id: Decimal(-26) + Decimal(26),
            users[4].id: Decimal(-26),
        }

    def test_users_without_games_in_period_are_omitted(self, reader, event, users, played):
        totals = reader.total_change_during_period(event.id, ts(3), ts(3))

        assert {t.user_id for t in totals} == {users[0].id, users[2].id, users[3].id, users[4].id}

    def test_empty_period(self, reader, event, played):
        assert reader.total_change_during_period(event.id, ts(20), ts(25)) == []


class TestStandings:

    def test_distinct_ranks_by_default(self, reader, event, users, played):
        standings = reader.standings(event.id)

        assert standings == {
            users[0].id: 1,
            users[1].id: 2,
            users[2].id: 3,
            users[3].id: 4,
            users[4].id: 5,
        }

    def test_shared_ties(self, reader, event, users, played):
        standings = reader.standings(event.id, shared_ties=True)

        assert standings[users[0].id] == 1
        assert standings[users[1].id] == 1
        assert standings[users[2].id] == 3

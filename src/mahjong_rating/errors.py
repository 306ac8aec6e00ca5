"""
Error types raised by the rating ledger and the match service.

Every error carries an HTTP status and a stable machine-readable code so the
presentation layer can map it to a response without inspecting messages:

- Not found (404): a referenced user, event or game does not exist.
- Validation (400): a match result or a match query was rejected before
  touching the database.
  Only the match service raises these; the ledger engine trusts its input.
- Internal consistency (500): the ledger disagrees with the match history.
  These are fatal and must never be caught and ignored.
"""

from datetime import datetime
from http import HTTPStatus


class RatingServiceError(Exception):
    """Base class for all errors raised by this package."""

    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    error_code: str = "ratingServiceError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# =============================================================================
# Not found
# =============================================================================

class NotFoundError(RatingServiceError):
    """A referenced entity does not exist."""

    status_code = HTTPStatus.NOT_FOUND
    error_code = "notFound"


class UserNotFoundError(NotFoundError):
    error_code = "userNotFoundById"

    def __init__(self, user_id: int):
        super().__init__(f"User with id {user_id} not found")
        self.user_id = user_id


class EventNotFoundError(NotFoundError):
    error_code = "eventNotFound"

    def __init__(self, event_id: int):
        super().__init__(f"Event with id {event_id} not found")
        self.event_id = event_id


class GameNotFoundError(NotFoundError):
    error_code = "gameNotFoundById"

    def __init__(self, game_id: int):
        super().__init__(f"Game with id {game_id} not found")
        self.game_id = game_id


# =============================================================================
# Internal consistency
# =============================================================================

class InternalConsistencyError(RatingServiceError):
    """Stored data violates an invariant the service relies on."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    error_code = "internalConsistency"


class LedgerEntryMissingError(InternalConsistencyError):
    """A game's rating change for one of its players is not in the ledger."""

    error_code = "userRatingChangeInGameNotFound"

    def __init__(self, user_id: int, game_id: int):
        super().__init__(f"Rating change of user {user_id} in game {game_id} not found")
        self.user_id = user_id
        self.game_id = game_id


class GameRulesNotFoundError(InternalConsistencyError):
    error_code = "gameRulesNotFound"

    def __init__(self, event_id: int):
        super().__init__(f"Game rules for event with id {event_id} not found")
        self.event_id = event_id


# =============================================================================
# Validation (match service only)
# =============================================================================

class MatchValidationError(RatingServiceError):
    """A submitted match result is invalid."""

    status_code = HTTPStatus.BAD_REQUEST
    error_code = "invalidMatch"


class IncorrectPlayerCountError(MatchValidationError):
    error_code = "incorrectPlayerCount"

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Game must have exactly {expected} players, got {actual}")
        self.expected = expected
        self.actual = actual


class DuplicatePlayerError(MatchValidationError):
    error_code = "duplicatePlayer"

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} appears more than once in the game")
        self.user_id = user_id


class InactiveUserError(MatchValidationError):
    error_code = "userIsNotActive"

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} is not active")
        self.user_id = user_id


class IncorrectTotalPointsError(MatchValidationError):
    error_code = "incorrectTotalPoints"

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Total points must be {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class MatchOutsideEventError(MatchValidationError):
    error_code = "gameOutsideEventDates"

    def __init__(self, event_name: str, timestamp: datetime):
        super().__init__(f"Game at {timestamp.isoformat()} is outside the dates of event '{event_name}'")
        self.event_name = event_name
        self.timestamp = timestamp


class DuplicateMatchTimestampError(MatchValidationError):
    error_code = "duplicateGameTimestampInEvent"

    def __init__(self, event_id: int, timestamp: datetime):
        super().__init__(
            f"Event {event_id} already has a game at {timestamp.isoformat()}"
        )
        self.event_id = event_id
        self.timestamp = timestamp


class TooManyMatchesFoundError(MatchValidationError):
    error_code = "tooManyGamesFound"

    def __init__(self, limit: int):
        super().__init__(
            f"More than {limit} games found. Please narrow down your search criteria."
        )
        self.limit = limit

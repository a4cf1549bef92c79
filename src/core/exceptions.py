"""Custom exceptions. All of them derive from GameError so callers can catch one top-level type."""

from typing import Optional


class GameError(Exception):
    """Top-level exception for anything that goes wrong while matching or playing."""


class NotAuthenticatedError(GameError):
    """No identity could be resolved for the caller."""


class NotParticipantError(GameError):
    """Caller is not one of the two players of the match."""


class NotFoundError(GameError):
    """Requested match does not exist."""


class RepositoryError(GameError):
    """Persistence layer could not complete a request."""


# --- Matchmaking ---
class AlreadyQueuedError(GameError):
    """Player already holds a waiting ticket for this variant."""


class NotWaitingError(GameError):
    """Player holds no waiting ticket (and no freshly formed match) for this variant."""


class OpponentUnavailableError(GameError):
    """An opponent was found, but the match between both players could not be formed."""


# --- Session ---
class GameNotActiveError(GameError):
    """No live session accepts this action."""


class GameAlreadyFinishedError(GameNotActiveError):
    """The session already reached its terminal state."""


class TimeExpiredError(GameAlreadyFinishedError):
    """The mover's clock ran out. The in-flight move was not applied and the game ended on time."""

    def __init__(self, message: str, winner_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.winner_id = winner_id


class OutOfTurnError(GameError):
    """Submitted a move while it is the opponent's turn."""


class InvalidMovePayloadError(GameError):
    """Move payload misses coordinates or the piece."""

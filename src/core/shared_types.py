"""
Type definitions used across layers
"""

from enum import StrEnum


class MatchStatus(StrEnum):
    """Status of the durable match record."""

    IN_PROGRESS = "IN_PROGRESS"
    PLAYER1_WON = "PLAYER1_WON"
    PLAYER2_WON = "PLAYER2_WON"
    DRAW = "DRAW"


class SessionStatus(StrEnum):
    """Status of the live, in-memory session. Only ever moves forward."""

    WAITING = "WAITING"
    IN_PROGRESS = "IN_PROGRESS"
    GAME_OVER = "GAME_OVER"


class GameOverReason(StrEnum):
    TIME_OUT = "TIME_OUT"
    RESIGNATION = "RESIGNATION"
    DRAW = "DRAW"


class QueueState(StrEnum):
    WAITING = "WAITING"
    PAIRED = "PAIRED"
    TIMED_OUT = "TIMED_OUT"


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"


class EventType(StrEnum):
    GAME_OVER = "GAME_OVER"
    DRAW_OFFER = "DRAW_OFFER"
    DRAW_REJECTED = "DRAW_REJECTED"
    CHAT_MESSAGE = "CHAT_MESSAGE"

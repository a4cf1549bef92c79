"""Requests, Responses and outbound Event models"""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.chess.board import Board
from src.chess.square import BOARD_DIMENSIONS
from src.core.exceptions import InvalidMovePayloadError
from src.core.models import PlayerId
from src.core.shared_types import (
    Color,
    EventType,
    GameOverReason,
    MatchStatus,
    QueueState,
    SessionStatus,
)

Grid = list[list[Optional[str]]]


class CamelModel(BaseModel):
    """Serialized with camelCase keys (what the browser client reads), constructed with snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- REQUEST MODELS ---
class MoveRequest(CamelModel):
    """A move as the client declares it. Coordinates are grid indices: row 0 is the 8th rank, col 0 the a-file."""

    from_row: Optional[int] = None
    from_col: Optional[int] = None
    to_row: Optional[int] = None
    to_col: Optional[int] = None
    piece: Optional[str] = None
    captured_piece: Optional[str] = None
    castled: bool = False
    board: Optional[Grid] = None
    fen_after: Optional[str] = None
    player_color: Optional[Color] = None

    @field_validator(*["from_row", "from_col", "to_row", "to_col"])
    @classmethod
    def validate_coordinate(cls, value: Optional[int]) -> Optional[int]:
        if value is None:
            return value
        if not 0 <= value < BOARD_DIMENSIONS[0]:
            raise InvalidMovePayloadError(
                f"Coordinate {value!r} is off the board (0-{BOARD_DIMENSIONS[0] - 1})."
            )
        return value

    @field_validator("board")
    @classmethod
    def validate_board(cls, value: Optional[Grid]) -> Optional[Grid]:
        if value is None:
            return value
        if not Board.from_grid(value).is_well_formed():
            raise InvalidMovePayloadError("Board must be an 8x8 grid.")
        return value

    def is_complete(self) -> bool:
        """Coordinates, piece and resulting board must all be present."""
        coordinates = (self.from_row, self.from_col, self.to_row, self.to_col)
        return (
            all(c is not None for c in coordinates)
            and bool(self.piece)
            and self.board is not None
        )


class ChatRequest(CamelModel):
    message: str = Field(min_length=1, max_length=500)


# --- RESPONSE MODELS ---
class QueueResponse(CamelModel):
    state: QueueState
    match_id: Optional[UUID] = None


class SessionSnapshot(CamelModel):
    """What a participant sees when (re)joining the live session."""

    match_id: UUID
    status: SessionStatus
    player_color: Color
    my_turn: bool
    white_to_move: bool
    board: list[list[str]]
    fen: str
    variant: str
    white_seconds: Optional[int] = None
    black_seconds: Optional[int] = None
    reason: Optional[GameOverReason] = None
    winner_id: Optional[PlayerId] = None


class MatchDetails(CamelModel):
    """Read-only view of the durable record. Never creates a live session."""

    match_id: UUID
    player_color: Color
    my_turn: bool
    status: MatchStatus
    variant: str
    current_ply: int
    white_seconds: Optional[int] = None
    black_seconds: Optional[int] = None
    created_at: Optional[datetime] = None


class MoveResponse(CamelModel):
    match_id: UUID
    player_id: PlayerId
    player_color: Color
    board: list[list[str]]
    white_to_move: bool
    move_notation: str
    fen: str
    white_seconds: Optional[int] = None
    black_seconds: Optional[int] = None
    timestamp: datetime


# --- EVENT MODELS (pushed through the NotificationPort) ---
class GameOverEvent(CamelModel):
    type: Literal[EventType.GAME_OVER] = EventType.GAME_OVER
    match_id: UUID
    reason: GameOverReason
    winner_id: Optional[PlayerId] = None
    resigned_by: Optional[PlayerId] = None
    accepted_by: Optional[PlayerId] = None
    timestamp: int


class DrawOfferEvent(CamelModel):
    type: Literal[EventType.DRAW_OFFER] = EventType.DRAW_OFFER
    match_id: UUID
    sender: PlayerId = Field(alias="from")
    timestamp: int


class DrawRejectedEvent(CamelModel):
    type: Literal[EventType.DRAW_REJECTED] = EventType.DRAW_REJECTED
    match_id: UUID
    by: PlayerId
    timestamp: int


class ChatMessageEvent(CamelModel):
    type: Literal[EventType.CHAT_MESSAGE] = EventType.CHAT_MESSAGE
    match_id: UUID
    sender: PlayerId = Field(alias="from")
    message: str
    timestamp: int

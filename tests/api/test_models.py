"""Unit tests for src/api/models.py"""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from src.api.models import ChatRequest, GameOverEvent, MoveRequest, QueueResponse
from src.chess.board import STARTING_GRID
from src.core.exceptions import InvalidMovePayloadError
from src.core.shared_types import GameOverReason, QueueState


# -- Validation - MoveRequest --
def test_valid_move() -> None:
    request = MoveRequest(
        from_row=6, from_col=4, to_row=4, to_col=4, piece="P", board=STARTING_GRID
    )
    assert request.is_complete()
    assert not request.castled


def test_camel_case_payload() -> None:
    """Browser clients send camelCase keys."""
    request = MoveRequest.model_validate(
        {
            "fromRow": 7,
            "fromCol": 4,
            "toRow": 7,
            "toCol": 6,
            "piece": "K",
            "castled": True,
            "capturedPiece": None,
            "fenAfter": "5rk1/8/8/8/8/8/8/5RK1 b - - 1 1",
            "board": STARTING_GRID,
        }
    )
    assert request.to_col == 6
    assert request.castled
    assert request.fen_after is not None


@pytest.mark.parametrize("coordinate", [-1, 8, 42])
def test_coordinate_off_the_board(coordinate: int) -> None:
    with pytest.raises(InvalidMovePayloadError):
        _ = MoveRequest(from_row=coordinate, from_col=0, to_row=0, to_col=0, piece="P")


def test_board_must_be_8x8() -> None:
    with pytest.raises(InvalidMovePayloadError):
        _ = MoveRequest(board=[["r"] * 8] * 7)
    with pytest.raises(InvalidMovePayloadError):
        _ = MoveRequest(board=[["r"] * 7] * 8)


@pytest.mark.parametrize(
    "fields",
    [
        {"from_col": 4, "to_row": 4, "to_col": 4, "piece": "P"},
        {"from_row": 6, "from_col": 4, "to_row": 4, "to_col": 4, "piece": ""},
        {"from_row": 6, "from_col": 4, "to_row": 4, "to_col": 4},
    ],
)
def test_incomplete_move(fields: dict) -> None:
    """Missing data is accepted by the model, but flagged as incomplete."""
    request = MoveRequest(board=STARTING_GRID, **fields)
    assert not request.is_complete()


def test_chat_message_cannot_be_empty() -> None:
    with pytest.raises(ValidationError):
        ChatRequest(message="")


# -- Serialization --
def test_queue_response() -> None:
    match_id = uuid4()
    payload = QueueResponse(state=QueueState.PAIRED, match_id=match_id).model_dump(
        mode="json", by_alias=True
    )
    assert payload == {"state": "PAIRED", "matchId": str(match_id)}


def test_game_over_event() -> None:
    match_id = uuid4()
    payload = GameOverEvent(
        match_id=match_id,
        reason=GameOverReason.RESIGNATION,
        winner_id="bob",
        resigned_by="alice",
        timestamp=1700000000000,
    ).model_dump(mode="json", by_alias=True)
    assert payload["type"] == "GAME_OVER"
    assert payload["reason"] == "RESIGNATION"
    assert payload["winnerId"] == "bob"
    assert payload["resignedBy"] == "alice"
    assert payload["acceptedBy"] is None

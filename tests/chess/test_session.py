"""Unit tests for src/chess/session.py"""

from datetime import timedelta
from uuid import uuid4

import pytest

from src.chess.board import Board
from src.chess.session import SessionState
from src.chess.variants import STANDARD, GameVariant
from src.core.exceptions import (
    GameAlreadyFinishedError,
    NotParticipantError,
    OutOfTurnError,
)
from src.core.models import MatchRecord
from src.core.shared_types import Color, GameOverReason, MatchStatus, SessionStatus
from tests.fakes import T0

TIMED = GameVariant("TEST_100", base_seconds=100)
AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


def make_record(**overrides) -> MatchRecord:
    fields = dict(
        id=uuid4(),
        player1_id="alice",
        player2_id="bob",
        variant=STANDARD,
        status=MatchStatus.IN_PROGRESS,
    )
    fields.update(overrides)
    return MatchRecord(**fields)


def test_fresh_session() -> None:
    """A new match: canonical position, white (player1) to move."""
    session = SessionState.from_record(make_record(), T0)
    assert session.status == SessionStatus.IN_PROGRESS
    assert session.white_to_move
    assert session.player_to_move == "alice"
    assert session.board == Board.starting_position()
    assert session.last_move_at == T0


@pytest.mark.parametrize("ply, white_to_move", [(0, True), (1, False), (2, True), (7, False)])
def test_late_join_uses_ply_parity(ply: int, white_to_move: bool) -> None:
    session = SessionState.from_record(
        make_record(current_ply=ply, fen_snapshot=AFTER_E4), T0
    )
    assert session.white_to_move == white_to_move
    assert session.ply == ply
    assert session.board.grid[4][4] == "P"


def test_decided_record_yields_finished_session() -> None:
    session = SessionState.from_record(make_record(status=MatchStatus.PLAYER2_WON), T0)
    assert session.status == SessionStatus.GAME_OVER
    assert session.winner_id == "bob"
    with pytest.raises(GameAlreadyFinishedError):
        session.assert_can_move("alice")


def test_colors_and_opponents() -> None:
    session = SessionState.from_record(make_record(), T0)
    assert session.player_color("alice") == Color.WHITE
    assert session.player_color("bob") == Color.BLACK
    assert session.opponent_of("alice") == "bob"
    assert session.opponent_of("bob") == "alice"
    with pytest.raises(NotParticipantError):
        session.opponent_of("mallory")


def test_turns_alternate() -> None:
    session = SessionState.from_record(make_record(), T0)
    with pytest.raises(OutOfTurnError):
        session.assert_can_move("bob")

    session.assert_can_move("alice")
    session.apply_move(Board.from_fen(AFTER_E4), "e2e4", T0)
    assert not session.white_to_move
    assert session.ply == 1
    assert session.last_move_uci == "e2e4"

    with pytest.raises(OutOfTurnError):
        session.assert_can_move("alice")
    session.assert_can_move("bob")


def test_untimed_session_never_touches_clocks() -> None:
    session = SessionState.from_record(make_record(), T0)
    assert session.charge_clock(T0 + timedelta(hours=5)) is None
    assert session.white_seconds is None


def test_clock_runs_out() -> None:
    session = SessionState.from_record(
        make_record(variant=TIMED, white_seconds=10, black_seconds=100), T0
    )
    result = session.charge_clock(T0 + timedelta(seconds=12))
    assert result is not None and result.expired
    assert session.white_seconds == 0
    assert session.status == SessionStatus.GAME_OVER
    assert session.reason == GameOverReason.TIME_OUT
    assert session.winner_id == "bob"
    assert session.match_status() == MatchStatus.PLAYER2_WON


def test_clock_without_seeded_time_starts_from_base() -> None:
    session = SessionState.from_record(make_record(variant=TIMED), T0)
    session.charge_clock(T0 + timedelta(seconds=5))
    assert session.white_seconds == 95


def test_terminal_state_is_final() -> None:
    session = SessionState.from_record(make_record(), T0)
    session.finish(GameOverReason.RESIGNATION, "bob", T0)
    assert session.match_status() == MatchStatus.PLAYER2_WON

    with pytest.raises(GameAlreadyFinishedError):
        session.finish(GameOverReason.DRAW, None, T0 + timedelta(seconds=1))
    with pytest.raises(GameAlreadyFinishedError):
        session.apply_move(Board.starting_position(), "e2e4", T0)

    # terminal fields untouched by the failed attempts
    assert session.reason == GameOverReason.RESIGNATION
    assert session.winner_id == "bob"
    assert session.finished_at == T0


def test_draw_has_no_winner() -> None:
    session = SessionState.from_record(make_record(), T0)
    session.finish(GameOverReason.DRAW, None, T0)
    assert session.match_status() == MatchStatus.DRAW
    assert not session.is_my_turn("alice")

"""
The Session is the live, authoritative state of one match while it is being played.
It is the entrypoint into the domain layer for the service layer: turn arbitration, clock deduction and
the status transitions all happen here. The service decides when (and under which lock) to call it.

Status only ever moves forward: WAITING -> IN_PROGRESS -> GAME_OVER.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Self
from uuid import UUID

from src.chess import clock
from src.chess.board import Board
from src.chess.clock import ClockResult
from src.chess.variants import GameVariant
from src.core.exceptions import (
    GameAlreadyFinishedError,
    GameNotActiveError,
    NotParticipantError,
    OutOfTurnError,
)
from src.core.models import MatchRecord, PlayerId
from src.core.shared_types import Color, GameOverReason, MatchStatus, SessionStatus

_STATUS_ORDER = {
    SessionStatus.WAITING: 0,
    SessionStatus.IN_PROGRESS: 1,
    SessionStatus.GAME_OVER: 2,
}


@dataclass
class SessionState:
    match_id: UUID
    player1_id: PlayerId
    player2_id: PlayerId
    variant: GameVariant
    board: Board
    white_to_move: bool
    status: SessionStatus
    last_move_at: datetime
    ply: int = 0
    white_seconds: Optional[int] = None
    black_seconds: Optional[int] = None
    reason: Optional[GameOverReason] = None
    winner_id: Optional[PlayerId] = None
    finished_at: Optional[datetime] = None
    last_move_uci: Optional[str] = field(default=None)

    @classmethod
    def from_record(cls, record: MatchRecord, now: datetime) -> Self:
        """
        Build the live session for a durable match.
        ----
        A fresh match starts from the canonical position with white to move.
        A late join picks up the stored position, and ply parity tells whose turn it is (even ply: white/player1).
        A record that is already decided yields a session that is already over.
        """
        assert record.id is not None, "Only persisted matches can get a session."
        board = (
            Board.from_fen(record.fen_snapshot)
            if record.fen_snapshot
            else Board.starting_position()
        )
        session = cls(
            match_id=record.id,
            player1_id=record.player1_id,
            player2_id=record.player2_id,
            variant=record.variant,
            board=board,
            white_to_move=record.current_ply % 2 == 0,
            status=SessionStatus.IN_PROGRESS,
            last_move_at=now,
            ply=record.current_ply,
            white_seconds=record.white_seconds,
            black_seconds=record.black_seconds,
            last_move_uci=record.last_move_uci,
        )
        if record.status != MatchStatus.IN_PROGRESS:
            session.status = SessionStatus.GAME_OVER
            session.winner_id = record.winner_id
            session.finished_at = record.finished_at
        return session

    # --- QUERIES ---
    @property
    def is_in_progress(self) -> bool:
        return self.status == SessionStatus.IN_PROGRESS

    @property
    def player_to_move(self) -> PlayerId:
        return self.player1_id if self.white_to_move else self.player2_id

    def is_participant(self, player_id: PlayerId) -> bool:
        return player_id in (self.player1_id, self.player2_id)

    def player_color(self, player_id: PlayerId) -> Color:
        if player_id == self.player1_id:
            return Color.WHITE
        if player_id == self.player2_id:
            return Color.BLACK
        raise NotParticipantError(f"Player {player_id!r} is not part of this game.")

    def opponent_of(self, player_id: PlayerId) -> PlayerId:
        self._assert_participant(player_id)
        return self.player2_id if player_id == self.player1_id else self.player1_id

    def is_my_turn(self, player_id: PlayerId) -> bool:
        return self.is_in_progress and player_id == self.player_to_move

    def fen(self) -> str:
        return self.board.to_fen(self.white_to_move)

    # --- TRANSITIONS ---
    def assert_in_progress(self) -> None:
        if self.status == SessionStatus.GAME_OVER:
            raise GameAlreadyFinishedError(
                f"Game {self.match_id} already finished ({self.reason or 'decided'})."
            )
        if self.status != SessionStatus.IN_PROGRESS:
            raise GameNotActiveError(f"Game is not in progress. status: {self.status}")

    def assert_can_move(self, player_id: PlayerId) -> None:
        """Game must be running and it must be the caller's turn."""
        self.assert_in_progress()
        self._assert_your_turn(player_id)

    def charge_clock(self, now: datetime) -> Optional[ClockResult]:
        """
        Deduct thinking time from the side to move (timed variants only).
        If the clock runs out, the game ends right here: the opponent wins on time.
        """
        if not self.variant.is_timed:
            return None

        remaining = self.white_seconds if self.white_to_move else self.black_seconds
        # Records created before clocks were seeded: start from the variant's base time
        if remaining is None:
            remaining = self.variant.base_seconds or 0

        result = clock.deduct(self.variant, remaining, self.last_move_at, now)
        if self.white_to_move:
            self.white_seconds = result.remaining_seconds
        else:
            self.black_seconds = result.remaining_seconds

        if result.expired:
            self.finish(
                GameOverReason.TIME_OUT, self.opponent_of(self.player_to_move), now
            )
        return result

    def apply_move(self, board: Board, move_uci: str, now: datetime) -> None:
        """Accept the client's board as the new position and hand the turn over."""
        self.assert_in_progress()
        self.board = board
        self.white_to_move = not self.white_to_move
        self.last_move_at = now
        self.last_move_uci = move_uci
        self.ply += 1

    def finish(
        self, reason: GameOverReason, winner_id: Optional[PlayerId], now: datetime
    ) -> None:
        """Enter the terminal state. Can happen once only."""
        self.assert_in_progress()
        self._change_status(SessionStatus.GAME_OVER)
        self.reason = reason
        self.winner_id = winner_id
        self.finished_at = now

    def match_status(self) -> MatchStatus:
        """Translate the outcome into the status used on the durable record."""
        if self.is_in_progress:
            return MatchStatus.IN_PROGRESS
        if self.winner_id == self.player1_id:
            return MatchStatus.PLAYER1_WON
        if self.winner_id == self.player2_id:
            return MatchStatus.PLAYER2_WON
        return MatchStatus.DRAW

    # -- PRIVATE HELPERS ---
    def _assert_participant(self, player_id: PlayerId) -> None:
        if not self.is_participant(player_id):
            raise NotParticipantError(
                f"Player {player_id!r} is not part of this game."
            )

    def _assert_your_turn(self, player_id: PlayerId) -> None:
        """You must wait for your turn before making a move."""
        if player_id != self.player_to_move:
            raise OutOfTurnError(
                f"It is not your turn. Waiting for player {self.player_to_move} to make a move first."
            )

    def _change_status(self, new_status: SessionStatus) -> None:
        if _STATUS_ORDER[new_status] < _STATUS_ORDER[self.status]:
            raise GameNotActiveError(
                f"Cannot move status back from {self.status} to {new_status}."
            )
        self.status = new_status

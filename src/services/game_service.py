"""
Orchestration of a live game: from the transport layer to the session state machine, persistence and notifications.

Concurrency rules every public method follows:
* all reads-then-writes of a session happen inside `self.sessions.locked(match_id)`;
* the durable record is written inside that same block, so records are written in the order the transitions happened;
* notifications are only dispatched after the block has been left;
* a failing durable write is logged, never raised: the in-memory transition stays authoritative and the record
  catches up with the next successful write.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from pydantic import BaseModel

from src.api.models import (
    ChatMessageEvent,
    ChatRequest,
    DrawOfferEvent,
    DrawRejectedEvent,
    GameOverEvent,
    MatchDetails,
    MoveRequest,
    MoveResponse,
    SessionSnapshot,
)
from src.chess.board import Board, is_valid_fen
from src.chess.clock import utc_now
from src.chess.notation import build_notation, build_uci
from src.chess.session import SessionState
from src.chess.square import Square
from src.core.exceptions import (
    GameAlreadyFinishedError,
    GameNotActiveError,
    InvalidMovePayloadError,
    NotFoundError,
    NotParticipantError,
    RepositoryError,
    TimeExpiredError,
)
from src.core.models import MatchRecord, PlayerId
from src.core.shared_types import Color, GameOverReason, MatchStatus
from src.db.repository import MatchRepository
from src.services.identity import require_player
from src.services.notifications import (
    DRAW_OFFERS_QUEUE,
    NotificationPort,
    game_topic,
    to_payload,
)
from src.services.session_store import SessionStore

logger = logging.getLogger(__name__)


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class GameSessionService:
    """Orchestration of layers for a running match."""

    def __init__(
        self,
        repository: MatchRepository,
        sessions: SessionStore,
        notifier: NotificationPort,
        now: Callable[[], datetime] = utc_now,
        finished_retention: timedelta = timedelta(minutes=5),
    ) -> None:
        self.repo = repository
        self.sessions = sessions
        self.notifier = notifier
        self.now = now
        self.finished_retention = finished_retention

    # -- Exposed operations ---
    def join_session(self, match_id: UUID, player_id: Optional[PlayerId]) -> SessionSnapshot:
        """A participant (re)connects to the match. Creates the live session on first access."""
        player_id = require_player(player_id)
        session = self._ensure_session(match_id, player_id)
        logger.info("%s joined match %s", player_id, match_id)
        return self._create_snapshot(session, player_id)

    def get_session_snapshot(
        self, match_id: UUID, player_id: Optional[PlayerId]
    ) -> SessionSnapshot:
        """
        Current board, turn and clocks as seen by one participant.
        ----
        Used in "polling" loop by frontend to check when it is the player's turn for instance.
        """
        player_id = require_player(player_id)
        session = self._ensure_session(match_id, player_id)
        return self._create_snapshot(session, player_id)

    def get_match_details(self, match_id: UUID, player_id: Optional[PlayerId]) -> MatchDetails:
        """Durable view of the match. Does not create a live session; ply parity decides the turn if there is none."""
        player_id = require_player(player_id)
        record = self._fetch_match(match_id)
        self._assert_participant(record, player_id)

        is_player1 = player_id == record.player1_id
        session = self.sessions.get(match_id)
        if session is not None:
            my_turn = session.is_my_turn(player_id)
            white_seconds, black_seconds = session.white_seconds, session.black_seconds
        else:
            white_turn = record.current_ply % 2 == 0
            my_turn = record.status == MatchStatus.IN_PROGRESS and white_turn == is_player1
            white_seconds, black_seconds = record.white_seconds, record.black_seconds

        return MatchDetails(
            match_id=match_id,
            player_color=Color.WHITE if is_player1 else Color.BLACK,
            my_turn=my_turn,
            status=record.status,
            variant=record.variant.name,
            current_ply=record.current_ply,
            white_seconds=white_seconds,
            black_seconds=black_seconds,
            created_at=record.created_at,
        )

    def submit_move(
        self, match_id: UUID, player_id: Optional[PlayerId], move: MoveRequest
    ) -> MoveResponse:
        """
        Make a move attempt.
        -----
        1. game must be in progress and it must be your turn
        2. charge your clock BEFORE the move (timed variants): out of time? the move is dropped and the game is over
        3. take over the submitted board, hand the turn to the opponent
        4. update the durable record (ply, FEN, last move)

        The board is trusted as submitted. No chess rules are checked here.
        """
        player_id = require_player(player_id)
        self._validate_move_payload(move)
        assert move.board is not None
        from_square = Square(move.from_row, move.from_col)
        to_square = Square(move.to_row, move.to_col)
        now = self.now()

        with self.sessions.locked(match_id):
            session = self._active_session(match_id)
            session.assert_can_move(player_id)
            if move.player_color is not None and move.player_color != session.player_color(player_id):
                raise InvalidMovePayloadError(
                    f"Player {player_id!r} plays {session.player_color(player_id)}, not {move.player_color}."
                )

            clock_result = session.charge_clock(now)
            if clock_result is not None and clock_result.expired:
                self._persist(session)
                timed_out = True
            else:
                timed_out = False
                move_uci = build_uci(from_square, to_square)
                session.apply_move(Board.from_grid(move.board), move_uci, now)
                self._persist(session, fen_after=move.fen_after)
                response = MoveResponse(
                    match_id=match_id,
                    player_id=player_id,
                    player_color=session.player_color(player_id),
                    board=session.board.copy_grid(),
                    white_to_move=session.white_to_move,
                    move_notation=build_notation(
                        move.piece or "",
                        to_square,
                        captured_piece=move.captured_piece,
                        castled=move.castled,
                    ),
                    fen=session.fen(),
                    white_seconds=session.white_seconds,
                    black_seconds=session.black_seconds,
                    timestamp=now,
                )

        if timed_out:
            logger.info(
                "match %s: %s ran out of time, %s wins",
                match_id,
                player_id,
                session.winner_id,
            )
            self._broadcast_game_over(session, GameOverReason.TIME_OUT)
            raise TimeExpiredError(
                f"Time over for {player_id!r}. Move was not played.",
                winner_id=session.winner_id,
            )

        logger.debug("match %s: %s played %s", match_id, player_id, response.move_notation)
        return response

    def resign(self, match_id: UUID, player_id: Optional[PlayerId]) -> None:
        """Give up. The opponent wins."""
        player_id = require_player(player_id)
        now = self.now()
        with self.sessions.locked(match_id):
            session = self._active_session(match_id)
            session.assert_in_progress()
            winner = session.opponent_of(player_id)
            session.finish(GameOverReason.RESIGNATION, winner, now)
            self._persist(session)

        logger.info("match %s: %s resigned", match_id, player_id)
        self._broadcast_game_over(
            session, GameOverReason.RESIGNATION, resigned_by=player_id
        )

    def offer_draw(self, match_id: UUID, player_id: Optional[PlayerId]) -> None:
        """Let the opponent know a draw is on the table. Nothing is recorded; offering again just notifies again."""
        player_id = require_player(player_id)
        with self.sessions.locked(match_id):
            session = self._active_session(match_id)
            session.assert_in_progress()
            opponent = session.opponent_of(player_id)

        event = DrawOfferEvent(
            match_id=match_id, sender=player_id, timestamp=epoch_millis(self.now())
        )
        self._unicast(opponent, event)

    def accept_draw(self, match_id: UUID, player_id: Optional[PlayerId]) -> None:
        """End the game as a draw."""
        player_id = require_player(player_id)
        now = self.now()
        with self.sessions.locked(match_id):
            session = self._active_session(match_id)
            session.assert_in_progress()
            session.opponent_of(player_id)
            session.finish(GameOverReason.DRAW, None, now)
            self._persist(session)

        logger.info("match %s: draw accepted by %s", match_id, player_id)
        self._broadcast_game_over(session, GameOverReason.DRAW, accepted_by=player_id)

    def reject_draw(self, match_id: UUID, player_id: Optional[PlayerId]) -> None:
        """Tell the opponent no. Silently ignored when there is no running game to reject a draw in."""
        player_id = require_player(player_id)
        with self.sessions.locked(match_id):
            session = self.sessions.get(match_id)
            if session is None or not session.is_in_progress:
                return
            if not session.is_participant(player_id):
                return
            opponent = session.opponent_of(player_id)

        event = DrawRejectedEvent(
            match_id=match_id, by=player_id, timestamp=epoch_millis(self.now())
        )
        self._unicast(opponent, event)

    def send_chat(
        self, match_id: UUID, player_id: Optional[PlayerId], request: ChatRequest
    ) -> ChatMessageEvent:
        """Relay a chat line to everyone following the match. Also allowed after the game ended."""
        player_id = require_player(player_id)
        session = self.sessions.get(match_id)
        if session is None:
            record = self._fetch_match(match_id)
            self._assert_participant(record, player_id)
        elif not session.is_participant(player_id):
            raise NotParticipantError(f"Player {player_id!r} is not part of this game.")

        event = ChatMessageEvent(
            match_id=match_id,
            sender=player_id,
            message=request.message,
            timestamp=epoch_millis(self.now()),
        )
        self._broadcast(match_id, event)
        return event

    def release_finished_sessions(self) -> list[UUID]:
        """
        Drop live sessions of games that ended more than `finished_retention` ago.
        ----
        Meant for a periodic job. A session is only dropped once its outcome is on the durable record,
        so a later join rebuilds it as finished instead of bringing the game back.
        """
        cutoff = self.now() - self.finished_retention
        released: list[UUID] = []
        for match_id in self.sessions.finished_match_ids(cutoff):
            with self.sessions.locked(match_id):
                session = self.sessions.get(match_id)
                if session is None or session.is_in_progress:
                    continue
                if not self._persist(session):
                    continue
                self.sessions.discard(match_id)
            released.append(match_id)
        if released:
            logger.info("released %d finished sessions", len(released))
        return released

    # -- Internal helpers --
    def _ensure_session(self, match_id: UUID, player_id: PlayerId) -> SessionState:
        """Validate the caller against the durable record, then get (or lazily create) the live session."""
        record = self._fetch_match(match_id)
        self._assert_participant(record, player_id)
        with self.sessions.locked(match_id):
            session = self.sessions.get(match_id)
            if session is None and record.status != MatchStatus.IN_PROGRESS:
                # decided matches are rebuilt on demand, not kept live
                return SessionState.from_record(record, self.now())
            return self.sessions.get_or_create(
                match_id, lambda: SessionState.from_record(record, self.now())
            )

    def _active_session(self, match_id: UUID) -> SessionState:
        """Session must exist (somebody joined). Caller holds the match lock."""
        session = self.sessions.get(match_id)
        if session is not None:
            return session
        record = self.repo.get_match(match_id)
        if record is not None and record.status != MatchStatus.IN_PROGRESS:
            raise GameAlreadyFinishedError(f"Game {match_id} already finished ({record.status}).")
        raise GameNotActiveError(f"Game {match_id} is not active. Join it first.")

    def _persist(self, session: SessionState, fen_after: Optional[str] = None) -> bool:
        """
        Copy the accepted transition onto the durable record. False if the record could not be written.
        ----
        A record that is already decided is left alone: the outcome is written exactly once.
        """
        try:
            record = self._fetch_match(session.match_id)
            if record.status != MatchStatus.IN_PROGRESS:
                logger.warning(
                    "match %s already recorded as %s, not overwriting",
                    session.match_id,
                    record.status,
                )
                return True

            if fen_after is not None and not is_valid_fen(fen_after):
                logger.warning("match %s: ignoring malformed FEN %r", session.match_id, fen_after)
                fen_after = None

            record.status = session.match_status()
            record.current_ply = session.ply
            record.white_seconds = session.white_seconds
            record.black_seconds = session.black_seconds
            record.last_move_uci = session.last_move_uci
            record.fen_snapshot = fen_after or session.fen()
            record.finished_at = session.finished_at
            return self.repo.update_match(record) is not None
        except (RepositoryError, NotFoundError) as e:
            logger.error("match %s: could not write the record: %s", session.match_id, e)
            return False

    def _create_snapshot(self, session: SessionState, player_id: PlayerId) -> SessionSnapshot:
        """Convert the live session into what one participant gets to see."""
        return SessionSnapshot(
            match_id=session.match_id,
            status=session.status,
            player_color=session.player_color(player_id),
            my_turn=session.is_my_turn(player_id),
            white_to_move=session.white_to_move,
            board=session.board.copy_grid(),
            fen=session.fen(),
            variant=session.variant.name,
            white_seconds=session.white_seconds,
            black_seconds=session.black_seconds,
            reason=session.reason,
            winner_id=session.winner_id,
        )

    def _fetch_match(self, match_id: UUID) -> MatchRecord:
        """Attempt to find the match in the repository and raise error if it fails."""
        record = self.repo.get_match(match_id)
        if record is None:
            raise NotFoundError(f"Game with {match_id=} not found.")
        return record

    def _assert_participant(self, record: MatchRecord, player_id: PlayerId) -> None:
        if not record.is_participant(player_id):
            raise NotParticipantError(f"Player {player_id!r} is not part of this game.")

    def _validate_move_payload(self, move: MoveRequest) -> None:
        if not move.is_complete():
            raise InvalidMovePayloadError(
                "Move needs from/to coordinates, the moving piece and the resulting board."
            )

    def _broadcast_game_over(
        self,
        session: SessionState,
        reason: GameOverReason,
        resigned_by: Optional[PlayerId] = None,
        accepted_by: Optional[PlayerId] = None,
    ) -> None:
        event = GameOverEvent(
            match_id=session.match_id,
            reason=reason,
            winner_id=session.winner_id,
            resigned_by=resigned_by,
            accepted_by=accepted_by,
            timestamp=epoch_millis(session.finished_at or self.now()),
        )
        self._broadcast(session.match_id, event)

    def _broadcast(self, match_id: UUID, event: BaseModel) -> None:
        # the transition is already committed, a failing delivery must not turn it into an error
        try:
            self.notifier.broadcast(game_topic(match_id), to_payload(event))
        except Exception as e:
            logger.warning("broadcast for match %s failed: %s", match_id, e)

    def _unicast(self, player_id: PlayerId, event: BaseModel) -> None:
        try:
            self.notifier.unicast(player_id, DRAW_OFFERS_QUEUE, to_payload(event))
        except Exception as e:
            logger.warning("unicast to %s failed: %s", player_id, e)

"""
Matchmaking: per-variant waiting pools.

A player either gets paired with someone already waiting, or receives a ticket and keeps polling.
Each variant's pool has its own lock; pools for different variants never block each other.
No request is ever suspended while waiting for an opponent.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable, Optional
from uuid import UUID

from src.api.models import QueueResponse
from src.chess import clock
from src.chess.board import Board
from src.chess.clock import utc_now
from src.chess.variants import GameVariant
from src.core.exceptions import (
    AlreadyQueuedError,
    NotWaitingError,
    OpponentUnavailableError,
    RepositoryError,
)
from src.core.models import MatchRecord, PlayerId
from src.core.shared_types import MatchStatus, QueueState
from src.db.repository import MatchRepository
from src.services.identity import UserLookup, require_player

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WaitingTicket:
    player_id: PlayerId
    variant: GameVariant
    enqueued_at: datetime


@dataclass(frozen=True)
class _Pairing:
    match_id: UUID
    paired_at: datetime


@dataclass
class _VariantPool:
    """Bookkeeping of one variant. Only touched while holding `lock`."""

    lock: Lock = field(default_factory=Lock)
    tickets: dict[PlayerId, WaitingTicket] = field(default_factory=dict)
    # waiting players whose match record is being created right now
    pending: set[PlayerId] = field(default_factory=set)
    # waiting players that got paired, until they poll (or a sweep gives up on them)
    paired: dict[PlayerId, _Pairing] = field(default_factory=dict)
    # tickets dropped by a sweep, until their owner polls
    timed_out: dict[PlayerId, datetime] = field(default_factory=dict)


class MatchmakingCoordinator:
    """Pairs two distinct waiting players of the same variant into a new match."""

    def __init__(
        self,
        repository: MatchRepository,
        wait_timeout: timedelta,
        user_lookup: Optional[UserLookup] = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repo = repository
        self.wait_timeout = wait_timeout
        self.user_lookup = user_lookup
        self.now = now
        self._pools: dict[GameVariant, _VariantPool] = {}
        self._pools_lock = Lock()

    # -- Exposed operations ---
    def enqueue(self, player_id: Optional[PlayerId], variant: GameVariant) -> QueueResponse:
        """
        Pair with any other waiting player, or start waiting.
        ----
        Any other waiting player may be picked (the first one found). The player that was already
        waiting gets white (player1). Checking the opponent against the user directory and creating the match record
        happen outside the pool lock; meanwhile both players are marked as pending, so neither can queue again
        nor be picked by someone else.
        """
        player_id = require_player(player_id)
        pool = self._pool(variant)
        now = self.now()

        while True:
            with pool.lock:
                if player_id in pool.tickets or player_id in pool.pending:
                    raise AlreadyQueuedError(
                        f"Player {player_id!r} is already waiting for a {variant.name} game."
                    )

                # A match formed while this player was away: hand it out instead of queueing again
                formed = pool.paired.pop(player_id, None)
                if formed is not None:
                    return QueueResponse(state=QueueState.PAIRED, match_id=formed.match_id)
                pool.timed_out.pop(player_id, None)

                opponent = self._take_opponent(pool, player_id)
                if opponent is None:
                    pool.tickets[player_id] = WaitingTicket(player_id, variant, now)
                    logger.info("%s waiting for a %s game", player_id, variant.name)
                    return QueueResponse(state=QueueState.WAITING)
                pair = {opponent.player_id, player_id}
                pool.pending.update(pair)

            if self._is_known(opponent.player_id):
                break
            # the opponent's ticket is dropped, look for another one
            with pool.lock:
                pool.pending.difference_update(pair)
            logger.warning("dropping ticket of unknown player %s", opponent.player_id)

        try:
            record = self.repo.create_match(
                self._new_match(opponent.player_id, player_id, variant, now)
            )
        except RepositoryError as exc:
            with pool.lock:
                pool.pending.difference_update(pair)
                pool.tickets[opponent.player_id] = opponent
            raise OpponentUnavailableError(
                f"Could not start a game against {opponent.player_id!r}."
            ) from exc

        assert record.id is not None
        with pool.lock:
            pool.pending.difference_update(pair)
            pool.paired[opponent.player_id] = _Pairing(record.id, now)

        logger.info(
            "paired %s (white) and %s (black) for %s: match %s",
            opponent.player_id,
            player_id,
            variant.name,
            record.id,
        )
        return QueueResponse(state=QueueState.PAIRED, match_id=record.id)

    def poll(self, player_id: Optional[PlayerId], variant: GameVariant) -> QueueResponse:
        """Check on a waiting ticket. Wait-timeout is evaluated here (lazily)."""
        player_id = require_player(player_id)
        pool = self._pool(variant)
        now = self.now()

        with pool.lock:
            formed = pool.paired.pop(player_id, None)
            if formed is not None:
                pool.tickets.pop(player_id, None)
                return QueueResponse(state=QueueState.PAIRED, match_id=formed.match_id)

            if player_id in pool.pending:
                return QueueResponse(state=QueueState.WAITING)

            if pool.timed_out.pop(player_id, None) is not None:
                return QueueResponse(state=QueueState.TIMED_OUT)

            ticket = pool.tickets.get(player_id)
            if ticket is None:
                raise NotWaitingError(
                    f"Player {player_id!r} is not waiting for a {variant.name} game."
                )

            if self._is_expired(ticket, now):
                del pool.tickets[player_id]
                logger.info("%s stopped waiting for %s: timed out", player_id, variant.name)
                return QueueResponse(state=QueueState.TIMED_OUT)

            return QueueResponse(state=QueueState.WAITING)

    def cancel(self, player_id: Optional[PlayerId], variant: GameVariant) -> bool:
        """Leave the pool. False if there was no ticket (never queued, or already paired)."""
        player_id = require_player(player_id)
        pool = self._pool(variant)
        with pool.lock:
            removed = pool.tickets.pop(player_id, None) is not None
        if removed:
            logger.info("%s left the %s queue", player_id, variant.name)
        return removed

    def queue_counts(self) -> dict[str, int]:
        """Number of waiting players per variant."""
        with self._pools_lock:
            pools = list(self._pools.items())
        counts: dict[str, int] = {}
        for variant, pool in pools:
            with pool.lock:
                counts[variant.name] = len(pool.tickets)
        return counts

    def sweep_expired(self) -> list[WaitingTicket]:
        """
        Drop every ticket past the wait timeout.
        ----
        Optional hygiene for a periodic job; polling alone already enforces the timeout.
        Owners of swept tickets get TIMED_OUT on their next poll. Pairings nobody picked up within the wait timeout
        are forgotten as well (the match itself exists on its record regardless).
        """
        now = self.now()
        with self._pools_lock:
            pools = list(self._pools.values())
        removed: list[WaitingTicket] = []
        for pool in pools:
            with pool.lock:
                expired = [t for t in pool.tickets.values() if self._is_expired(t, now)]
                for ticket in expired:
                    del pool.tickets[ticket.player_id]
                    pool.timed_out[ticket.player_id] = now
                self._forget_stale(pool, now)
            removed.extend(expired)
        if removed:
            logger.info("swept %d expired waiting tickets", len(removed))
        return removed

    # -- Internal helpers --
    def _pool(self, variant: GameVariant) -> _VariantPool:
        with self._pools_lock:
            pool = self._pools.get(variant)
            if pool is None:
                pool = self._pools[variant] = _VariantPool()
            return pool

    def _take_opponent(
        self, pool: _VariantPool, player_id: PlayerId
    ) -> Optional[WaitingTicket]:
        """Remove and return some other waiting ticket."""
        for candidate_id in pool.tickets:
            if candidate_id != player_id:
                return pool.tickets.pop(candidate_id)
        return None

    def _is_known(self, player_id: PlayerId) -> bool:
        """Ask the user directory (if any) whether the player still exists. Never called while holding a pool lock."""
        return self.user_lookup is None or self.user_lookup.by_username(player_id) is not None

    def _is_expired(self, ticket: WaitingTicket, now: datetime) -> bool:
        return now - ticket.enqueued_at > self.wait_timeout

    def _forget_stale(self, pool: _VariantPool, now: datetime) -> None:
        """Pairings and time-out notices nobody came back for within the wait timeout. Caller holds `pool.lock`."""
        for player_id, formed in list(pool.paired.items()):
            if now - formed.paired_at > self.wait_timeout:
                del pool.paired[player_id]
        for player_id, swept_at in list(pool.timed_out.items()):
            if now - swept_at > self.wait_timeout:
                del pool.timed_out[player_id]

    def _new_match(
        self,
        white: PlayerId,
        black: PlayerId,
        variant: GameVariant,
        now: datetime,
    ) -> MatchRecord:
        white_seconds, black_seconds = clock.initial_clocks(variant)
        return MatchRecord(
            player1_id=white,
            player2_id=black,
            variant=variant,
            status=MatchStatus.IN_PROGRESS,
            current_ply=0,
            white_seconds=white_seconds,
            black_seconds=black_seconds,
            fen_snapshot=Board.starting_position().to_fen(white_to_move=True),
            created_at=now,
            started_at=now,
        )

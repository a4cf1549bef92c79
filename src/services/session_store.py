"""
Concurrent map from match ID to its live SessionState.

Every mutation of a session happens while holding that match's lock (`with store.locked(match_id):`).
Calls for different matches never wait on each other; the store-wide lock only guards the two dictionaries.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from threading import Lock
from typing import Callable, Generator
from uuid import UUID

from src.chess.session import SessionState

logger = logging.getLogger(__name__)


class SessionStore:
    """Created once per process and handed to the services that need it."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._sessions: dict[UUID, SessionState] = {}
        self._locks: dict[UUID, Lock] = {}

    @contextmanager
    def locked(self, match_id: UUID) -> Generator[None, None, None]:
        """Serialize everything that reads-then-writes the session of one match."""
        with self._lock_for(match_id):
            yield

    def get(self, match_id: UUID) -> SessionState | None:
        with self._guard:
            return self._sessions.get(match_id)

    def get_or_create(
        self, match_id: UUID, factory: Callable[[], SessionState]
    ) -> SessionState:
        """Return the existing session or install the one built by `factory`. Caller holds `locked(match_id)`."""
        with self._guard:
            session = self._sessions.get(match_id)
            if session is not None:
                return session
        session = factory()
        with self._guard:
            self._sessions[match_id] = session
        logger.info("session created for match %s (status %s)", match_id, session.status)
        return session

    def discard(self, match_id: UUID) -> SessionState | None:
        """
        Forget a session together with its lock. Caller holds `locked(match_id)`.
        ----
        Only meant for finished matches: a caller still waiting on the old lock finds no session afterwards,
        and anything built again for a decided match is read-only.
        """
        with self._guard:
            self._locks.pop(match_id, None)
            return self._sessions.pop(match_id, None)

    def finished_match_ids(self, finished_before: datetime) -> list[UUID]:
        """Matches whose session is over since `finished_before` (or earlier)."""
        with self._guard:
            return [
                match_id
                for match_id, session in self._sessions.items()
                if not session.is_in_progress
                and (session.finished_at is None or session.finished_at <= finished_before)
            ]

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def _lock_for(self, match_id: UUID) -> Lock:
        with self._guard:
            lock = self._locks.get(match_id)
            if lock is None:
                lock = self._locks[match_id] = Lock()
            return lock

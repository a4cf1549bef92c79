"""
Composition root.

Every store and service is built exactly once here, at process start, and handed to the transport layer.
Nothing below src/services keeps module level state.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import Engine

from src.core.config import Settings, get_settings
from src.core.logging_config import configure_logging
from src.db.database import create_db_engine, create_session_factory
from src.db.sql_repository import SQLMatchRepository
from src.services.game_service import GameSessionService
from src.services.identity import UserLookup
from src.services.matchmaking_service import MatchmakingCoordinator
from src.services.notifications import InMemoryNotificationHub, NotificationPort
from src.services.session_store import SessionStore


@dataclass
class Services:
    settings: Settings
    engine: Engine
    repository: SQLMatchRepository
    sessions: SessionStore
    notifier: NotificationPort
    matchmaking: MatchmakingCoordinator
    games: GameSessionService

    def sweep(self) -> None:
        """Periodic cleanup: expired waiting tickets and finished sessions."""
        self.matchmaking.sweep_expired()
        self.games.release_finished_sessions()

    def close(self) -> None:
        self.engine.dispose()


def build_services(
    settings: Optional[Settings] = None,
    notifier: Optional[NotificationPort] = None,
    user_lookup: Optional[UserLookup] = None,
) -> Services:
    """Wire persistence, stores and services together."""
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    engine = create_db_engine(settings)
    repository = SQLMatchRepository(create_session_factory(engine))
    sessions = SessionStore()
    notifier = notifier or InMemoryNotificationHub()

    matchmaking = MatchmakingCoordinator(
        repository,
        wait_timeout=timedelta(seconds=settings.MATCHMAKING_WAIT_TIMEOUT_SECONDS),
        user_lookup=user_lookup,
    )
    games = GameSessionService(
        repository,
        sessions,
        notifier,
        finished_retention=timedelta(seconds=settings.FINISHED_SESSION_RETENTION_SECONDS),
    )
    return Services(
        settings=settings,
        engine=engine,
        repository=repository,
        sessions=sessions,
        notifier=notifier,
        matchmaking=matchmaking,
        games=games,
    )

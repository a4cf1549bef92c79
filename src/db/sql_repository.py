"""Implementation of (Match)Repository using SQLAlchemy"""

from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from src.chess.variants import variant_by_name
from src.core.exceptions import RepositoryError
from src.core.models import MatchRecord
from src.db.schema import DBMatch


class SQLMatchRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy.

    Every call opens its own ORM session: request handlers run concurrently and a Session must not be shared between threads.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def get_match(self, match_id: UUID) -> MatchRecord | None:
        """Get match by ID, if record exists."""
        with self.session_factory() as db:
            match_db = self._fetch_match(db, match_id)
            if match_db:
                return self._to_model(match_db)
            return None

    def create_match(self, match: MatchRecord) -> MatchRecord:
        """Store new match and return the stored data (with its newly assigned ID)."""
        match_db = DBMatch(
            id=uuid4(),
            player1_id=match.player1_id,
            player2_id=match.player2_id,
            variant=match.variant.name,
            status=match.status,
            current_ply=match.current_ply,
            white_seconds=match.white_seconds,
            black_seconds=match.black_seconds,
            fen_snapshot=match.fen_snapshot,
            last_move_uci=match.last_move_uci,
            started_at=match.started_at,
            finished_at=match.finished_at,
        )
        if match.created_at is not None:
            match_db.created_at = match.created_at
        with self.session_factory() as db:
            try:
                db.add(match_db)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise RepositoryError(f"Could not store new match: {exc}") from exc
            db.refresh(match_db)
            return self._to_model(match_db)

    def update_match(self, match: MatchRecord) -> MatchRecord | None:
        """Overwrite the existing record with the same ID."""
        if match.id is None:
            return None
        with self.session_factory() as db:
            match_db = self._fetch_match(db, match.id)
            if not match_db:
                return None
            match_db.status = match.status
            match_db.current_ply = match.current_ply
            match_db.white_seconds = match.white_seconds
            match_db.black_seconds = match.black_seconds
            match_db.fen_snapshot = match.fen_snapshot
            match_db.last_move_uci = match.last_move_uci
            match_db.started_at = match.started_at
            match_db.finished_at = match.finished_at
            try:
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise RepositoryError(
                    f"Could not update match {match.id}: {exc}"
                ) from exc
            db.refresh(match_db)
            return self._to_model(match_db)

    def _fetch_match(self, db: Session, match_id: UUID) -> DBMatch | None:
        query = select(DBMatch).where(DBMatch.id == match_id)
        return db.scalar(query)

    def _to_model(self, match_db: DBMatch) -> MatchRecord:
        """Convert SQLAlchemy model to data transfer model."""
        return MatchRecord(
            id=match_db.id,
            player1_id=match_db.player1_id,
            player2_id=match_db.player2_id,
            variant=variant_by_name(match_db.variant),
            status=match_db.status,
            current_ply=match_db.current_ply,
            white_seconds=match_db.white_seconds,
            black_seconds=match_db.black_seconds,
            fen_snapshot=match_db.fen_snapshot,
            last_move_uci=match_db.last_move_uci,
            created_at=match_db.created_at,
            started_at=match_db.started_at,
            finished_at=match_db.finished_at,
        )

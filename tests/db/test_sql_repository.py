"""Unit tests for src/db/sql_repository.py"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from src.chess.variants import BLITZ, STANDARD
from src.core.shared_types import MatchStatus
from src.db.sql_repository import MatchRecord, SQLMatchRepository

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


def make_record() -> MatchRecord:
    return MatchRecord(
        player1_id="player_white",
        player2_id="player_black",
        variant=BLITZ,
        status=MatchStatus.IN_PROGRESS,
        white_seconds=180,
        black_seconds=180,
        fen_snapshot=STARTING_FEN,
        started_at=datetime(2026, 1, 1, 12, 0, 0),
    )


def test_create_match(session_factory: sessionmaker[Session]) -> None:
    """Conversion from a MatchRecord to DBMatch for a new entry to the database."""
    repo = SQLMatchRepository(session_factory)
    stored = repo.create_match(make_record())

    assert isinstance(stored, MatchRecord)
    assert isinstance(stored.id, UUID)
    assert stored.player1_id == "player_white"
    assert stored.player2_id == "player_black"
    assert stored.variant == BLITZ
    assert stored.status == MatchStatus.IN_PROGRESS
    assert stored.current_ply == 0
    assert stored.white_seconds == 180
    assert stored.fen_snapshot == STARTING_FEN
    assert stored.created_at is not None


def test_get_match_by_id(session_factory: sessionmaker[Session]) -> None:
    """Create a match, then fetch it from db."""
    repo = SQLMatchRepository(session_factory)
    expected = repo.create_match(make_record())
    assert expected.id is not None

    found = repo.get_match(expected.id)
    assert isinstance(found, MatchRecord)
    assert found == expected


def test_get_unknown_match(session_factory: sessionmaker[Session]) -> None:
    """
    Should return None if ID does not match anything in database.

    NOTE with an empty database, any id is a valid test case.
    """
    repo = SQLMatchRepository(session_factory)
    assert repo.get_match(uuid4()) is None

    # Now do it with creating a match, but retrieving from the wrong ID
    repo.create_match(make_record())
    assert repo.get_match(uuid4()) is None


def test_untimed_match(session_factory: sessionmaker[Session]) -> None:
    repo = SQLMatchRepository(session_factory)
    record = make_record()
    record.variant = STANDARD
    record.white_seconds = None
    record.black_seconds = None
    stored = repo.create_match(record)
    assert stored.variant == STANDARD
    assert stored.white_seconds is None


def test_update_match(session_factory: sessionmaker[Session]) -> None:
    """Update an earlier created record."""
    repo = SQLMatchRepository(session_factory)
    stored = repo.create_match(make_record())

    stored.current_ply = 1
    stored.last_move_uci = "e2e4"
    stored.fen_snapshot = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
    stored.white_seconds = 175
    updated = repo.update_match(stored)
    assert updated is not None
    assert updated.current_ply == 1

    assert stored.id is not None
    found = repo.get_match(stored.id)
    assert found is not None
    assert found.current_ply == 1
    assert found.last_move_uci == "e2e4"
    assert found.white_seconds == 175
    assert found.black_seconds == 180
    assert found.status == MatchStatus.IN_PROGRESS


def test_record_outcome(session_factory: sessionmaker[Session]) -> None:
    repo = SQLMatchRepository(session_factory)
    stored = repo.create_match(make_record())
    stored.status = MatchStatus.PLAYER2_WON
    stored.finished_at = datetime(2026, 1, 1, 12, 30, 0)
    repo.update_match(stored)

    assert stored.id is not None
    found = repo.get_match(stored.id)
    assert found is not None
    assert found.status == MatchStatus.PLAYER2_WON
    assert found.winner_id == "player_black"
    assert found.finished_at == datetime(2026, 1, 1, 12, 30, 0)


def test_update_unknown_match(session_factory: sessionmaker[Session]) -> None:
    repo = SQLMatchRepository(session_factory)
    record = make_record()
    assert repo.update_match(record) is None  # never stored, no ID
    record.id = uuid4()
    assert repo.update_match(record) is None

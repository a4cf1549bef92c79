"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.chess.board import MAX_FEN_LENGTH
from src.core.shared_types import MatchStatus


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBMatch(Base):
    __tablename__ = "matches"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    player1_id: Mapped[str] = mapped_column(String(64), index=True)
    player2_id: Mapped[str] = mapped_column(String(64), index=True)
    variant: Mapped[str] = mapped_column(String(32))
    status: Mapped[MatchStatus]
    current_ply: Mapped[int] = mapped_column(default=0)
    white_seconds: Mapped[Optional[int]]
    black_seconds: Mapped[Optional[int]]
    fen_snapshot: Mapped[Optional[str]] = mapped_column(String(MAX_FEN_LENGTH))
    last_move_uci: Mapped[Optional[str]] = mapped_column(String(10))
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    started_at: Mapped[Optional[datetime]]
    finished_at: Mapped[Optional[datetime]]
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)

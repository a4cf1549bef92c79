"""
Boundary layer data model(s).

These objects can be used to communicate with the Services.
Hence, both the API layer (higher) and domain/db layers (lower) will use model(s) defined here to send to/receive from the Services
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.chess.variants import GameVariant
from src.core.shared_types import MatchStatus

# Type alias to make MatchRecord easier to read
PlayerId = str


@dataclass
class MatchRecord:
    """Transport-safe representation of a durable match, as persisted by the repository."""

    player1_id: PlayerId
    player2_id: PlayerId
    variant: GameVariant
    status: MatchStatus
    current_ply: int = 0
    white_seconds: Optional[int] = None
    black_seconds: Optional[int] = None
    fen_snapshot: Optional[str] = None
    last_move_uci: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    id: Optional[UUID] = field(default=None)

    @property
    def winner_id(self) -> Optional[PlayerId]:
        if self.status == MatchStatus.PLAYER1_WON:
            return self.player1_id
        if self.status == MatchStatus.PLAYER2_WON:
            return self.player2_id
        return None

    def is_participant(self, player_id: PlayerId) -> bool:
        return player_id in (self.player1_id, self.player2_id)

"""Protocol repository (implemented with SQLAlchemy in sql_repository.py, tests use a dictionary)"""

from typing import Protocol
from uuid import UUID

from src.core.models import MatchRecord


class MatchRepository(Protocol):
    """Persistence layer orchestration. Implementations must be safe to call from concurrent request handlers."""

    def get_match(self, match_id: UUID) -> MatchRecord | None:
        """Get match by ID, if record exists."""
        ...

    def create_match(self, match: MatchRecord) -> MatchRecord:
        """Store new match and return the stored data (with its newly assigned ID)."""
        ...

    def update_match(self, match: MatchRecord) -> MatchRecord | None:
        """Overwrite the existing record with the same ID."""
        ...

"""Identity ports. Credentials are verified by the transport layer; the core only needs to know who is calling."""

from typing import Optional, Protocol

from src.core.exceptions import NotAuthenticatedError
from src.core.models import PlayerId


class AuthContext(Protocol):
    def current_user(self) -> Optional[PlayerId]:
        """Identity of the caller, None when the request carries no valid credentials."""
        ...


class UserLookup(Protocol):
    def by_username(self, name: str) -> Optional[PlayerId]:
        """Resolve a username to a player, None if no such (active) player exists."""
        ...


def require_player(player_id: Optional[PlayerId]) -> PlayerId:
    """Raise if the caller is anonymous."""
    if not player_id:
        raise NotAuthenticatedError("User not authenticated")
    return player_id


def current_player(auth: AuthContext) -> PlayerId:
    return require_player(auth.current_user())

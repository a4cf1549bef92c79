"""Time controls a match can be played with."""

from dataclasses import dataclass
from typing import Optional

from src.core.exceptions import NotFoundError


@dataclass(frozen=True)
class GameVariant:
    """A named time control. `base_seconds` of None means the variant is untimed."""

    name: str
    base_seconds: Optional[int] = None
    increment_seconds: int = 0

    @property
    def is_timed(self) -> bool:
        return self.base_seconds is not None


STANDARD = GameVariant("STANDARD")
BLITZ = GameVariant("BLITZ", base_seconds=180, increment_seconds=1)
RAPID = GameVariant("RAPID", base_seconds=600)

VARIANTS: dict[str, GameVariant] = {
    variant.name: variant for variant in (STANDARD, BLITZ, RAPID)
}


def variant_by_name(name: str) -> GameVariant:
    """Look up one of the registered variants (case insensitive)."""
    try:
        return VARIANTS[name.upper()]
    except KeyError:
        raise NotFoundError(
            f"Unknown variant {name!r}. Pick one from {','.join(VARIANTS)}"
        ) from None

"""
Time arithmetic for timed variants.

Clocks are only ever evaluated when the side to move submits a move.
A clock that has run out is therefore only observed (and the game ended) on the next move attempt.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from src.chess.variants import GameVariant


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ClockResult:
    remaining_seconds: int
    elapsed_seconds: int
    expired: bool


def elapsed_seconds(last_move_at: datetime, now: datetime) -> int:
    """Whole seconds since the last move. Floored at zero in case the clocks disagree."""
    return max(0, int((now - last_move_at).total_seconds()))


def initial_clocks(variant: GameVariant) -> tuple[int | None, int | None]:
    """(white, black) seconds a new match starts with."""
    return variant.base_seconds, variant.base_seconds


def deduct(
    variant: GameVariant,
    remaining_seconds: int,
    last_move_at: datetime,
    now: datetime,
) -> ClockResult:
    """Charge the mover for the time spent thinking.

    The increment is added after flooring at zero: a clock that hits exactly zero is expired,
    the increment cannot rescue it.
    """
    if not variant.is_timed:
        raise ValueError(f"Variant {variant.name} has no clock.")

    used = elapsed_seconds(last_move_at, now)
    new_time = max(0, remaining_seconds - used)
    if new_time == 0:
        return ClockResult(remaining_seconds=0, elapsed_seconds=used, expired=True)

    return ClockResult(
        remaining_seconds=new_time + variant.increment_seconds,
        elapsed_seconds=used,
        expired=False,
    )

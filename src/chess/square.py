"""
A square on the board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

# Chess board is always 8x8. Just in case we want to try some funky stuff, make it adjustable
BOARD_DIMENSIONS = (8, 8)


@dataclass(frozen=True)
class Square:
    """Grid coordinates as clients send them: row 0 is the 8th rank, column 0 is the a-file."""

    row: int
    col: int

    @property
    def file(self) -> str:
        return chr(self.col + ord("a"))

    @property
    def rank(self) -> int:
        return BOARD_DIMENSIONS[1] - self.row

    def to_algebraic(self) -> str:
        return f"{self.file}{self.rank}"

    def is_within_bounds(self) -> bool:
        return (0 <= self.row < BOARD_DIMENSIONS[1]) and (
            0 <= self.col < BOARD_DIMENSIONS[0]
        )

"""Unit tests for src/chess/square.py"""

import pytest

from src.chess.square import Square


@pytest.mark.parametrize(
    "row, col, algebraic",
    [(0, 0, "a8"), (7, 7, "h1"), (6, 4, "e2"), (4, 4, "e4"), (0, 6, "g8")],
)
def test_algebraic_conversion(row: int, col: int, algebraic: str) -> None:
    """Row 0 is the 8th rank, column 0 the a-file."""
    assert Square(row, col).to_algebraic() == algebraic


def test_file_and_rank() -> None:
    square = Square(row=3, col=2)
    assert square.file == "c"
    assert square.rank == 5


@pytest.mark.parametrize(
    "square, expected",
    [(Square(0, 0), True), (Square(7, 7), True), (Square(8, 0), False), (Square(0, -1), False)],
)
def test_within_bounds(square: Square, expected: bool) -> None:
    assert square.is_within_bounds() == expected

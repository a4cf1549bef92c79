"""The board as clients submit it: an 8x8 grid of FEN piece letters, empty string for an empty square.

No rules are enforced here. The grid is accepted at face value and only converted to/from FEN.
"""

from copy import deepcopy
from dataclasses import dataclass
from typing import Optional, Self

from src.chess.square import BOARD_DIMENSIONS

EMPTY = ""
PIECE_LETTERS = "pnbrqkPNBRQK"

# Size of the column the position is stored in
MAX_FEN_LENGTH = 200

# Only the side-to-move field is tracked. Castling rights/en passant/clocks are not known to the server.
FEN_SUFFIX = "KQkq - 0 1"

STARTING_GRID: list[list[str]] = [
    ["r", "n", "b", "q", "k", "b", "n", "r"],
    ["p"] * 8,
    [EMPTY] * 8,
    [EMPTY] * 8,
    [EMPTY] * 8,
    [EMPTY] * 8,
    ["P"] * 8,
    ["R", "N", "B", "Q", "K", "B", "N", "R"],
]


@dataclass
class Board:
    grid: list[list[str]]

    @classmethod
    def starting_position(cls) -> Self:
        return cls(deepcopy(STARTING_GRID))

    @classmethod
    def from_grid(cls, grid: list[list[Optional[str]]]) -> Self:
        """Copy a client supplied grid. Missing cells (None) count as empty squares."""
        return cls([[cell or EMPTY for cell in row] for row in grid])

    @classmethod
    def from_fen(cls, fen_str: str) -> Self:
        """Construct a board using the placement part of a FEN string (the full string is accepted too).

        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        The first rank listed is the 8th, which is row 0 of the grid.
        """
        placement = fen_str.split(" ")[0]
        grid: list[list[str]] = []
        for fen_one_rank in placement.split("/"):
            row: list[str] = []
            for character in fen_one_rank:
                if character.isdigit():
                    # A number denotes the amount of empty squares after each other
                    row.extend([EMPTY] * int(character))
                else:
                    row.append(character)
            grid.append(row)
        return cls(grid)

    def to_fen(self, white_to_move: bool) -> str:
        """Placement + side to move. Remaining FEN fields are fixed placeholders."""
        placement = "/".join(self._row_to_fen(row) for row in self.grid)
        side = "w" if white_to_move else "b"
        return f"{placement} {side} {FEN_SUFFIX}"

    def _row_to_fen(self, row: list[str]) -> str:
        fen_characters: list[str] = []
        empty_count = 0
        for cell in row:
            if cell:
                if empty_count > 0:
                    fen_characters.append(str(empty_count))
                    empty_count = 0
                fen_characters.append(cell)
            else:
                empty_count += 1

        # if the entire rank is empty, then we still place this number in the string
        if empty_count > 0:
            fen_characters.append(str(empty_count))
        return "".join(fen_characters)

    def is_well_formed(self) -> bool:
        return len(self.grid) == BOARD_DIMENSIONS[1] and all(
            len(row) == BOARD_DIMENSIONS[0] for row in self.grid
        )

    def copy_grid(self) -> list[list[str]]:
        return deepcopy(self.grid)


def is_valid_fen(fen_str: str) -> bool:
    """
    Placement part must describe a full 8x8 board: 8 ranks, each expanding to 8 squares of known piece letters.
    Side to move, when present, must be "w" or "b". Nothing beyond the shape is checked.
    """
    if not fen_str or len(fen_str) > MAX_FEN_LENGTH:
        return False
    fields = fen_str.split(" ")
    ranks = fields[0].split("/")
    if len(ranks) != BOARD_DIMENSIONS[1]:
        return False
    for fen_one_rank in ranks:
        squares = 0
        for character in fen_one_rank:
            if character.isdigit() and 1 <= int(character) <= BOARD_DIMENSIONS[0]:
                squares += int(character)
            elif character in PIECE_LETTERS:
                squares += 1
            else:
                return False
        if squares != BOARD_DIMENSIONS[0]:
            return False
    return len(fields) < 2 or fields[1] in ("w", "b")

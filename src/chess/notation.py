"""Human readable notation for moves the client declared. Derived purely from what was submitted, no board lookups."""

from typing import Optional

from src.chess.square import Square

# Destination column of the king when castling king-side (g-file)
KING_SIDE_CASTLING_COL = 6


def build_notation(
    piece: str,
    to_square: Square,
    captured_piece: Optional[str] = None,
    castled: bool = False,
) -> str:
    """
    Short algebraic-style notation.
    ----
    Castling: "O-O" (king-side) or "O-O-O" (queen-side).
    Otherwise: <piece letter><"x" if capture><destination square>, pawns have no piece letter.
    ex. "e4", "Nf3", "Bxc6", "exd5" is written as "xd5" as the origin file is not tracked.
    """
    if castled:
        return "O-O" if to_square.col == KING_SIDE_CASTLING_COL else "O-O-O"

    piece_letter = "" if piece.lower() == "p" else piece.upper()
    capture = "x" if captured_piece else ""
    return f"{piece_letter}{capture}{to_square.to_algebraic()}"


def build_uci(from_square: Square, to_square: Square) -> str:
    """Coordinate notation as stored on the match record, ex. e2e4"""
    return from_square.to_algebraic() + to_square.to_algebraic()

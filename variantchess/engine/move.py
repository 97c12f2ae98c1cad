from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Tuple

from .errors import GameStatus, InvalidSquareReference

if TYPE_CHECKING:
    from .pieces import Piece


# Board-local coordinates (x, y): x is the file index from the left edge,
# y the row index from the top edge.
Square = Tuple[int, int]


def str_to_square(s: str, width: int, height: int) -> Square:
    """Convert algebraic notation into board coordinates.

    Args:
        s (str): Square name such as ``"e4"`` or ``"j10"``.
        width (int): Board width, bounds the file letter.
        height (int): Board height, bounds the rank number.

    Returns:
        Square: ``(x, y)`` with ``y`` counted from the top rank.

    Raises:
        InvalidSquareReference: If ``s`` is malformed or off the board.
    """
    if not isinstance(s, str):
        raise InvalidSquareReference(f"invalid square: {s!r}")
    text = s.strip().lower()
    if len(text) < 2:
        raise InvalidSquareReference(f"invalid square: {s!r}")
    file_ch, rank_str = text[0], text[1:]
    if not ("a" <= file_ch <= "z") or not rank_str.isdigit():
        raise InvalidSquareReference(f"invalid square: {s!r}")
    x = ord(file_ch) - ord("a")
    rank = int(rank_str)
    if x >= width:
        raise InvalidSquareReference(f"file out of range for board: {s!r}")
    if rank < 1 or rank > height:
        raise InvalidSquareReference(f"rank out of range for board: {s!r}")
    return x, height - rank


def square_to_str(sq: Square, width: int, height: int) -> str:
    """Convert board coordinates into algebraic notation.

    Raises:
        InvalidSquareReference: If ``sq`` is outside a ``width`` x ``height`` board.
    """
    x, y = sq
    if not (0 <= x < width and 0 <= y < height):
        raise InvalidSquareReference(f"square {sq} is off the board")
    return chr(ord("a") + x) + str(height - y)


@dataclass
class MoveContext:
    """Shared, per-move scratch state handed to every rule hook.

    ``capture_handled`` lets exactly one rule perform the physical removal of
    ``captured_piece``; variant rules set it first to pre-empt the default.
    """

    piece: "Piece"
    from_sq: Square
    to_sq: Square
    is_capture: bool = False
    captured_piece: Optional["Piece"] = None
    capture_handled: bool = False
    is_en_passant: bool = False
    is_castling: bool = False
    castling_rook: Optional["Piece"] = None


@dataclass(frozen=True)
class MoveResult:
    """Model-level outcome of one applied move.

    Attributes:
        from_sq (Square): Origin coordinates.
        to_sq (Square): Destination coordinates.
        captured (Optional[Piece]): The captured piece object (identity), if any.
        status (GameStatus): Terminal status reached by this move.
    """

    from_sq: Square
    to_sq: Square
    captured: Optional["Piece"] = field(default=None, compare=False)
    status: GameStatus = GameStatus.ONGOING

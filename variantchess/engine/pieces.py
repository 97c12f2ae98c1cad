from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Set, Tuple

from .move import Square

if TYPE_CHECKING:
    from .board import Board


class Side(str, Enum):
    """The two sides; values match the FEN active-side letters."""

    WHITE = "w"
    BLACK = "b"

    @property
    def opposite(self) -> "Side":
        return Side.BLACK if self is Side.WHITE else Side.WHITE

    @property
    def forward(self) -> int:
        # y grows downwards, so white advances towards row 0
        return -1 if self is Side.WHITE else 1


class PieceKind(str, Enum):
    """Piece kinds; values are the lowercase FEN letters."""

    PAWN = "p"
    KNIGHT = "n"
    BISHOP = "b"
    ROOK = "r"
    QUEEN = "q"
    KING = "k"
    BUREAUCRAT = "c"


CHAR_TO_KIND: Dict[str, PieceKind] = {k.value: k for k in PieceKind}


@dataclass(eq=False)
class Piece:
    """A piece on the board.

    Equality is identity: two white knights are different pieces, which is
    what capture tracking and simulate/revert rely on.

    Attributes:
        kind (PieceKind): Piece type.
        side (Side): Owning side (may change for capture-transform pieces).
        x (int): File index from the left edge.
        y (int): Row index from the top edge.
        handle (int): Stable integer id assigned by the board, never reused.
        castle_kingside (bool): King-only castling right towards higher files.
        castle_queenside (bool): King-only castling right towards lower files.
    """

    kind: PieceKind
    side: Side
    x: int
    y: int
    handle: int = -1
    castle_kingside: bool = False
    castle_queenside: bool = False

    @property
    def square(self) -> Square:
        return self.x, self.y

    @property
    def symbol(self) -> str:
        """FEN letter: uppercase for white, lowercase for black."""
        return self.kind.value.upper() if self.side is Side.WHITE else self.kind.value

    def move_to(self, sq: Square) -> None:
        self.x, self.y = sq

    def __repr__(self) -> str:
        return f"Piece({self.symbol}@{self.x},{self.y}#{self.handle})"


def piece_from_char(ch: str, x: int, y: int) -> Piece:
    """Build a piece from its FEN letter.

    Raises:
        ValueError: If ``ch`` is not a known piece letter.
    """
    kind = CHAR_TO_KIND.get(ch.lower())
    if kind is None:
        raise ValueError(f"invalid piece letter: {ch!r}")
    side = Side.WHITE if ch.isupper() else Side.BLACK
    return Piece(kind=kind, side=side, x=x, y=y)


# ---- Direction tables ----

ORTHOGONAL: Tuple[Tuple[int, int], ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))
DIAGONAL: Tuple[Tuple[int, int], ...] = ((1, 1), (1, -1), (-1, 1), (-1, -1))
KNIGHT_JUMPS: Tuple[Tuple[int, int], ...] = (
    (1, 2),
    (2, 1),
    (2, -1),
    (1, -2),
    (-1, -2),
    (-2, -1),
    (-2, 1),
    (-1, 2),
)
KING_STEPS: Tuple[Tuple[int, int], ...] = ORTHOGONAL + DIAGONAL

SLIDER_RAYS: Dict[PieceKind, Tuple[Tuple[int, int], ...]] = {
    PieceKind.BISHOP: DIAGONAL,
    PieceKind.ROOK: ORTHOGONAL,
    PieceKind.QUEEN: ORTHOGONAL + DIAGONAL,
}


def pawn_start_row(board: "Board", side: Side) -> int:
    return board.height - 2 if side is Side.WHITE else 1


# ---- Pseudo-legal targets ----


def _slider_targets(board: "Board", piece: Piece) -> Set[Square]:
    out: Set[Square] = set()
    for dx, dy in SLIDER_RAYS[piece.kind]:
        x, y = piece.x + dx, piece.y + dy
        while board.in_bounds((x, y)):
            at = board.piece_at((x, y))
            if at is None:
                out.add((x, y))
            else:
                if at.side is not piece.side:
                    out.add((x, y))
                break
            x += dx
            y += dy
    return out


def _step_targets(board: "Board", piece: Piece, steps: Tuple[Tuple[int, int], ...]) -> Set[Square]:
    out: Set[Square] = set()
    for dx, dy in steps:
        sq = (piece.x + dx, piece.y + dy)
        if not board.in_bounds(sq):
            continue
        at = board.piece_at(sq)
        if at is None or at.side is not piece.side:
            out.add(sq)
    return out


def _knight_targets(board: "Board", piece: Piece) -> Set[Square]:
    return _step_targets(board, piece, KNIGHT_JUMPS)


def _pawn_targets(board: "Board", piece: Piece) -> Set[Square]:
    out: Set[Square] = set()
    fwd = piece.side.forward

    one = (piece.x, piece.y + fwd)
    if board.in_bounds(one) and board.is_empty(one):
        out.add(one)
        two = (piece.x, piece.y + 2 * fwd)
        if piece.y == pawn_start_row(board, piece.side) and board.in_bounds(two) and board.is_empty(two):
            out.add(two)

    for dx in (-1, 1):
        diag = (piece.x + dx, piece.y + fwd)
        if not board.in_bounds(diag):
            continue
        at = board.piece_at(diag)
        if at is not None and at.side is not piece.side:
            out.add(diag)
        elif at is None and board.ep_square == diag:
            # The passed pawn sits beside us on our own row
            passed = board.piece_at((diag[0], piece.y))
            if passed is not None and passed.kind is PieceKind.PAWN and passed.side is not piece.side:
                out.add(diag)
    return out


def _king_targets(board: "Board", piece: Piece) -> Set[Square]:
    opponent = piece.side.opposite
    out = {
        sq for sq in _step_targets(board, piece, KING_STEPS) if not board.is_square_attacked(opponent, sq)
    }

    for flag, kingside, dx in ((piece.castle_kingside, True, 1), (piece.castle_queenside, False, -1)):
        if not flag:
            continue
        cross = (piece.x + dx, piece.y)
        dest = (piece.x + 2 * dx, piece.y)
        if not (board.in_bounds(dest) and board.is_empty(cross) and board.is_empty(dest)):
            continue
        # Everything up to the first rook must be empty, and that rook must be ours
        rook = board.find_first_rook_on_ray(piece.square, dx, piece.side)
        if rook is None:
            continue
        expected = board.castling_rook_for(piece.side, kingside)
        if expected is not None and rook is not expected:
            continue
        if any(board.is_square_attacked(opponent, sq) for sq in (piece.square, cross, dest)):
            continue
        out.add(dest)
    return out


def _bureaucrat_targets(board: "Board", piece: Piece) -> Set[Square]:
    return {sq for sq in board.all_squares() if board.is_empty(sq)}


_TARGETS: Dict[PieceKind, Callable[["Board", Piece], Set[Square]]] = {
    PieceKind.PAWN: _pawn_targets,
    PieceKind.KNIGHT: _knight_targets,
    PieceKind.BISHOP: _slider_targets,
    PieceKind.ROOK: _slider_targets,
    PieceKind.QUEEN: _slider_targets,
    PieceKind.KING: _king_targets,
    PieceKind.BUREAUCRAT: _bureaucrat_targets,
}


def pseudo_targets(board: "Board", piece: Piece) -> Set[Square]:
    """Return squares ``piece`` may move to, ignoring own-king exposure."""
    return _TARGETS[piece.kind](board, piece)


# ---- Attacked squares ----


def _slider_attacks(board: "Board", piece: Piece) -> Set[Square]:
    out: Set[Square] = set()
    for dx, dy in SLIDER_RAYS[piece.kind]:
        x, y = piece.x + dx, piece.y + dy
        while board.in_bounds((x, y)):
            out.add((x, y))
            if board.piece_at((x, y)) is not None:
                break
            x += dx
            y += dy
    return out


def _offset_attacks(board: "Board", piece: Piece, offsets: Tuple[Tuple[int, int], ...]) -> Set[Square]:
    squares = ((piece.x + dx, piece.y + dy) for dx, dy in offsets)
    return {sq for sq in squares if board.in_bounds(sq)}


def _pawn_attacks(board: "Board", piece: Piece) -> Set[Square]:
    fwd = piece.side.forward
    return _offset_attacks(board, piece, ((-1, fwd), (1, fwd)))


_ATTACKS: Dict[PieceKind, Callable[["Board", Piece], Set[Square]]] = {
    PieceKind.PAWN: _pawn_attacks,
    PieceKind.KNIGHT: lambda board, piece: _offset_attacks(board, piece, KNIGHT_JUMPS),
    PieceKind.BISHOP: _slider_attacks,
    PieceKind.ROOK: _slider_attacks,
    PieceKind.QUEEN: _slider_attacks,
    PieceKind.KING: lambda board, piece: _offset_attacks(board, piece, KING_STEPS),
    PieceKind.BUREAUCRAT: lambda board, piece: set(),
}


def attacked_squares(board: "Board", piece: Piece) -> Set[Square]:
    """Return squares ``piece`` threatens (used only for attack detection)."""
    return _ATTACKS[piece.kind](board, piece)


# ---- Capture behaviour ----


def transforms_on_capture(piece: Piece) -> bool:
    return piece.kind is PieceKind.BUREAUCRAT


def relocate_after_capture(board: "Board", piece: Piece) -> bool:
    """Switch a captured Bureaucrat to the capturing side and re-place it.

    The first empty square in file-major scan order (a-file top to bottom,
    then the next file) receives the piece.

    Returns:
        bool: ``True`` when the piece was re-placed, ``False`` when the board
            had no empty square and the piece was removed instead.
    """
    piece.side = piece.side.opposite
    empty: List[Square] = [sq for sq in board.all_squares() if board.is_empty(sq)]
    if not empty:
        board.remove_piece(piece)
        return False
    piece.move_to(empty[0])
    return True

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Set, Tuple, Union

from .errors import (
    GameOver,
    GameStatus,
    InvalidSpecialMove,
    InvalidSquareReference,
    MalformedPosition,
    NoPieceAtSource,
)
from .move import MoveContext, MoveResult, Square, square_to_str, str_to_square
from .notation import EMPTY, compress_placement, expand_placement, split_fen
from .pieces import (
    Piece,
    PieceKind,
    Side,
    attacked_squares,
    piece_from_char,
    pseudo_targets,
    transforms_on_capture,
)
from .rules import CaptureTransformRule, build_rules

if TYPE_CHECKING:
    from .rules import Rule


logger = logging.getLogger(__name__)

STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

SquareRef = Union[Square, str]


@dataclass
class Board:
    """Mutable position plus the rule pipeline that moves pieces on it.

    Notes:
    - Coordinates are ``(x, y)`` with the origin at the top-left square, so
      white's back rank is row ``height - 1``.
    - The piece list is owned here; rules mutate it only through the helper
      methods below, and only from inside :meth:`apply`.
    - Not re-entrant: legality checks temporarily move pieces and put them
      back, so callers must serialise access from multiple threads.
    """

    width: int
    height: int
    side_to_move: Side
    ep_square: Optional[Square]
    halfmove_clock: int
    fullmove_number: int
    rules: List["Rule"] = field(default_factory=list, repr=False)
    # (side, kingside) -> handle of the rook that wing castles with
    castling_rooks: Dict[Tuple[Side, bool], int] = field(default_factory=dict, repr=False)
    _pieces: List[Piece] = field(default_factory=list, repr=False)
    _next_handle: int = field(default=0, repr=False)

    # ------------------------------------------------------------------
    # Position text (decode / encode)
    # ------------------------------------------------------------------

    @classmethod
    def startpos(cls) -> "Board":
        return cls.from_fen(STARTPOS_FEN)

    @classmethod
    def from_fen(cls, fen: str) -> "Board":
        """Create a board from a six-field position string.

        Args:
            fen (str): Placement, active side, castling letters, en passant
                square, half-move clock and full-move number.

        Returns:
            Board: A board with no rules attached yet.

        Raises:
            MalformedPosition: If the field count is wrong, rows differ in
                width, a letter is unknown, a side has two kings, or any of
                the remaining fields is invalid.
        """
        placement, stm, castling, ep, halfmove, fullmove = split_fen(fen)
        grid = expand_placement(placement)

        if stm not in ("w", "b"):
            raise MalformedPosition("side to move must be 'w' or 'b'")
        if castling != "-" and any(ch not in "KQkq" for ch in castling):
            raise MalformedPosition(f"invalid castling rights: {castling!r}")

        try:
            halfmove_clock = int(halfmove)
            fullmove_number = int(fullmove)
        except ValueError as e:
            raise MalformedPosition("invalid move counters in FEN") from e
        if halfmove_clock < 0 or fullmove_number <= 0:
            raise MalformedPosition("invalid move counters in FEN")

        board = cls(
            width=len(grid[0]),
            height=len(grid),
            side_to_move=Side(stm),
            ep_square=None,
            halfmove_clock=halfmove_clock,
            fullmove_number=fullmove_number,
        )

        for y, row in enumerate(grid):
            for x, ch in enumerate(row):
                if ch == EMPTY:
                    continue
                try:
                    piece = piece_from_char(ch, x, y)
                except ValueError as e:
                    raise MalformedPosition(f"invalid piece in FEN: {ch!r}") from e
                board._add_piece(piece)

        for side in Side:
            kings = [p for p in board._pieces if p.kind is PieceKind.KING and p.side is side]
            if len(kings) > 1:
                raise MalformedPosition(f"more than one {side.name.lower()} king")

        # Castling letters live on the kings; letters for a missing king are dropped
        white_king = board.king_of(Side.WHITE)
        black_king = board.king_of(Side.BLACK)
        if white_king is not None:
            white_king.castle_kingside = "K" in castling
            white_king.castle_queenside = "Q" in castling
        if black_king is not None:
            black_king.castle_kingside = "k" in castling
            black_king.castle_queenside = "q" in castling

        if ep != "-":
            try:
                board.ep_square = str_to_square(ep, board.width, board.height)
            except InvalidSquareReference as e:
                raise MalformedPosition(f"invalid en passant square: {ep!r}") from e

        board.record_castling_rooks()
        return board

    def to_fen(self) -> str:
        """Serialize the position; castling letters are read off the kings."""
        grid = [[EMPTY] * self.width for _ in range(self.height)]
        for p in self._pieces:
            grid[p.y][p.x] = p.symbol
        placement = compress_placement(grid)
        ep = self.square_name(self.ep_square) if self.ep_square is not None else "-"
        return (
            f"{placement} {self.side_to_move.value} {self.castling_string()} {ep} "
            f"{self.halfmove_clock} {self.fullmove_number}"
        )

    def castling_string(self) -> str:
        letters = ""
        for side, (k, q) in ((Side.WHITE, ("K", "Q")), (Side.BLACK, ("k", "q"))):
            king = self.king_of(side)
            if king is None:
                continue
            if king.castle_kingside:
                letters += k
            if king.castle_queenside:
                letters += q
        return letters or "-"

    # ------------------------------------------------------------------
    # Coordinates and occupancy
    # ------------------------------------------------------------------

    @property
    def pieces(self) -> Tuple[Piece, ...]:
        """Snapshot of the pieces currently on the board."""
        return tuple(self._pieces)

    def pieces_of(self, side: Side) -> List[Piece]:
        return [p for p in self._pieces if p.side is side]

    def in_bounds(self, sq: Square) -> bool:
        x, y = sq
        return 0 <= x < self.width and 0 <= y < self.height

    def piece_at(self, sq: Square) -> Optional[Piece]:
        for p in self._pieces:
            if p.x == sq[0] and p.y == sq[1]:
                return p
        return None

    def is_empty(self, sq: Square) -> bool:
        return self.in_bounds(sq) and self.piece_at(sq) is None

    def all_squares(self) -> Iterator[Square]:
        """Every square, file by file (a-file top to bottom first)."""
        for x in range(self.width):
            for y in range(self.height):
                yield x, y

    def king_of(self, side: Side) -> Optional[Piece]:
        for p in self._pieces:
            if p.kind is PieceKind.KING and p.side is side:
                return p
        return None

    def square_name(self, sq: Square) -> str:
        return square_to_str(sq, self.width, self.height)

    def parse_square(self, name: str) -> Square:
        return str_to_square(name, self.width, self.height)

    def resolve_square(self, ref: SquareRef) -> Square:
        """Accept either algebraic notation or an ``(x, y)`` pair.

        Raises:
            InvalidSquareReference: If the reference is malformed or off-board.
        """
        if isinstance(ref, str):
            return self.parse_square(ref)
        try:
            x, y = ref
        except (TypeError, ValueError) as e:
            raise InvalidSquareReference(f"invalid square: {ref!r}") from e
        if not isinstance(x, int) or not isinstance(y, int) or not self.in_bounds((x, y)):
            raise InvalidSquareReference(f"square {ref!r} is off the board")
        return x, y

    def piece_by_handle(self, handle: int) -> Optional[Piece]:
        for p in self._pieces:
            if p.handle == handle:
                return p
        return None

    def record_castling_rooks(self) -> None:
        """Remember, per king and wing, the nearest own rook on the king's row.

        Shuffled and widened start positions rarely keep rooks on the corners,
        so castling rights follow these rooks by handle instead.
        """
        self.castling_rooks = {}
        for side in Side:
            king = self.king_of(side)
            if king is None:
                continue
            for kingside, dx in ((True, 1), (False, -1)):
                x = king.x + dx
                while 0 <= x < self.width:
                    at = self.piece_at((x, king.y))
                    if at is not None and at.kind is PieceKind.ROOK and at.side is side:
                        self.castling_rooks[(side, kingside)] = at.handle
                        break
                    x += dx

    def castling_rook_for(self, side: Side, kingside: bool) -> Optional[Piece]:
        """The recorded castling rook for a wing, if it is still on the board."""
        handle = self.castling_rooks.get((side, kingside))
        if handle is None:
            return None
        return self.piece_by_handle(handle)

    def find_first_rook_on_ray(self, start: Square, dx: int, side: Side) -> Optional[Piece]:
        """Walk the row from ``start`` in direction ``dx``.

        Returns:
            Optional[Piece]: The first piece met if it is a rook of ``side``,
                otherwise ``None`` (including when the row runs out).
        """
        x, y = start[0] + dx, start[1]
        while self.in_bounds((x, y)):
            at = self.piece_at((x, y))
            if at is not None:
                if at.kind is PieceKind.ROOK and at.side is side:
                    return at
                return None
            x += dx
        return None

    # ------------------------------------------------------------------
    # Attack detection and legality
    # ------------------------------------------------------------------

    def is_square_attacked(self, by_side: Side, sq: Square) -> bool:
        """Return True if any piece of ``by_side`` attacks ``sq``. Read-only."""
        for p in self._pieces:
            if p.side is by_side and sq in attacked_squares(self, p):
                return True
        return False

    def is_in_check(self, side: Side) -> bool:
        king = self.king_of(side)
        if king is None:
            return False
        return self.is_square_attacked(side.opposite, king.square)

    def legal_targets(self, piece: Piece) -> Set[Square]:
        """Pseudo-legal targets minus those that expose the mover's king."""
        return {
            sq
            for sq in pseudo_targets(self, piece)
            if not self.would_leave_own_king_in_check(piece, piece.square, sq)
        }

    def has_no_legal_moves(self, side: Side) -> bool:
        for p in self.pieces_of(side):
            for sq in pseudo_targets(self, p):
                if not self.would_leave_own_king_in_check(p, p.square, sq):
                    return False
        return True

    def would_leave_own_king_in_check(self, piece: Piece, from_sq: Square, to_sq: Square) -> bool:
        """Simulate ``piece`` moving ``from_sq`` -> ``to_sq`` and undo it.

        The capture (en passant included), the castling rook hop and the move
        itself are applied in place, the mover's king is tested, and every
        change is reverted in reverse order. Removed pieces go back into the
        same list slot; castling rights are never touched here. With a
        capture-transform rule attached, a captured Bureaucrat is re-placed
        the way the real move would, since it may end up blocking a line.
        """
        origin = piece.square
        removed: Optional[Tuple[int, Piece]] = None
        relocated: Optional[Tuple[Piece, Square]] = None
        rook: Optional[Piece] = None
        rook_origin: Optional[Square] = None
        try:
            if self._is_en_passant_shape(piece, from_sq, to_sq):
                passed = self.piece_at((to_sq[0], to_sq[1] - piece.side.forward))
                if passed is not None and passed.kind is PieceKind.PAWN and passed.side is not piece.side:
                    removed = self._detach(passed)
            else:
                target = self.piece_at(to_sq)
                if target is not None and target is not piece and target.side is not piece.side:
                    removed = self._detach(target)

            if self._is_castling_shape(piece, from_sq, to_sq):
                step = 1 if to_sq[0] > from_sq[0] else -1
                rook = self.find_first_rook_on_ray(from_sq, step, piece.side)
                if rook is not None:
                    rook_origin = rook.square
                    rook.move_to((from_sq[0] + step, from_sq[1]))

            piece.move_to(to_sq)

            if removed is not None and self._captures_transform(removed[1]):
                captured = removed[1]
                spot = next((sq for sq in self.all_squares() if self.is_empty(sq)), None)
                if spot is not None:
                    self._reattach(removed)
                    removed = None
                    relocated = (captured, captured.square)
                    captured.side = captured.side.opposite
                    captured.move_to(spot)

            return self.is_in_check(piece.side)
        finally:
            if relocated is not None:
                captured, square = relocated
                captured.side = captured.side.opposite
                captured.move_to(square)
            piece.move_to(origin)
            if rook is not None and rook_origin is not None:
                rook.move_to(rook_origin)
            if removed is not None:
                self._reattach(removed)

    def _is_en_passant_shape(self, piece: Piece, from_sq: Square, to_sq: Square) -> bool:
        return piece.kind is PieceKind.PAWN and from_sq[0] != to_sq[0] and self.is_empty(to_sq)

    def _captures_transform(self, captured: Piece) -> bool:
        return transforms_on_capture(captured) and any(isinstance(r, CaptureTransformRule) for r in self.rules)

    @staticmethod
    def _is_castling_shape(piece: Piece, from_sq: Square, to_sq: Square) -> bool:
        return piece.kind is PieceKind.KING and abs(to_sq[0] - from_sq[0]) == 2

    # ------------------------------------------------------------------
    # Move pipeline
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Attach the default rules if none were configured, then notify them."""
        if not self.rules:
            self.rules = build_rules(None)
        for rule in self.rules:
            rule.on_game_start(self)

    def apply(self, from_ref: SquareRef, to_ref: SquareRef) -> MoveResult:
        """Run one move through the five rule phases.

        Phases: validate, before-move, core move, after-move, after-turn.
        Validation failures leave the board untouched. A terminal signal
        raised during after-turn is held until the remaining after-turn
        rules have run, then re-raised with the committed result attached.

        Args:
            from_ref (SquareRef): Origin, as ``"e2"`` or ``(x, y)``.
            to_ref (SquareRef): Destination, as ``"e4"`` or ``(x, y)``.

        Returns:
            MoveResult: Origin, destination and the captured piece, if any.

        Raises:
            InvalidSquareReference: If either square is malformed or off-board.
            NoPieceAtSource: If ``from_ref`` is empty.
            MoveRejected: If a rule rejects the move during validation.
            GameOver: ``Checkmate`` or ``Stalemate`` after the move committed.
        """
        from_sq = self.resolve_square(from_ref)
        to_sq = self.resolve_square(to_ref)

        piece = self.piece_at(from_sq)
        if piece is None:
            raise NoPieceAtSource(f"no piece at source square {self.square_name(from_sq)}")

        if not self.rules:
            self.start()

        ctx = MoveContext(piece=piece, from_sq=from_sq, to_sq=to_sq)

        for rule in self.rules:
            rule.validate(self, ctx)
        for rule in self.rules:
            rule.before_move(self, ctx)

        piece.move_to(to_sq)

        for rule in self.rules:
            rule.after_move(self, ctx)

        terminal: Optional[GameOver] = None
        for rule in self.rules:
            try:
                rule.after_turn(self, ctx)
            except GameOver as exc:
                if terminal is None:
                    terminal = exc

        result = MoveResult(
            from_sq=from_sq,
            to_sq=to_sq,
            captured=ctx.captured_piece,
            status=terminal.status if terminal is not None else GameStatus.ONGOING,
        )
        logger.debug(
            "applied %s-%s captured=%s status=%s",
            self.square_name(from_sq),
            self.square_name(to_sq),
            ctx.captured_piece,
            result.status.value,
        )
        if terminal is not None:
            terminal.result = result
            raise terminal
        return result

    # ---- Helpers for rules ----

    def remove_piece(self, piece: Piece) -> None:
        self._pieces.remove(piece)

    def switch_side(self) -> None:
        self.side_to_move = self.side_to_move.opposite

    def perform_en_passant(self, ctx: MoveContext) -> bool:
        """Remove the passed pawn for a diagonal pawn move onto an empty square.

        Returns:
            bool: ``True`` if an en passant capture was performed.

        Raises:
            InvalidSpecialMove: If no enemy pawn sits beside the mover.
        """
        piece = ctx.piece
        if not self._is_en_passant_shape(piece, ctx.from_sq, ctx.to_sq):
            return False
        passed = self.piece_at((ctx.to_sq[0], ctx.to_sq[1] - piece.side.forward))
        if passed is None or passed.kind is not PieceKind.PAWN or passed.side is piece.side:
            raise InvalidSpecialMove("invalid en passant capture attempted")
        self.remove_piece(passed)
        ctx.is_en_passant = True
        ctx.is_capture = True
        ctx.captured_piece = passed
        ctx.capture_handled = True
        return True

    def prepare_castling(self, ctx: MoveContext) -> bool:
        """Flag a two-file king move as castling and find its rook.

        Raises:
            InvalidSpecialMove: If the first piece along the row is not our rook.
        """
        if not self._is_castling_shape(ctx.piece, ctx.from_sq, ctx.to_sq):
            return False
        step = 1 if ctx.to_sq[0] > ctx.from_sq[0] else -1
        rook = self.find_first_rook_on_ray(ctx.from_sq, step, ctx.piece.side)
        if rook is None:
            raise InvalidSpecialMove("no rook found for castling")
        ctx.is_castling = True
        ctx.castling_rook = rook
        return True

    def handle_castling(self, ctx: MoveContext) -> None:
        """Hop the castling rook next to the king's origin and drop the king's rights."""
        rook = ctx.castling_rook
        if rook is None:
            raise InvalidSpecialMove("castling without a rook")
        step = 1 if ctx.to_sq[0] > ctx.from_sq[0] else -1
        rook.move_to((ctx.from_sq[0] + step, ctx.from_sq[1]))
        ctx.piece.castle_kingside = False
        ctx.piece.castle_queenside = False
        self.ep_square = None

    def resolve_capture(self, ctx: MoveContext) -> None:
        if ctx.is_capture and not ctx.capture_handled and ctx.captured_piece is not None:
            self.remove_piece(ctx.captured_piece)
            ctx.capture_handled = True

    def update_en_passant_target(self, ctx: MoveContext) -> None:
        self.ep_square = None
        if ctx.piece.kind is PieceKind.PAWN and abs(ctx.to_sq[1] - ctx.from_sq[1]) == 2:
            self.ep_square = (ctx.from_sq[0], ctx.from_sq[1] + ctx.piece.side.forward)

    def update_castling_rights(self, ctx: MoveContext) -> None:
        """Clear rights after king moves and after castling-rook departures or captures.

        Wings with a recorded rook follow that rook by handle. Wings without
        one fall back to the board corners.
        """
        piece = ctx.piece
        if piece.kind is PieceKind.KING:
            piece.castle_kingside = False
            piece.castle_queenside = False

        last_x, last_y = self.width - 1, self.height - 1
        corners = (
            ((0, last_y), Side.WHITE, False),
            ((last_x, last_y), Side.WHITE, True),
            ((0, 0), Side.BLACK, False),
            ((last_x, 0), Side.BLACK, True),
        )
        captured = ctx.captured_piece if ctx.is_capture else None
        for corner, side, kingside in corners:
            king = self.king_of(side)
            if king is None:
                continue
            handle = self.castling_rooks.get((side, kingside))
            if handle is not None:
                rook_left = piece.handle == handle
                captured_there = captured is not None and captured.handle == handle
            else:
                rook_left = piece.kind is PieceKind.ROOK and piece.side is side and ctx.from_sq == corner
                captured_there = ctx.is_capture and ctx.to_sq == corner
            if not (rook_left or captured_there):
                continue
            if kingside:
                king.castle_kingside = False
            else:
                king.castle_queenside = False

    # ---- Piece list bookkeeping ----

    def _add_piece(self, piece: Piece) -> None:
        piece.handle = self._next_handle
        self._next_handle += 1
        self._pieces.append(piece)

    def _detach(self, piece: Piece) -> Tuple[int, Piece]:
        idx = self._pieces.index(piece)
        del self._pieces[idx]
        return idx, piece

    def _reattach(self, entry: Tuple[int, Piece]) -> None:
        idx, piece = entry
        self._pieces.insert(idx, piece)

    # ------------------------------------------------------------------
    # Debug rendering
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        grid = [[EMPTY] * self.width for _ in range(self.height)]
        for p in self._pieces:
            grid[p.y][p.x] = p.symbol
        label_w = len(str(self.height))
        lines = [f"{self.height - y:>{label_w}} | " + " ".join(row) for y, row in enumerate(grid)]
        files = " ".join(chr(ord("a") + x) for x in range(self.width))
        lines.append(" " * (label_w + 3) + files)
        ep = self.square_name(self.ep_square) if self.ep_square is not None else "-"
        lines.append("")
        lines.append(f"Active: {'white' if self.side_to_move is Side.WHITE else 'black'}")
        lines.append(f"Castling: {self.castling_string()}")
        lines.append(f"En Passant: {ep}")
        lines.append(f"Halfmove: {self.halfmove_clock}")
        lines.append(f"Fullmove: {self.fullmove_number}")
        return "\n".join(lines)

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from ..engine.board import SquareRef
from ..engine.errors import GameOver, GameStatus, InvalidSquareReference, MoveRejected
from ..engine.game import Game
from ..engine.move import MoveResult, Square
from ..engine.pieces import Piece


logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    NOOP = "noop"
    SELECTION = "selection"
    MOVE_APPLIED = "move_applied"
    MOVE_REJECTED = "move_rejected"


@dataclass(frozen=True)
class ClickOutcome:
    """What a click did, in terms the UI layer can act on.

    Attributes:
        kind (OutcomeKind): Which of the four outcomes this is.
        square (Optional[Square]): Selected square (selection only).
        targets (FrozenSet[Square]): Legal targets of the selection.
        from_sq (Optional[Square]): Origin of an applied move.
        to_sq (Optional[Square]): Destination of an applied move.
        captured (Optional[Piece]): The captured piece object, if any.
        status (GameStatus): Terminal status after an applied move.
        reason (Optional[str]): Human-readable rejection reason.
    """

    kind: OutcomeKind
    square: Optional[Square] = None
    targets: FrozenSet[Square] = frozenset()
    from_sq: Optional[Square] = None
    to_sq: Optional[Square] = None
    captured: Optional[Piece] = field(default=None, compare=False)
    status: GameStatus = GameStatus.ONGOING
    reason: Optional[str] = None

    @classmethod
    def noop(cls) -> "ClickOutcome":
        return cls(kind=OutcomeKind.NOOP)

    @classmethod
    def rejected(cls, reason: str) -> "ClickOutcome":
        return cls(kind=OutcomeKind.MOVE_REJECTED, reason=reason)

    @classmethod
    def applied(cls, result: MoveResult) -> "ClickOutcome":
        return cls(
            kind=OutcomeKind.MOVE_APPLIED,
            from_sq=result.from_sq,
            to_sq=result.to_sq,
            captured=result.captured,
            status=result.status,
        )


@dataclass(frozen=True)
class BoardViewState:
    """Immutable snapshot of everything a renderer needs for one frame."""

    width: int
    height: int
    fen: str
    side_to_move: str
    pieces: Tuple[Tuple[str, Square], ...]
    selected: Optional[Square]
    targets: FrozenSet[Square]
    last_move: Optional[Tuple[Square, Square]]
    in_check: bool
    status: GameStatus
    history: Tuple[str, ...]
    last_error: Optional[str]


class BoardController:
    """Turns board clicks into moves on a :class:`Game`.

    The first click on a piece of the side to move selects it; the second
    click either reselects another own piece or attempts the move.
    """

    def __init__(self, game: Game) -> None:
        self.game = game
        self.selected: Optional[Square] = None
        self.targets: FrozenSet[Square] = frozenset()
        self.last_move: Optional[Tuple[Square, Square]] = None
        self.last_error: Optional[str] = None

    @property
    def history(self) -> List[str]:
        """Moves played so far, read from the game."""
        return self.game.move_history()

    def clear_selection(self) -> None:
        self.selected = None
        self.targets = frozenset()

    def handle_click(self, x: int, y: int) -> ClickOutcome:
        """Process a click on board coordinates ``(x, y)``.

        Returns:
            ClickOutcome: No-op, selection, move-applied or move-rejected.
        """
        if self.game.is_over:
            return ClickOutcome.noop()

        board = self.game.board
        sq = (x, y)
        if not board.in_bounds(sq):
            reason = str(InvalidSquareReference(f"square {sq} is off the board"))
            self.last_error = reason
            self.clear_selection()
            return ClickOutcome.rejected(reason)

        piece = board.piece_at(sq)

        if self.selected is None:
            if piece is None or piece.side is not board.side_to_move:
                return ClickOutcome.noop()
            return self._select(piece)

        selected_piece = board.piece_at(self.selected)
        if piece is not None and selected_piece is not None and piece.side is selected_piece.side:
            return self._select(piece)

        return self.try_move(self.selected, sq)

    def try_move(self, from_sq: SquareRef, to_sq: SquareRef) -> ClickOutcome:
        """Attempt a move and report the outcome instead of raising."""
        try:
            result = self.submit_move(from_sq, to_sq)
        except (MoveRejected, InvalidSquareReference, GameOver) as e:
            logger.debug("move rejected: %s", e)
            return ClickOutcome.rejected(str(e))
        return ClickOutcome.applied(result)

    def submit_move(self, from_ref: SquareRef, to_ref: SquareRef) -> MoveResult:
        """Apply a move, clearing any selection.

        A move that ends the game is returned like any other; its status
        carries the end condition.

        Raises:
            MoveRejected: If the move is refused.
            InvalidSquareReference: If a square is malformed or off-board.
            GameOver: If the game had already ended before this move.
        """
        self.clear_selection()
        try:
            result = self.game.apply_move(from_ref, to_ref)
        except (MoveRejected, InvalidSquareReference) as e:
            self.last_error = str(e)
            raise
        except GameOver as e:
            if e.result is None:
                self.last_error = str(e)
                raise
            result = e.result
        self._record(result)
        return result

    def view_state(self) -> BoardViewState:
        board = self.game.board
        return BoardViewState(
            width=board.width,
            height=board.height,
            fen=board.to_fen(),
            side_to_move=board.side_to_move.value,
            pieces=tuple((p.symbol, p.square) for p in board.pieces),
            selected=self.selected,
            targets=self.targets,
            last_move=self.last_move,
            in_check=self.game.in_check(),
            status=self.game.status,
            history=tuple(self.history),
            last_error=self.last_error,
        )

    def _select(self, piece: Piece) -> ClickOutcome:
        self.selected = piece.square
        self.targets = frozenset(self.game.board.legal_targets(piece))
        return ClickOutcome(kind=OutcomeKind.SELECTION, square=self.selected, targets=self.targets)

    def _record(self, result: MoveResult) -> None:
        self.last_move = (result.from_sq, result.to_sq)
        self.last_error = None

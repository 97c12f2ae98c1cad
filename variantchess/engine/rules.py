from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from ..config import GameConfig
from .errors import Checkmate, IllegalDestination, Stalemate, WrongTurn
from .move import MoveContext
from .pieces import PieceKind, Side, pseudo_targets, relocate_after_capture, transforms_on_capture

if TYPE_CHECKING:
    from .board import Board


logger = logging.getLogger(__name__)


class Rule:
    """One composable step of the move pipeline.

    Each hook runs once per move, in the order the rules were configured,
    during the matching phase. Override only the phases a rule needs.
    """

    def on_game_start(self, board: "Board") -> None:
        """Called once after the board is set up."""

    def validate(self, board: "Board", ctx: MoveContext) -> None:
        """Raise a ``MoveRejected`` subclass to refuse the move."""

    def before_move(self, board: "Board", ctx: MoveContext) -> None:
        """Runs before the mover is relocated."""

    def after_move(self, board: "Board", ctx: MoveContext) -> None:
        """Runs after relocation: captures, rook hop, en passant and rights."""

    def after_turn(self, board: "Board", ctx: MoveContext) -> None:
        """Clock and turn bookkeeping, end conditions."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class LegalityRule(Rule):
    """Turn ownership, target membership and king safety."""

    def validate(self, board: "Board", ctx: MoveContext) -> None:
        piece = ctx.piece
        if piece.side is not board.side_to_move:
            raise WrongTurn(f"it is not {_side_name(piece.side)}'s turn")

        frm = board.square_name(ctx.from_sq)
        to = board.square_name(ctx.to_sq)
        if ctx.to_sq not in pseudo_targets(board, piece):
            raise IllegalDestination(f"destination {to} is not a legal target for {frm}")
        if board.would_leave_own_king_in_check(piece, ctx.from_sq, ctx.to_sq):
            raise IllegalDestination(f"illegal move {frm}-{to}: would leave own king in check")


class CaptureTransformRule(Rule):
    """Captured Bureaucrats change sides and reappear instead of leaving.

    Must sit before :class:`MovementRule` so it claims the capture first.
    """

    def after_move(self, board: "Board", ctx: MoveContext) -> None:
        captured = ctx.captured_piece
        if captured is None or ctx.capture_handled or not transforms_on_capture(captured):
            return
        relocate_after_capture(board, captured)
        ctx.capture_handled = True


class MovementRule(Rule):
    """Standard side effects: en passant, castling, captures, rights."""

    def before_move(self, board: "Board", ctx: MoveContext) -> None:
        if board.perform_en_passant(ctx):
            return
        board.prepare_castling(ctx)
        target = board.piece_at(ctx.to_sq)
        if target is not None:
            # Removal waits for after_move so capture-transform rules see it first
            ctx.is_capture = True
            ctx.captured_piece = target

    def after_move(self, board: "Board", ctx: MoveContext) -> None:
        if ctx.is_castling:
            board.handle_castling(ctx)
        board.resolve_capture(ctx)
        board.update_en_passant_target(ctx)
        board.update_castling_rights(ctx)


class EndConditionRule(Rule):
    """Signals checkmate or stalemate for the side that just got moved against."""

    def after_turn(self, board: "Board", ctx: MoveContext) -> None:
        mover = ctx.piece.side
        opponent = mover.opposite
        if not board.has_no_legal_moves(opponent):
            return
        if board.is_in_check(opponent):
            logger.info("checkmate: %s wins", _side_name(mover))
            raise Checkmate(f"Checkmate! {_side_name(mover)} wins.")
        logger.info("stalemate: %s has no legal moves", _side_name(opponent))
        raise Stalemate("Stalemate!")


def _advance_halfmove(board: "Board", ctx: MoveContext) -> None:
    if ctx.piece.kind is PieceKind.PAWN or ctx.is_capture:
        board.halfmove_clock = 0
    else:
        board.halfmove_clock += 1


class StandardTurnRule(Rule):
    """One move per turn."""

    def after_turn(self, board: "Board", ctx: MoveContext) -> None:
        _advance_halfmove(board, ctx)
        if board.side_to_move is Side.BLACK:
            board.fullmove_number += 1
        board.switch_side()


class MultipleMoveTurnRule(Rule):
    """Each side gets its own budget of moves before the turn passes.

    Attributes:
        white_moves (int): White's moves per turn (at least 1).
        black_moves (int): Black's moves per turn (at least 1).
        moves_left (int): Remaining budget of the side to move.
    """

    def __init__(self, white_moves: int, black_moves: int) -> None:
        self.white_moves = max(1, white_moves)
        self.black_moves = max(1, black_moves)
        self.moves_left = 0

    def budget_for(self, side: Side) -> int:
        return self.white_moves if side is Side.WHITE else self.black_moves

    def on_game_start(self, board: "Board") -> None:
        self.moves_left = self.budget_for(board.side_to_move)

    def after_turn(self, board: "Board", ctx: MoveContext) -> None:
        _advance_halfmove(board, ctx)
        active = board.side_to_move
        if self.moves_left <= 0:
            self.moves_left = self.budget_for(active)
        self.moves_left -= 1
        if self.moves_left > 0:
            return
        if active is Side.BLACK:
            board.fullmove_number += 1
        board.switch_side()
        self.moves_left = self.budget_for(board.side_to_move)

    def __repr__(self) -> str:
        return f"MultipleMoveTurnRule(white_moves={self.white_moves}, black_moves={self.black_moves})"


def build_rules(config: Optional[GameConfig]) -> List[Rule]:
    """Return the ordered rule list for ``config`` (standard chess for ``None``)."""
    cfg = config or GameConfig()
    rules: List[Rule] = [LegalityRule()]
    if cfg.bureaucrat_rule:
        rules.append(CaptureTransformRule())
    rules.append(MovementRule())
    rules.append(EndConditionRule())
    if cfg.multi_move:
        rules.append(MultipleMoveTurnRule(cfg.white_moves_per_turn, cfg.black_moves_per_turn))
    else:
        rules.append(StandardTurnRule())
    return rules


def _side_name(side: Side) -> str:
    return "white" if side is Side.WHITE else "black"

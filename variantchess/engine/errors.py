from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .move import MoveResult


class GameStatus(str, Enum):
    """Terminal state of a game (``ongoing`` until an end condition fires)."""

    ONGOING = "ongoing"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"


class ChessError(Exception):
    """Root of every error raised by the engine."""

    code = "chess_error"


class MalformedPosition(ChessError, ValueError):
    """Position text is structurally invalid (field count, ranks, counters)."""

    code = "malformed_position"


class InvalidDimensions(ChessError, ValueError):
    """Requested board size is below the supported minimum."""

    code = "invalid_dimensions"


class InvalidSquareReference(ChessError, ValueError):
    """Square notation is malformed or falls outside the board."""

    code = "invalid_square"


class MoveRejected(ChessError, ValueError):
    """A move failed validation; the board has not been touched."""

    code = "move_rejected"


class NoPieceAtSource(MoveRejected):
    code = "no_piece_at_source"


class WrongTurn(MoveRejected):
    code = "wrong_turn"


class IllegalDestination(MoveRejected):
    code = "illegal_destination"


class InvalidSpecialMove(MoveRejected):
    """En passant or castling invoked without the piece it needs."""

    code = "invalid_special_move"


class GameOver(ChessError):
    """Terminal signal raised after a move has been committed.

    Attributes:
        status (GameStatus): Which end condition fired.
        result (Optional[MoveResult]): The move that ended the game, attached
            by the board once the after-turn phase has completed.
    """

    code = "game_over"
    status = GameStatus.ONGOING

    def __init__(self, message: str, result: Optional["MoveResult"] = None) -> None:
        super().__init__(message)
        self.result = result


class Checkmate(GameOver):
    code = "checkmate"
    status = GameStatus.CHECKMATE


class Stalemate(GameOver):
    code = "stalemate"
    status = GameStatus.STALEMATE

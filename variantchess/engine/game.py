from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional

from ..config import GameConfig
from ..layout.builder import build_start_fen
from ..layout.presets import Preset, base_fen_for
from .board import Board, SquareRef
from .errors import Checkmate, GameOver, GameStatus, Stalemate
from .move import MoveResult
from .rules import build_rules


logger = logging.getLogger(__name__)


@dataclass
class Game:
    """Game wrapper around a board with helper operations.

    Responsibility: build the start position, apply moves, remember the
    history and the terminal status once reached.
    """

    board: Board
    config: GameConfig = field(default_factory=GameConfig)
    history: List[MoveResult] = field(default_factory=list)
    status: GameStatus = GameStatus.ONGOING

    @classmethod
    def new(
        cls,
        config: Optional[GameConfig] = None,
        preset: Optional[Preset] = None,
        rng: Optional[random.Random] = None,
    ) -> "Game":
        """Start a game from a preset and configuration.

        Args:
            config (Optional[GameConfig]): Variant toggles, size and layout.
                Defaults to the preset's own configuration.
            preset (Optional[Preset]): Supplies the base FEN unless
                ``config.fen_override`` is set. Defaults to standard chess.
            rng (Optional[random.Random]): Used for shuffled back ranks.

        Raises:
            MalformedPosition: If the base FEN cannot be decoded.
            InvalidDimensions: If the requested board size is too small.
        """
        if config is None:
            config = preset.config() if preset is not None else GameConfig()
        base_fen = base_fen_for(config, preset)
        start_fen = build_start_fen(base_fen, config, rng)
        game = cls._started(Board.from_fen(start_fen), config)
        logger.info(
            "new game %dx%d rules=%s fen=%s",
            game.board.width,
            game.board.height,
            game.board.rules,
            start_fen,
        )
        return game

    @classmethod
    def from_fen(cls, fen: str, config: Optional[GameConfig] = None) -> "Game":
        """Start a game from ``fen`` exactly as given (no resize or shuffle)."""
        game = cls._started(Board.from_fen(fen), config or GameConfig())
        logger.info("new game from fen=%s", fen)
        return game

    @classmethod
    def _started(cls, board: Board, config: GameConfig) -> "Game":
        board.rules = build_rules(config)
        board.start()
        return cls(board=board, config=config)

    def to_fen(self) -> str:
        return self.board.to_fen()

    @property
    def is_over(self) -> bool:
        return self.status is not GameStatus.ONGOING

    def apply_move(self, from_ref: SquareRef, to_ref: SquareRef) -> MoveResult:
        """Apply one move and record it.

        Raises:
            MoveRejected: If the move is refused; nothing is recorded.
            GameOver: If this move ended the game (the move is recorded),
                or the game had already ended (the board is not touched).
        """
        if self.status is GameStatus.CHECKMATE:
            raise Checkmate("game is already over: checkmate")
        if self.status is GameStatus.STALEMATE:
            raise Stalemate("game is already over: stalemate")
        try:
            result = self.board.apply(from_ref, to_ref)
        except GameOver as exc:
            if exc.result is not None:
                self.history.append(exc.result)
            self.status = exc.status
            raise
        self.history.append(result)
        return result

    # --- State flags for protocol ---
    def in_check(self) -> bool:
        return self.board.is_in_check(self.board.side_to_move)

    def checkmate(self) -> bool:
        side = self.board.side_to_move
        return self.board.has_no_legal_moves(side) and self.board.is_in_check(side)

    def stalemate(self) -> bool:
        side = self.board.side_to_move
        return self.board.has_no_legal_moves(side) and not self.board.is_in_check(side)

    def move_history(self) -> List[str]:
        return [
            f"{self.board.square_name(r.from_sq)}-{self.board.square_name(r.to_sq)}"
            for r in self.history
        ]

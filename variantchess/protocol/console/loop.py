from __future__ import annotations

import random
import sys
from typing import Callable, Iterable, List, Optional

from ..adapter import BoardController, ClickOutcome, OutcomeKind
from ...config import GameConfig
from ...engine.errors import ChessError, GameOver, GameStatus, InvalidSquareReference, MoveRejected
from ...engine.game import Game
from ...engine.move import MoveResult
from ...layout.presets import Preset


Writer = Callable[[str], None]


class ConsoleSession:
    """Line-oriented text driver around one game.

    Notes:
    - Engine stays silent; all output goes through the ``write`` callable.
    - Commands: new [fen <FEN>], show, fen, move <from> <to>,
      click <square>, targets <square>, quit.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        preset: Optional[Preset] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.preset = preset
        self.rng = rng
        self.controller = BoardController(Game.new(config=config, preset=preset, rng=rng))

    @property
    def game(self) -> Game:
        return self.controller.game

    # ---- Command handlers ----
    def cmd_new(self, args: List[str], write: Writer) -> None:
        # new [fen <FEN>]
        if args and args[0] == "fen":
            fen = " ".join(args[1:])
            try:
                game = Game.from_fen(fen, self.config)
            except ChessError as e:
                write(f"error: {e}")
                return
        else:
            game = Game.new(config=self.config, preset=self.preset, rng=self.rng)
        self.controller = BoardController(game)
        write(f"new game: {game.to_fen()}")

    def cmd_show(self, write: Writer) -> None:
        for line in str(self.game.board).splitlines():
            write(line)

    def cmd_fen(self, write: Writer) -> None:
        write(self.game.to_fen())

    def cmd_move(self, args: List[str], write: Writer) -> None:
        if len(args) != 2:
            write("usage: move <from> <to>")
            return
        try:
            result = self.controller.submit_move(args[0], args[1])
        except (MoveRejected, InvalidSquareReference, GameOver) as e:
            write(f"error: {e}")
            return
        self._write_result(result, write)

    def cmd_click(self, args: List[str], write: Writer) -> None:
        if len(args) != 1:
            write("usage: click <square>")
            return
        try:
            x, y = self.game.board.parse_square(args[0])
        except InvalidSquareReference as e:
            write(f"error: {e}")
            return
        self._write_outcome(self.controller.handle_click(x, y), write)

    def cmd_targets(self, args: List[str], write: Writer) -> None:
        if len(args) != 1:
            write("usage: targets <square>")
            return
        board = self.game.board
        try:
            piece = board.piece_at(board.parse_square(args[0]))
        except InvalidSquareReference as e:
            write(f"error: {e}")
            return
        if piece is None:
            write("error: no piece there")
            return
        write(self._names(board.legal_targets(piece)) or "none")

    def dispatch(self, line: str, write: Writer) -> bool:
        """Run one command line; return False once the session should end."""
        parts = line.split()
        if not parts:
            return True
        cmd, args = parts[0].lower(), parts[1:]

        if cmd == "quit":
            return False
        if cmd == "new":
            self.cmd_new(args, write)
        elif cmd == "show":
            self.cmd_show(write)
        elif cmd == "fen":
            self.cmd_fen(write)
        elif cmd == "move":
            self.cmd_move(args, write)
        elif cmd == "click":
            self.cmd_click(args, write)
        elif cmd == "targets":
            self.cmd_targets(args, write)
        else:
            write(f"unknown command: {cmd}")
        return True

    # ---- Output ----
    def _names(self, squares: Iterable) -> str:
        board = self.game.board
        return " ".join(sorted(board.square_name(sq) for sq in squares))

    def _write_result(self, result: MoveResult, write: Writer) -> None:
        board = self.game.board
        line = f"moved {board.square_name(result.from_sq)}-{board.square_name(result.to_sq)}"
        if result.captured is not None:
            line += f" captures {result.captured.symbol}"
        write(line)
        if result.status is not GameStatus.ONGOING:
            write(f"game over: {result.status.value}")

    def _write_outcome(self, outcome: ClickOutcome, write: Writer) -> None:
        board = self.game.board
        if outcome.kind is OutcomeKind.NOOP:
            write("noop")
        elif outcome.kind is OutcomeKind.SELECTION and outcome.square is not None:
            write(f"selected {board.square_name(outcome.square)}: {self._names(outcome.targets) or 'none'}")
        elif outcome.kind is OutcomeKind.MOVE_REJECTED:
            write(f"error: {outcome.reason}")
        elif outcome.from_sq is not None and outcome.to_sq is not None:
            self._write_result(
                MoveResult(outcome.from_sq, outcome.to_sq, captured=outcome.captured, status=outcome.status),
                write,
            )


def _default_writer(line: str) -> None:
    # Ensure newline termination and immediate flush
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def run_console(
    config: Optional[GameConfig] = None,
    preset: Optional[Preset] = None,
    rng: Optional[random.Random] = None,
    lines: Optional[Iterable[str]] = None,
    write: Writer = _default_writer,
) -> None:
    session = ConsoleSession(config=config, preset=preset, rng=rng)
    session.cmd_show(write)
    for raw in lines if lines is not None else sys.stdin:
        if not session.dispatch(raw.strip(), write):
            break

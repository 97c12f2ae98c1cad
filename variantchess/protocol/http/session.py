from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from ...engine.game import Game
from ..adapter import BoardController


class GameSlot:
    """Thread-safe holder for the single in-memory game.

    Responsibilities:
    - Replace the current game with a new one
    - Hand out the controller under a lock so moves never interleave
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._controller: Optional[BoardController] = None

    def start(self, game: Game) -> BoardController:
        controller = BoardController(game)
        with self._lock:
            self._controller = controller
        return controller

    @contextmanager
    def locked(self) -> Iterator[Optional[BoardController]]:
        """Yield the current controller (or ``None``) while holding the lock."""
        with self._lock:
            yield self._controller

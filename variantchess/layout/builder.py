from __future__ import annotations

import logging
import random
from typing import List, Optional

from ..config import GameConfig
from ..engine.errors import InvalidDimensions
from ..engine.notation import EMPTY, compress_placement, expand_placement, join_fen, split_fen
from ..engine.pieces import Side


logger = logging.getLogger(__name__)

MIN_WIDTH = 5
MIN_HEIGHT = 4

# Back-rank pieces for files added by a width resize, in insertion order;
# past the fourth file knights and bishops alternate.
FILL_SEQUENCE = ("N", "B", "R", "Q")

Grid = List[List[str]]


class StartLayout:
    """Transforms the placement field of a start position; other fields pass through."""

    def apply(self, base_fen: str, config: GameConfig, rng: random.Random) -> str:
        fields = split_fen(base_fen)
        placement = self.apply_to_placement(fields[0], config, rng)
        if placement != fields[0] and fields[3] != "-":
            # Coordinates moved under the en passant square
            fields[3] = "-"
        fields[0] = placement
        return join_fen(fields)

    def apply_to_placement(self, placement: str, config: GameConfig, rng: random.Random) -> str:
        raise NotImplementedError


class ResizeLayout(StartLayout):
    """Grow or shrink the board while keeping the existing material in place.

    - Width grows by adding files right, then left, alternately; it shrinks
      only when every file that would go is empty.
    - Height grows by inserting empty ranks at the middle; it shrinks only
      by dropping empty ranks, those nearest the middle first.
    - Shrinks that cannot be honoured leave that dimension unchanged.
    """

    def apply_to_placement(self, placement: str, config: GameConfig, rng: random.Random) -> str:
        check_dimensions(config)
        if not config.resizes:
            return placement
        grid = expand_placement(placement)
        width, height = len(grid[0]), len(grid)
        target_w = config.board_width or width
        target_h = config.board_height or height

        if target_w > width:
            grid = grow_width(grid, target_w, fill=config.fill_expanded_files)
        elif target_w < width:
            grid = shrink_width(grid, target_w)

        if target_h > height:
            grid = grow_height(grid, target_h)
        elif target_h < height:
            grid = shrink_height(grid, target_h)

        return compress_placement(grid)


class RandomizedLayout(ResizeLayout):
    """Resize, then replace both back ranks with a shuffled layout.

    Black's back rank copies white's file for file in lowercase.
    """

    def apply_to_placement(self, placement: str, config: GameConfig, rng: random.Random) -> str:
        grid = expand_placement(super().apply_to_placement(placement, config, rng))
        width = len(grid[0])
        white_rank = random_back_rank(width, rng)

        white_row = find_back_rank(grid, Side.WHITE)
        black_row = find_back_rank(grid, Side.BLACK)
        if white_row is None:
            white_row = len(grid) - 1
        if black_row is None:
            black_row = 0

        grid[white_row] = list(white_rank)
        grid[black_row] = [ch.lower() for ch in white_rank]
        return compress_placement(grid)


def build_start_fen(base_fen: str, config: Optional[GameConfig], rng: Optional[random.Random] = None) -> str:
    """Compute a game's starting position from a base FEN and its config.

    Args:
        base_fen (str): Preset or override position.
        config (Optional[GameConfig]): Requested size and layout; ``None``
            returns ``base_fen`` unchanged.
        rng (Optional[random.Random]): Source of randomness for shuffled
            back ranks; a fresh ``random.Random()`` when omitted.

    Returns:
        str: Six-field position string.

    Raises:
        InvalidDimensions: If a requested width is below 5 or height below 4,
            or a shuffled layout is asked for on a board narrower than 5.
        MalformedPosition: If ``base_fen`` cannot be split or expanded.
    """
    if config is None:
        return base_fen
    layout: StartLayout = RandomizedLayout() if config.randomized_layout else ResizeLayout()
    logger.debug("base FEN: %s", base_fen)
    final = layout.apply(base_fen, config, rng or random.Random())
    logger.debug("final FEN: %s", final)
    return final


def check_dimensions(config: GameConfig) -> None:
    if config.board_width and config.board_width < MIN_WIDTH:
        raise InvalidDimensions(f"board width must be at least {MIN_WIDTH}, got {config.board_width}")
    if config.board_height and config.board_height < MIN_HEIGHT:
        raise InvalidDimensions(f"board height must be at least {MIN_HEIGHT}, got {config.board_height}")


# ---- Rank lookup ----


def _owns(ch: str, side: Side) -> bool:
    if ch == EMPTY:
        return False
    return ch.isupper() if side is Side.WHITE else ch.islower()


def _rows_from_edge(grid: Grid, side: Side) -> List[int]:
    rows = list(range(len(grid)))
    return rows[::-1] if side is Side.WHITE else rows


def find_back_rank(grid: Grid, side: Side) -> Optional[int]:
    """First row, from ``side``'s edge, holding a non-pawn piece of ``side``."""
    for y in _rows_from_edge(grid, side):
        if any(_owns(ch, side) and ch.lower() != "p" for ch in grid[y]):
            return y
    return None


def find_pawn_rank(grid: Grid, side: Side) -> Optional[int]:
    for y in _rows_from_edge(grid, side):
        if any(_owns(ch, side) and ch.lower() == "p" for ch in grid[y]):
            return y
    return None


# ---- Width ----


def fill_piece(index: int) -> str:
    """Back-rank letter for the ``index``-th file added (0-based)."""
    if index < len(FILL_SEQUENCE):
        return FILL_SEQUENCE[index]
    return "N" if (index - len(FILL_SEQUENCE)) % 2 == 0 else "B"


def grow_width(grid: Grid, target: int, fill: bool = False) -> Grid:
    height = len(grid)
    rows = [list(r) for r in grid]
    # Locate rows before inserting anything; insertion never shifts rows
    pawn_rows = {side: find_pawn_rank(grid, side) for side in Side}
    back_rows = {side: find_back_rank(grid, side) for side in Side}

    for i in range(target - len(grid[0])):
        column = [EMPTY] * height
        if fill:
            letter = fill_piece(i)
            for side in Side:
                pawn_row, back_row = pawn_rows[side], back_rows[side]
                if pawn_row is not None:
                    column[pawn_row] = "P" if side is Side.WHITE else "p"
                if back_row is not None and back_row != pawn_row:
                    column[back_row] = letter if side is Side.WHITE else letter.lower()
        for y in range(height):
            if i % 2 == 0:
                rows[y].append(column[y])
            else:
                rows[y].insert(0, column[y])
    return rows


def shrink_width(grid: Grid, target: int) -> Grid:
    width = len(grid[0])
    keep = list(range(width))
    drop: List[int] = []
    for i in range(width - target):
        drop.append(keep.pop() if i % 2 == 0 else keep.pop(0))
    if any(row[x] != EMPTY for row in grid for x in drop):
        logger.warning("cannot shrink width %d -> %d: files to remove are occupied", width, target)
        return grid
    return [[row[x] for x in keep] for row in grid]


# ---- Height ----


def grow_height(grid: Grid, target: int) -> Grid:
    rows = [list(r) for r in grid]
    width = len(rows[0])
    mid = len(rows) // 2
    for _ in range(target - len(rows)):
        rows.insert(mid, [EMPTY] * width)
    return rows


def shrink_height(grid: Grid, target: int) -> Grid:
    rows = [list(r) for r in grid]
    needed = len(rows) - target
    empty = [y for y, row in enumerate(rows) if all(ch == EMPTY for ch in row)]
    if len(empty) < needed:
        logger.warning(
            "cannot shrink height %d -> %d: only %d empty ranks", len(rows), target, len(empty)
        )
        return rows
    centre = (len(rows) - 1) / 2
    doomed = sorted(empty, key=lambda y: (abs(y - centre), y))[:needed]
    return [row for y, row in enumerate(rows) if y not in doomed]


# ---- Shuffled back rank ----


def random_back_rank(width: int, rng: random.Random) -> List[str]:
    """Generate white's back rank for a shuffled start.

    Bishops land on one even and one odd file, the king sits between the
    two rooks, one queen takes a leftover file if any, knights fill the rest.

    Raises:
        InvalidDimensions: If ``width`` is below 5.
    """
    if width < MIN_WIDTH:
        raise InvalidDimensions(f"shuffled layout needs width >= {MIN_WIDTH}, got {width}")
    rank = [""] * width
    rank[rng.choice(range(0, width, 2))] = "B"
    rank[rng.choice(range(1, width, 2))] = "B"

    free = [x for x in range(width) if not rank[x]]
    left_rook, king, right_rook = sorted(rng.sample(free, 3))
    rank[left_rook] = "R"
    rank[king] = "K"
    rank[right_rook] = "R"

    free = [x for x in range(width) if not rank[x]]
    if free:
        rank[rng.choice(free)] = "Q"
    return [ch or "N" for ch in rank]

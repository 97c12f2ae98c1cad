from __future__ import annotations

import logging
import random

import pytest

from variantchess.config import GameConfig
from variantchess.engine.board import Board
from variantchess.engine.errors import InvalidDimensions, MalformedPosition
from variantchess.engine.notation import expand_placement
from variantchess.layout.builder import (
    build_start_fen,
    fill_piece,
    random_back_rank,
    shrink_height,
    shrink_width,
)
from variantchess.layout.presets import STANDARD_FEN


def grid_of(fen: str):
    return expand_placement(fen.split()[0])


def test_no_config_returns_base() -> None:
    assert build_start_fen(STANDARD_FEN, None) == STANDARD_FEN


def test_zero_dimensions_mean_no_change() -> None:
    assert build_start_fen(STANDARD_FEN, GameConfig(board_width=0, board_height=0)) == STANDARD_FEN
    assert build_start_fen(STANDARD_FEN, GameConfig(board_width=8, board_height=8)) == STANDARD_FEN


@pytest.mark.parametrize("width,height", [(4, 0), (0, 3), (1, 8), (8, 2)])
def test_too_small_dimensions_rejected(width: int, height: int) -> None:
    with pytest.raises(InvalidDimensions):
        build_start_fen(STANDARD_FEN, GameConfig(board_width=width, board_height=height))


def test_minimum_dimensions_accepted() -> None:
    fen = "k4/5/5/4K w - - 0 1"
    assert build_start_fen(fen, GameConfig(board_width=5, board_height=4)) == fen


def test_malformed_base_rejected() -> None:
    with pytest.raises(MalformedPosition):
        build_start_fen("8/8 w - -", GameConfig(board_width=10))


def test_width_ten_with_fill_preserves_original_files() -> None:
    fen = build_start_fen(STANDARD_FEN, GameConfig(board_width=10, fill_expanded_files=True))
    grid = grid_of(fen)
    original = grid_of(STANDARD_FEN)
    assert all(len(row) == 10 for row in grid)
    # One file added on the right, then one on the left
    for row, orig in zip(grid, original):
        assert row[1:9] == orig
    # Each pawn rank gains exactly two pawns
    assert grid[1].count("p") == 10
    assert grid[6].count("P") == 10
    # First added file (right) gets a knight, second (left) a bishop
    assert (grid[7][9], grid[7][0]) == ("N", "B")
    assert (grid[0][9], grid[0][0]) == ("n", "b")
    assert fen.split()[1:] == STANDARD_FEN.split()[1:]


def test_width_growth_without_fill_adds_empty_files() -> None:
    fen = build_start_fen(STANDARD_FEN, GameConfig(board_width=11))
    grid = grid_of(fen)
    assert all(len(row) == 11 for row in grid)
    # Right, left, right
    for row, orig in zip(grid, grid_of(STANDARD_FEN)):
        assert row[1:9] == orig
        assert row[0] == row[9] == row[10] == "."


def test_fill_sequence() -> None:
    assert [fill_piece(i) for i in range(8)] == ["N", "B", "R", "Q", "N", "B", "N", "B"]


def test_wide_fill_board_is_playable() -> None:
    fen = build_start_fen(STANDARD_FEN, GameConfig(board_width=12, fill_expanded_files=True))
    b = Board.from_fen(fen)
    assert b.width == 12
    assert len(b.pieces) == 32 + 4 * 4


def test_height_growth_inserts_empty_ranks_in_the_middle() -> None:
    fen = build_start_fen(STANDARD_FEN, GameConfig(board_height=10))
    assert fen.split()[0] == "rnbqkbnr/pppppppp/8/8/8/8/8/8/PPPPPPPP/RNBQKBNR"


def test_height_shrink_removes_empty_ranks() -> None:
    fen = build_start_fen(STANDARD_FEN, GameConfig(board_height=6))
    assert fen.split()[0] == "rnbqkbnr/pppppppp/8/8/PPPPPPPP/RNBQKBNR"


def test_height_shrink_prefers_middle_ranks() -> None:
    grid = grid_of("k7/8/8/8/8/8/8/7K w - - 0 1")
    rows = shrink_height(grid, 6)
    # Rows 3 and 4 are closest to the middle
    assert len(rows) == 6
    assert rows[0][0] == "k" and rows[-1][-1] == "K"


def test_height_shrink_fails_soft(caplog: pytest.LogCaptureFixture) -> None:
    # Only three empty ranks: shrinking to four would need four
    base = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR w KQkq - 0 1"
    with caplog.at_level(logging.WARNING):
        fen = build_start_fen(base, GameConfig(board_height=4))
    assert fen == base
    assert "cannot shrink height" in caplog.text


def test_height_shrink_to_minimum() -> None:
    fen = build_start_fen(STANDARD_FEN, GameConfig(board_height=4))
    assert fen.split()[0] == "rnbqkbnr/pppppppp/PPPPPPPP/RNBQKBNR"


def test_width_shrink_needs_empty_files(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        fen = build_start_fen(STANDARD_FEN, GameConfig(board_width=6))
    assert fen == STANDARD_FEN
    assert "cannot shrink width" in caplog.text


def test_width_shrink_drops_empty_edge_files() -> None:
    grid = grid_of("1k6/8/8/8/8/8/8/1K6 w - - 0 1")
    # Right, left, right: h, a, g
    rows = shrink_width(grid, 5)
    assert [len(r) for r in rows] == [5] * 8
    assert rows[0] == ["k", ".", ".", ".", "."]


def test_resize_clears_ep_square() -> None:
    fen = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"
    out = build_start_fen(fen, GameConfig(board_width=9))
    assert out.split()[3] == "-"


def test_width_then_height() -> None:
    fen = build_start_fen(STANDARD_FEN, GameConfig(board_width=9, board_height=9))
    b = Board.from_fen(fen)
    assert (b.width, b.height) == (9, 9)


# ---- Randomized layout ----


@pytest.mark.parametrize("width", [5, 6, 8, 9, 12])
@pytest.mark.parametrize("seed", range(10))
def test_random_back_rank_constraints(width: int, seed: int) -> None:
    rank = random_back_rank(width, random.Random(seed))
    assert len(rank) == width
    bishops = [x for x, ch in enumerate(rank) if ch == "B"]
    assert len(bishops) == 2
    assert bishops[0] % 2 != bishops[1] % 2
    rooks = [x for x, ch in enumerate(rank) if ch == "R"]
    king = rank.index("K")
    assert len(rooks) == 2 and rooks[0] < king < rooks[1]
    assert rank.count("Q") == (1 if width > 5 else 0)
    assert rank.count("N") == width - 5 - rank.count("Q")


def test_random_back_rank_rejects_narrow_board() -> None:
    with pytest.raises(InvalidDimensions):
        random_back_rank(4, random.Random(0))


def test_randomized_layout_mirrors_black() -> None:
    fen = build_start_fen(STANDARD_FEN, GameConfig(randomized_layout=True), random.Random(3))
    grid = grid_of(fen)
    assert [ch.lower() for ch in grid[7]] == grid[0]
    assert all(ch.isupper() for ch in grid[7])
    assert grid[1] == list("pppppppp") and grid[6] == list("PPPPPPPP")
    Board.from_fen(fen)


def test_randomized_layout_after_resize() -> None:
    cfg = GameConfig(randomized_layout=True, board_width=10, fill_expanded_files=True)
    fen = build_start_fen(STANDARD_FEN, cfg, random.Random(11))
    grid = grid_of(fen)
    assert len(grid[7]) == 10
    assert sorted(grid[7]) == sorted("BBKNNNNQRR")
    assert [ch.lower() for ch in grid[7]] == grid[0]

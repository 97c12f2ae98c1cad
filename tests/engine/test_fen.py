from __future__ import annotations

import pytest

from variantchess.engine.board import STARTPOS_FEN, Board
from variantchess.engine.errors import MalformedPosition
from variantchess.engine.pieces import PieceKind, Side


def test_startpos_round_trip() -> None:
    b = Board.from_fen(STARTPOS_FEN)
    assert b.to_fen() == STARTPOS_FEN
    assert (b.width, b.height) == (8, 8)
    assert len(b.pieces) == 32


@pytest.mark.parametrize(
    "fen",
    [
        # Mixed pieces and empty squares, some castling rights
        "r1bqkbnr/pppp1ppp/2n5/4p3/3P4/5N2/PPP1PPPP/RNBQKB1R b KQ - 2 3",
        # No castling rights, ep target present
        "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b - e3 0 1",
        # All castling rights
        "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1",
        # Ten files: multi-digit empty runs
        "r8k/10/10/10/10/10/10/K9 w - - 3 7",
        # Bureaucrats
        "rnbqkbnr/pppppppp/3c4/8/8/4C3/PPPPPPPP/RNBQKBNR w KQkq - 0 1",
        # Seven ranks, five files
        "k4/5/5/5/5/5/4K w - - 0 1",
    ],
)
def test_round_trip_various_positions(fen: str) -> None:
    b = Board.from_fen(fen)
    assert b.to_fen() == fen
    assert Board.from_fen(b.to_fen()).to_fen() == fen


@pytest.mark.parametrize(
    "fen",
    [
        "",  # empty
        "8/8/8/8/8/8/8/8 w - - 0",  # missing fields
        "8/8/8/8/8/8/8/8 w - - 0 1 extra",  # too many fields
        "8/8/8/8/8/8/8/8 x - - 0 1",  # bad side to move
        "8/8/8/8/8/8/8/8 w A - 0 1",  # bad castling
        "8/8/8/8/8/8/8/8 w - z9 0 1",  # bad ep square
        "8/8/8/8/8/8/8/8 w - - -1 1",  # bad halfmove
        "8/8/8/8/8/8/8/8 w - - 0 0",  # bad fullmove
        "8/8/8/8/8/8/8/8 w - - x 1",  # non-numeric halfmove
        "9/8/8/8/8/8/8/8 w - - 0 1",  # ragged ranks
        "8/8/8/8/8/8/8/7X w - - 0 1",  # unknown piece letter
        "kk6/8/8/8/8/8/8/8 w - - 0 1",  # two black kings
    ],
)
def test_invalid_fens_raise(fen: str) -> None:
    with pytest.raises(MalformedPosition):
        Board.from_fen(fen)


def test_malformed_position_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        Board.from_fen("not a fen")


def test_coordinates_origin_top_left() -> None:
    b = Board.startpos()
    white_king = b.king_of(Side.WHITE)
    black_king = b.king_of(Side.BLACK)
    assert white_king is not None and black_king is not None
    assert white_king.square == (4, 7)
    assert black_king.square == (4, 0)
    assert b.square_name(white_king.square) == "e1"
    assert b.parse_square("e8") == (4, 0)


def test_castling_letters_live_on_kings() -> None:
    b = Board.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w Kq - 0 1")
    wk = b.king_of(Side.WHITE)
    bk = b.king_of(Side.BLACK)
    assert wk is not None and bk is not None
    assert (wk.castle_kingside, wk.castle_queenside) == (True, False)
    assert (bk.castle_kingside, bk.castle_queenside) == (False, True)
    assert b.castling_string() == "Kq"


def test_castling_letters_without_king_are_dropped() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/8/R6R w KQkq - 0 1")
    assert b.king_of(Side.WHITE) is None
    assert b.to_fen() == "4k3/8/8/8/8/8/8/R6R w kq - 0 1"


def test_ep_square_decoded_as_coordinates() -> None:
    b = Board.from_fen("rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1")
    assert b.ep_square == (4, 5)
    assert Board.startpos().ep_square is None


def test_piece_handles_are_unique() -> None:
    b = Board.startpos()
    handles = [p.handle for p in b.pieces]
    assert len(set(handles)) == len(handles)
    assert all(h >= 0 for h in handles)


def test_bureaucrat_letter_decodes() -> None:
    b = Board.from_fen("4k3/8/3c4/8/8/4C3/8/4K3 w - - 0 1")
    kinds = sorted(p.symbol for p in b.pieces if p.kind is PieceKind.BUREAUCRAT)
    assert kinds == ["C", "c"]


def test_str_renders_board_and_state() -> None:
    text = str(Board.startpos())
    lines = text.splitlines()
    assert lines[0] == "8 | r n b q k b n r"
    assert lines[7] == "1 | R N B Q K B N R"
    assert lines[8].strip() == "a b c d e f g h"
    assert "Active: white" in text
    assert "Castling: KQkq" in text
    assert "En Passant: -" in text
    assert "Halfmove: 0" in text
    assert "Fullmove: 1" in text

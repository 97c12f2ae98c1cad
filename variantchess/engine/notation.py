"""Low-level helpers for the six-field position text.

These work on strings only and know nothing about pieces or rules, so the
start-position builder can reuse them without building a board.
"""

from __future__ import annotations

from typing import List, Sequence

from .errors import MalformedPosition

EMPTY = "."
FEN_FIELDS = 6


def split_fen(fen: str) -> List[str]:
    """Split a position string into its six whitespace-separated fields.

    Raises:
        MalformedPosition: If ``fen`` is not a string of exactly six fields.
    """
    if not fen or not isinstance(fen, str):
        raise MalformedPosition("FEN must be a non-empty string")
    parts = fen.split()
    if len(parts) != FEN_FIELDS:
        raise MalformedPosition(f"FEN must have {FEN_FIELDS} fields, got {len(parts)}")
    return parts


def join_fen(fields: Sequence[str]) -> str:
    if len(fields) != FEN_FIELDS:
        raise MalformedPosition(f"expected exactly {FEN_FIELDS} fields, got {len(fields)}")
    return " ".join(fields)


def expand_rank(rank: str) -> List[str]:
    """Expand one rank (``"3p3"``) into one character per square.

    Empty squares become ``"."``. Multi-digit runs (``"10"``) are supported
    for boards wider than nine files.
    """
    out: List[str] = []
    run = ""
    for ch in rank:
        if ch.isdigit():
            run += ch
            continue
        if run:
            out.extend(EMPTY * int(run))
            run = ""
        out.append(ch)
    if run:
        out.extend(EMPTY * int(run))
    return out


def compress_rank(squares: Sequence[str]) -> str:
    """Inverse of :func:`expand_rank`: collapse empty runs into counts."""
    parts: List[str] = []
    run = 0
    for ch in squares:
        if ch == EMPTY:
            run += 1
            continue
        if run:
            parts.append(str(run))
            run = 0
        parts.append(ch)
    if run:
        parts.append(str(run))
    return "".join(parts)


def expand_placement(placement: str) -> List[List[str]]:
    """Expand the placement field into a grid of rows, top rank first.

    Raises:
        MalformedPosition: If the rows are empty or of differing widths.
    """
    rows = [expand_rank(r) for r in placement.split("/")]
    if not rows or not rows[0]:
        raise MalformedPosition("FEN placement has no squares")
    width = len(rows[0])
    for idx, row in enumerate(rows):
        if len(row) != width:
            raise MalformedPosition(f"rank {len(rows) - idx} has {len(row)} squares, expected {width}")
    return rows


def compress_placement(grid: Sequence[Sequence[str]]) -> str:
    return "/".join(compress_rank(row) for row in grid)

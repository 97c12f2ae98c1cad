from __future__ import annotations

from .builder import MIN_HEIGHT, MIN_WIDTH, RandomizedLayout, ResizeLayout, build_start_fen, random_back_rank
from .presets import BUREAUCRAT_FEN, DEFAULT_PRESET, PRESETS, STANDARD_FEN, Preset, base_fen_for, get_preset

__all__ = [
    "MIN_HEIGHT",
    "MIN_WIDTH",
    "RandomizedLayout",
    "ResizeLayout",
    "build_start_fen",
    "random_back_rank",
    "BUREAUCRAT_FEN",
    "DEFAULT_PRESET",
    "PRESETS",
    "STANDARD_FEN",
    "Preset",
    "base_fen_for",
    "get_preset",
]

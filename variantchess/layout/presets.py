from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..config import GameConfig


STANDARD_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
BUREAUCRAT_FEN = "rnbqkbnr/pppppppp/3c4/8/8/4C3/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


@dataclass(frozen=True)
class Preset:
    """A named starting point: default FEN plus default variant toggles."""

    name: str
    fen: str
    bureaucrat_rule: bool = False
    white_moves_per_turn: int = 1
    black_moves_per_turn: int = 1

    def config(self, **overrides) -> GameConfig:
        """Build a ``GameConfig`` from this preset's toggles, updated by ``overrides``."""
        values = {
            "bureaucrat_rule": self.bureaucrat_rule,
            "white_moves_per_turn": self.white_moves_per_turn,
            "black_moves_per_turn": self.black_moves_per_turn,
        }
        values.update(overrides)
        return GameConfig(**values)


PRESETS: Tuple[Preset, ...] = (
    Preset("Standard", STANDARD_FEN),
    Preset("Double move x2", STANDARD_FEN, white_moves_per_turn=2, black_moves_per_turn=2),
    Preset("Bureaucrat", BUREAUCRAT_FEN, bureaucrat_rule=True),
    Preset(
        "Bureaucrat + DM x2",
        BUREAUCRAT_FEN,
        bureaucrat_rule=True,
        white_moves_per_turn=2,
        black_moves_per_turn=2,
    ),
)

DEFAULT_PRESET = PRESETS[0]


def get_preset(name: Optional[str]) -> Preset:
    """Look a preset up by name, ignoring case; ``None`` gives the default.

    Raises:
        ValueError: If no preset has that name.
    """
    if name is None:
        return DEFAULT_PRESET
    wanted = name.strip().lower()
    for preset in PRESETS:
        if preset.name.lower() == wanted:
            return preset
    known = ", ".join(p.name for p in PRESETS)
    raise ValueError(f"unknown preset {name!r} (known: {known})")


def base_fen_for(config: GameConfig, preset: Optional[Preset] = None) -> str:
    """The override FEN when the config has one, else the preset's default."""
    if config.fen_override:
        return config.fen_override
    return (preset or DEFAULT_PRESET).fen

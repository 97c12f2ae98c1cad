from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GameConfig(BaseModel):
    """Immutable description of one game's setup and variant rules.

    ``board_width`` / ``board_height`` of 0 mean "use whatever the FEN
    implies". Values below the builder's minimums are passed through so the
    builder can reject them.
    """

    model_config = ConfigDict(frozen=True)

    fen_override: Optional[str] = Field(default=None, description="FEN replacing the preset's")
    bureaucrat_rule: bool = Field(default=False, description="Enable capture-transform pieces")
    white_moves_per_turn: int = Field(default=1, description="Moves white makes per turn")
    black_moves_per_turn: int = Field(default=1, description="Moves black makes per turn")
    board_width: int = Field(default=0, description="Requested width, 0 = from FEN")
    board_height: int = Field(default=0, description="Requested height, 0 = from FEN")
    fill_expanded_files: bool = Field(default=False, description="Populate files added by a resize")
    randomized_layout: bool = Field(default=False, description="Shuffle back ranks")

    @field_validator("fen_override")
    @classmethod
    def _blank_fen_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("white_moves_per_turn", "black_moves_per_turn")
    @classmethod
    def _at_least_one_move(cls, v: int) -> int:
        return max(1, v)

    @field_validator("board_width", "board_height")
    @classmethod
    def _non_negative_dimension(cls, v: int) -> int:
        return max(0, v)

    @property
    def multi_move(self) -> bool:
        return self.white_moves_per_turn > 1 or self.black_moves_per_turn > 1

    @property
    def resizes(self) -> bool:
        return self.board_width > 0 or self.board_height > 0

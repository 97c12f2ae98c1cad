from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from .error import (
    chess_error_handler,
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from .session import GameSlot
from ..adapter import BoardController, ClickOutcome
from ...engine.errors import ChessError
from ...engine.game import Game
from ...engine.move import Square
from ...layout.presets import get_preset


logger = logging.getLogger(__name__)


class NewGameRequest(BaseModel):
    preset: Optional[str] = Field(default=None, description="Preset name, e.g. 'Bureaucrat'")
    fen: Optional[str] = Field(default=None, description="FEN replacing the preset's")
    bureaucrat_rule: Optional[bool] = None
    white_moves_per_turn: Optional[int] = None
    black_moves_per_turn: Optional[int] = None
    board_width: Optional[int] = None
    board_height: Optional[int] = None
    fill_expanded_files: bool = False
    randomized_layout: bool = False
    seed: Optional[int] = Field(default=None, description="Seed for shuffled back ranks")


class ClickRequest(BaseModel):
    x: int = Field(..., description="File index from the left edge")
    y: int = Field(..., description="Row index from the top edge")


class MoveRequest(BaseModel):
    from_square: str = Field(..., description="Algebraic origin, e.g. e2")
    to_square: str = Field(..., description="Algebraic destination, e.g. e4")


class GameState(BaseModel):
    fen: str
    width: int
    height: int
    side_to_move: str
    status: str
    in_check: bool
    selected: Optional[str]
    targets: List[str]
    last_move: Optional[str]
    move_history: List[str]
    last_error: Optional[str]


class ClickResponse(BaseModel):
    outcome: str
    square: Optional[str] = None
    targets: List[str] = Field(default_factory=list)
    from_square: Optional[str] = None
    to_square: Optional[str] = None
    captured: Optional[str] = None
    captured_handle: Optional[int] = None
    status: str
    reason: Optional[str] = None
    state: GameState


def create_app() -> FastAPI:
    app = FastAPI(title="Variant Chess API", version="0.1.0")

    # Basic logging setup
    logging.basicConfig(level=logging.INFO)

    # Middleware & error handling
    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(ChessError, chess_error_handler)
    app.add_exception_handler(Exception, exception_handler)

    # One game at a time, in memory
    slot = GameSlot()
    app.state.slot = slot

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/game", response_model=GameState)
    async def new_game(req: NewGameRequest) -> GameState:
        try:
            preset = get_preset(req.preset)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        overrides = {
            "fen_override": req.fen,
            "bureaucrat_rule": req.bureaucrat_rule,
            "white_moves_per_turn": req.white_moves_per_turn,
            "black_moves_per_turn": req.black_moves_per_turn,
            "board_width": req.board_width,
            "board_height": req.board_height,
            "fill_expanded_files": req.fill_expanded_files,
            "randomized_layout": req.randomized_layout,
        }
        config = preset.config(**{k: v for k, v in overrides.items() if v is not None})
        rng = random.Random(req.seed) if req.seed is not None else None
        controller = slot.start(Game.new(config=config, preset=preset, rng=rng))
        logger.info("game started from preset %s", preset.name)
        return _state(controller)

    @app.get("/api/game/state", response_model=GameState)
    async def get_state() -> GameState:
        with slot.locked() as controller:
            return _state(_require(controller))

    @app.post("/api/game/click", response_model=ClickResponse)
    async def click(req: ClickRequest) -> ClickResponse:
        with slot.locked() as controller:
            controller = _require(controller)
            outcome = controller.handle_click(req.x, req.y)
            return _click_response(controller, outcome)

    @app.post("/api/game/move", response_model=GameState)
    async def move(req: MoveRequest) -> GameState:
        with slot.locked() as controller:
            controller = _require(controller)
            controller.submit_move(req.from_square, req.to_square)
            return _state(controller)

    return app


def _require(controller: Optional[BoardController]) -> BoardController:
    if controller is None:
        raise HTTPException(status_code=404, detail="no game in progress")
    return controller


def _name(controller: BoardController, sq: Optional[Square]) -> Optional[str]:
    if sq is None:
        return None
    return controller.game.board.square_name(sq)


def _state(controller: BoardController) -> GameState:
    view = controller.view_state()
    history = list(view.history)
    return GameState(
        fen=view.fen,
        width=view.width,
        height=view.height,
        side_to_move=view.side_to_move,
        status=view.status.value,
        in_check=view.in_check,
        selected=_name(controller, view.selected),
        targets=sorted(controller.game.board.square_name(sq) for sq in view.targets),
        last_move=history[-1] if history else None,
        move_history=history,
        last_error=view.last_error,
    )


def _click_response(controller: BoardController, outcome: ClickOutcome) -> ClickResponse:
    board = controller.game.board
    return ClickResponse(
        outcome=outcome.kind.value,
        square=_name(controller, outcome.square),
        targets=sorted(board.square_name(sq) for sq in outcome.targets),
        from_square=_name(controller, outcome.from_sq),
        to_square=_name(controller, outcome.to_sq),
        captured=outcome.captured.symbol if outcome.captured is not None else None,
        captured_handle=outcome.captured.handle if outcome.captured is not None else None,
        status=outcome.status.value,
        reason=outcome.reason,
        state=_state(controller),
    )


# Default app for non-factory servers
app = create_app()

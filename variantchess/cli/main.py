from __future__ import annotations

import argparse
import logging
import random
from typing import List, Optional

import uvicorn

from ..config import GameConfig
from ..engine.errors import ChessError
from ..layout.builder import build_start_fen
from ..layout.presets import PRESETS, Preset, base_fen_for, get_preset
from ..protocol.console.loop import run_console


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="variantchess", description="Variant-capable chess rules engine")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    for name, help_text in (("console", "play in the terminal"), ("startfen", "print the computed start FEN")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--preset", choices=[p.name for p in PRESETS], default=None)
        cmd.add_argument("--fen", default=None, help="FEN replacing the preset's")
        cmd.add_argument("--bureaucrat", action="store_true", default=None, help="enable the Bureaucrat rule")
        cmd.add_argument("--white-moves", type=int, default=None)
        cmd.add_argument("--black-moves", type=int, default=None)
        cmd.add_argument("--width", type=int, default=0, help="board width, 0 keeps the FEN's")
        cmd.add_argument("--height", type=int, default=0, help="board height, 0 keeps the FEN's")
        cmd.add_argument("--fill-files", action="store_true", help="populate files added by a resize")
        cmd.add_argument("--randomize", action="store_true", help="shuffle the back ranks")
        cmd.add_argument("--seed", type=int, default=None)
        cmd.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> tuple[Preset, GameConfig]:
    preset = get_preset(args.preset)
    overrides = {
        "fen_override": args.fen,
        "bureaucrat_rule": args.bureaucrat,
        "white_moves_per_turn": args.white_moves,
        "black_moves_per_turn": args.black_moves,
        "board_width": args.width,
        "board_height": args.height,
        "fill_expanded_files": args.fill_files,
        "randomized_layout": args.randomize,
    }
    return preset, preset.config(**{k: v for k, v in overrides.items() if v is not None})


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        uvicorn.run(
            "variantchess.protocol.http.app:create_app", factory=True, host=args.host, port=args.port
        )
        return 0

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    preset, config = config_from_args(args)
    rng = random.Random(args.seed) if args.seed is not None else None
    try:
        if args.command == "startfen":
            print(build_start_fen(base_fen_for(config, preset), config, rng))
        else:
            run_console(config=config, preset=preset, rng=rng)
    except ChessError as e:
        print(f"error: {e}")
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

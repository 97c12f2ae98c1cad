from __future__ import annotations

import pytest

from variantchess.cli.main import build_parser, config_from_args, main


def test_startfen_default(capsys: pytest.CaptureFixture) -> None:
    assert main(["startfen"]) == 0
    assert capsys.readouterr().out.strip() == "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


def test_startfen_bureaucrat_preset_resized(capsys: pytest.CaptureFixture) -> None:
    assert main(["startfen", "--preset", "Bureaucrat", "--height", "10"]) == 0
    out = capsys.readouterr().out.strip()
    assert out.split()[0].count("/") == 9
    assert "c" in out.split()[0] and "C" in out.split()[0]


def test_startfen_too_small_reports_error(capsys: pytest.CaptureFixture) -> None:
    assert main(["startfen", "--width", "4"]) == 2
    assert capsys.readouterr().out.startswith("error:")


def test_startfen_seeded_randomize_is_stable(capsys: pytest.CaptureFixture) -> None:
    main(["startfen", "--randomize", "--seed", "9"])
    first = capsys.readouterr().out
    main(["startfen", "--randomize", "--seed", "9"])
    assert capsys.readouterr().out == first


def test_config_flags() -> None:
    args = build_parser().parse_args(
        ["console", "--bureaucrat", "--white-moves", "3", "--width", "10", "--fill-files"]
    )
    preset, cfg = config_from_args(args)
    assert preset.name == "Standard"
    assert cfg.bureaucrat_rule
    assert cfg.white_moves_per_turn == 3 and cfg.black_moves_per_turn == 1
    assert cfg.board_width == 10 and cfg.fill_expanded_files


def test_preset_defaults_survive_missing_flags() -> None:
    args = build_parser().parse_args(["console", "--preset", "Bureaucrat + DM x2"])
    _, cfg = config_from_args(args)
    assert cfg.bureaucrat_rule
    assert cfg.white_moves_per_turn == 2

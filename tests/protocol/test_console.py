from __future__ import annotations

from typing import List

from variantchess.config import GameConfig
from variantchess.protocol.console.loop import ConsoleSession, run_console


def capture_writer(buf: List[str]):
    def _w(line: str) -> None:
        buf.append(line)

    return _w


def test_fen_and_show() -> None:
    session = ConsoleSession()
    out: List[str] = []
    session.cmd_fen(capture_writer(out))
    assert out == ["rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"]
    out.clear()
    session.cmd_show(capture_writer(out))
    assert out[0].startswith("8 | r n b q k b n r")
    assert "Active: white" in out


def test_move_and_errors() -> None:
    session = ConsoleSession()
    out: List[str] = []
    w = capture_writer(out)
    session.dispatch("move e2 e4", w)
    session.dispatch("move e2 e4", w)
    session.dispatch("move e7", w)
    assert out[0] == "moved e2-e4"
    assert out[1].startswith("error: no piece at source square e2")
    assert out[2] == "usage: move <from> <to>"


def test_click_select_then_move() -> None:
    session = ConsoleSession()
    out: List[str] = []
    w = capture_writer(out)
    session.dispatch("click g1", w)
    session.dispatch("click f3", w)
    session.dispatch("click e4", w)
    assert out == ["selected g1: f3 h3", "moved g1-f3", "noop"]


def test_targets() -> None:
    session = ConsoleSession()
    out: List[str] = []
    w = capture_writer(out)
    session.dispatch("targets e2", w)
    session.dispatch("targets a1", w)
    session.dispatch("targets e4", w)
    session.dispatch("targets q9", w)
    assert out[:3] == ["e3 e4", "none", "error: no piece there"]
    assert out[3].startswith("error:")


def test_new_from_fen_and_checkmate_report() -> None:
    session = ConsoleSession()
    out: List[str] = []
    w = capture_writer(out)
    session.dispatch("new fen 6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1", w)
    session.dispatch("move a1 a8", w)
    session.dispatch("move g8 h8", w)
    assert out[0] == "new game: 6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"
    assert out[1:3] == ["moved a1-a8", "game over: checkmate"]
    assert out[3].startswith("error: game is already over")


def test_new_with_bad_fen() -> None:
    session = ConsoleSession()
    out: List[str] = []
    session.dispatch("new fen nonsense", capture_writer(out))
    assert out[0].startswith("error:")


def test_capture_is_reported() -> None:
    session = ConsoleSession()
    out: List[str] = []
    w = capture_writer(out)
    session.dispatch("new fen 4k3/8/8/3p4/4P3/8/8/4K3 w - - 0 1", w)
    session.dispatch("move e4 d5", w)
    assert out[-1] == "moved e4-d5 captures p"


def test_unknown_command_and_quit() -> None:
    session = ConsoleSession()
    out: List[str] = []
    w = capture_writer(out)
    assert session.dispatch("dance", w) is True
    assert out == ["unknown command: dance"]
    assert session.dispatch("", w) is True
    assert session.dispatch("quit", w) is False


def test_run_console_stops_at_quit() -> None:
    out: List[str] = []
    run_console(
        config=GameConfig(white_moves_per_turn=2),
        lines=["move e2 e4", "move d2 d4", "fen", "quit", "fen"],
        write=capture_writer(out),
    )
    fens = [line for line in out if line.endswith(" 0 1") and "/" in line]
    assert fens == ["rnbqkbnr/pppppppp/8/8/3PP3/8/PPP2PPP/RNBQKBNR b KQkq d3 0 1"]

from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from variantchess.protocol.http.app import create_app


def new_client() -> TestClient:
    return TestClient(create_app())


def test_healthz_ok() -> None:
    client = new_client()
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert "x-request-id" in r.headers


def test_request_id_is_echoed() -> None:
    client = new_client()
    r = client.get("/healthz", headers={"x-request-id": "abc-123"})
    assert r.headers["x-request-id"] == "abc-123"


def test_error_envelope_for_http_exception() -> None:
    app: FastAPI = create_app()

    @app.get("/boom")
    def boom():  # type: ignore[no-redef]
        raise HTTPException(status_code=400, detail="oops")

    client = TestClient(app)
    r = client.get("/boom")
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "bad_request"
    assert err["message"] == "oops"
    assert err["type"] == "client_error"
    assert err["request_id"]


def test_state_without_game_is_404() -> None:
    r = new_client().get("/api/game/state")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"


def test_new_game_and_state() -> None:
    client = new_client()
    r = client.post("/api/game", json={})
    assert r.status_code == 200
    body = r.json()
    assert body["fen"] == "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
    assert body["status"] == "ongoing"
    assert (body["width"], body["height"]) == (8, 8)
    assert client.get("/api/game/state").json() == body


def test_new_game_from_preset_with_resize() -> None:
    client = new_client()
    r = client.post("/api/game", json={"preset": "Bureaucrat", "board_width": 10, "fill_expanded_files": True})
    assert r.status_code == 200
    assert r.json()["width"] == 10


def test_new_game_seeded_randomized_is_reproducible() -> None:
    client = new_client()
    payload = {"randomized_layout": True, "seed": 5}
    first = client.post("/api/game", json=payload).json()["fen"]
    second = client.post("/api/game", json=payload).json()["fen"]
    assert first == second


def test_new_game_bad_inputs() -> None:
    client = new_client()
    r = client.post("/api/game", json={"preset": "nope"})
    assert r.status_code == 400
    r = client.post("/api/game", json={"board_width": 4})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_dimensions"
    r = client.post("/api/game", json={"fen": "not a fen"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "malformed_position"


def test_move_endpoint() -> None:
    client = new_client()
    client.post("/api/game", json={})
    r = client.post("/api/game/move", json={"from_square": "e2", "to_square": "e4"})
    assert r.status_code == 200
    body = r.json()
    assert body["move_history"] == ["e2-e4"]
    assert body["last_move"] == "e2-e4"
    assert body["side_to_move"] == "b"


def test_illegal_move_is_400_with_code() -> None:
    client = new_client()
    client.post("/api/game", json={})
    r = client.post("/api/game/move", json={"from_square": "e2", "to_square": "e5"})
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "illegal_destination"
    assert err["type"] == "client_error"
    r = client.post("/api/game/move", json={"from_square": "e7", "to_square": "e5"})
    assert r.json()["error"]["code"] == "wrong_turn"
    r = client.post("/api/game/move", json={"from_square": "z1", "to_square": "e5"})
    assert r.json()["error"]["code"] == "invalid_square"


def test_move_validation_error_is_422() -> None:
    client = new_client()
    client.post("/api/game", json={})
    r = client.post("/api/game/move", json={"from_square": "e2"})
    assert r.status_code == 422
    err = r.json()["error"]
    assert err["code"] == "unprocessable_entity"
    assert err["field_errors"]


def test_click_flow() -> None:
    client = new_client()
    client.post("/api/game", json={})
    r = client.post("/api/game/click", json={"x": 4, "y": 6})
    body = r.json()
    assert body["outcome"] == "selection"
    assert body["square"] == "e2"
    assert body["targets"] == ["e3", "e4"]
    assert body["state"]["selected"] == "e2"

    r = client.post("/api/game/click", json={"x": 4, "y": 4})
    body = r.json()
    assert body["outcome"] == "move_applied"
    assert (body["from_square"], body["to_square"]) == ("e2", "e4")
    assert body["state"]["move_history"] == ["e2-e4"]

    r = client.post("/api/game/click", json={"x": 20, "y": 20})
    body = r.json()
    assert r.status_code == 200
    assert body["outcome"] == "move_rejected"
    assert body["reason"]


def test_moves_after_checkmate_are_409() -> None:
    client = new_client()
    client.post("/api/game", json={"fen": "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"})
    r = client.post("/api/game/move", json={"from_square": "a1", "to_square": "a8"})
    assert r.status_code == 200
    assert r.json()["status"] == "checkmate"
    r = client.post("/api/game/move", json={"from_square": "g8", "to_square": "h8"})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "checkmate"


def test_click_capture_reports_piece_handle() -> None:
    client = new_client()
    client.post("/api/game", json={"fen": "4k3/8/3p4/8/8/8/8/3RK3 w - - 0 1"})
    client.post("/api/game/click", json={"x": 3, "y": 7})
    body = client.post("/api/game/click", json={"x": 3, "y": 2}).json()
    assert body["outcome"] == "move_applied"
    assert body["captured"] == "p"
    # Handles follow FEN order: e8 king, d6 pawn, d1 rook, e1 king
    assert body["captured_handle"] == 1


def test_converted_bureaucrat_keeps_its_handle() -> None:
    client = new_client()
    client.post("/api/game", json={"fen": "4k3/8/3c4/8/8/8/8/3RK3 w - - 0 1", "bureaucrat_rule": True})
    client.post("/api/game/click", json={"x": 3, "y": 7})
    body = client.post("/api/game/click", json={"x": 3, "y": 2}).json()
    assert body["captured_handle"] == 1
    assert body["state"]["fen"].startswith("C3k3/")

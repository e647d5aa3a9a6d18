from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from chessroom.engine.board import STARTPOS_FEN
from chessroom.engine.game import Game
from chessroom.protocol.http.app import create_app
from chessroom.protocol.http.session import InMemorySessionStore


SCHOLARS_MATE = ["e2e4", "e7e5", "f1c4", "b8c6", "d1h5", "g8f6", "h5f7"]


def _client() -> TestClient:
    return TestClient(create_app())


def _new_game(client: TestClient) -> str:
    r = client.post("/api/games")
    assert r.status_code == 200
    return r.json()["game_id"]


def test_create_game_and_get_state() -> None:
    client = _client()
    r = client.post("/api/games")
    assert r.status_code == 200
    body = r.json()
    game_id = body["game_id"]
    assert len(game_id) == 6 and game_id.isalnum() and game_id.upper() == game_id
    assert body["fen"] == STARTPOS_FEN
    assert body["current_turn"] == "white"
    assert body["status"] == "active"
    assert len(body["board"]) == 32
    assert body["board"]["6_4"] == {"type": "pawn", "color": "white", "hasMoved": False}

    r2 = client.get(f"/api/games/{game_id}/state")
    assert r2.status_code == 200
    assert r2.json() == body


def test_get_state_unknown_id_404() -> None:
    client = _client()
    r = client.get("/api/games/NOPE00/state")
    assert r.status_code == 404
    body = r.json()
    assert body["error"]["code"] == "not_found"


def test_moves_for_square() -> None:
    client = _client()
    game_id = _new_game(client)

    r = client.get(f"/api/games/{game_id}/moves", params={"square": "e2"})
    assert r.status_code == 200
    targets = sorted(m["to_square"] for m in r.json())
    assert targets == ["e3", "e4"]

    r_black = client.get(f"/api/games/{game_id}/moves", params={"square": "e7"})
    assert r_black.json() == []

    r_bad = client.get(f"/api/games/{game_id}/moves", params={"square": "z9"})
    assert r_bad.status_code == 400
    assert r_bad.json()["error"]["code"] == "bad_request"


def test_move_updates_state_and_enforces_turn() -> None:
    client = _client()
    game_id = _new_game(client)

    r = client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
    assert r.status_code == 200
    state = r.json()
    assert state["current_turn"] == "black"
    assert state["moves"] == ["1. e2e4"]
    assert state["last_move_from"] == {"row": 6, "col": 4}
    assert state["last_move_to"] == {"row": 4, "col": 4}
    assert state["board"]["4_4"]["hasMoved"] is True

    r_turn = client.post(f"/api/games/{game_id}/move", json={"move": "d2d4"})
    assert r_turn.status_code == 400
    assert "turn" in r_turn.json()["error"]["message"]


def test_illegal_and_malformed_moves_rejected() -> None:
    client = _client()
    game_id = _new_game(client)

    r_illegal = client.post(f"/api/games/{game_id}/move", json={"move": "e2e5"})
    assert r_illegal.status_code == 400
    r_garbage = client.post(f"/api/games/{game_id}/move", json={"move": "hello"})
    assert r_garbage.status_code == 400
    assert r_garbage.json()["error"]["code"] == "bad_request"

    state = client.get(f"/api/games/{game_id}/state").json()
    assert state["moves"] == []


def test_resign_validation_and_result() -> None:
    client = _client()
    game_id = _new_game(client)

    r_bad = client.post(f"/api/games/{game_id}/resign", json={"color": "green"})
    assert r_bad.status_code == 422
    assert r_bad.json()["error"]["code"] == "unprocessable_entity"

    r = client.post(f"/api/games/{game_id}/resign", json={"color": "black"})
    assert r.status_code == 200
    assert r.json()["status"] == "resigned"
    assert r.json()["winner"] == "white"

    r_again = client.post(f"/api/games/{game_id}/resign", json={"color": "white"})
    assert r_again.status_code == 409
    assert r_again.json()["error"]["code"] == "conflict"


def test_checkmate_ends_game() -> None:
    client = _client()
    game_id = _new_game(client)

    for text in SCHOLARS_MATE:
        r = client.post(f"/api/games/{game_id}/move", json={"move": text})
        assert r.status_code == 200
    state = r.json()
    assert state["status"] == "checkmate"
    assert state["winner"] == "white"
    assert state["in_check"] == "black"
    assert state["moves"][-1] == "4. h5f7#"

    r_after = client.post(f"/api/games/{game_id}/move", json={"move": "e8e7"})
    assert r_after.status_code == 409
    assert r_after.json()["error"]["code"] == "conflict"


def test_set_position_restores_saved_board() -> None:
    client = _client()
    game_id = _new_game(client)
    saved = client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"}).json()

    other_id = _new_game(client)
    r = client.post(
        f"/api/games/{other_id}/position",
        json={"board": saved["board"], "current_turn": "black"},
    )
    assert r.status_code == 200
    state = r.json()
    assert state["fen"] == saved["fen"]
    assert state["current_turn"] == "black"
    assert state["moves"] == []

    r_move = client.post(f"/api/games/{other_id}/move", json={"move": "e7e5"})
    assert r_move.status_code == 200
    assert r_move.json()["moves"] == ["1... e7e5"]


def test_set_position_detects_finished_game() -> None:
    client = _client()
    game_id = _new_game(client)
    board = {
        "0_7": {"type": "king", "color": "black", "hasMoved": True},
        "1_6": {"type": "queen", "color": "white", "hasMoved": True},
        "2_6": {"type": "king", "color": "white", "hasMoved": True},
    }
    r = client.post(
        f"/api/games/{game_id}/position", json={"board": board, "current_turn": "black"}
    )
    assert r.status_code == 200
    assert r.json()["status"] == "checkmate"
    assert r.json()["winner"] == "white"

    r_move = client.post(f"/api/games/{game_id}/move", json={"move": "h8h7"})
    assert r_move.status_code == 409


def test_set_position_validation() -> None:
    client = _client()
    game_id = _new_game(client)

    bad_piece = {"4_4": {"type": "pawn", "color": "white", "hasMoved": "false"}}
    r_bad = client.post(f"/api/games/{game_id}/position", json={"board": bad_piece})
    assert r_bad.status_code == 400
    assert r_bad.json()["error"]["code"] == "bad_request"
    # The stored game is untouched
    state = client.get(f"/api/games/{game_id}/state").json()
    assert len(state["board"]) == 32

    r_turn = client.post(
        f"/api/games/{game_id}/position", json={"board": {}, "current_turn": "red"}
    )
    assert r_turn.status_code == 422

    r_missing = client.post("/api/games/NOPE00/position", json={"board": {}})
    assert r_missing.status_code == 404


def test_store_set_requires_existing_session() -> None:
    store = InMemorySessionStore()
    with pytest.raises(KeyError):
        store.set("NOPE00", Game.new())
    game_id = store.create()
    replacement = Game.from_fen("4k3/8/8/8/8/8/8/4K3")
    store.set(game_id, replacement)
    assert store.get(game_id) is replacement

from __future__ import annotations

import pytest

from chessroom.engine.board import BLACK, WHITE, Board
from chessroom.engine.game import ACTIVE, CHECKMATE, DRAW, RESIGNED, STALEMATE, Game
from chessroom.engine.move import parse_move, str_to_square as sq


SCHOLARS_MATE = ["e2e4", "e7e5", "f1c4", "b8c6", "d1h5", "g8f6", "h5f7"]


def play(game: Game, line: list[str]) -> None:
    for text in line:
        game.apply_move(parse_move(text))


def test_new_game_state() -> None:
    game = Game.new()
    assert game.current_turn == WHITE
    assert game.status == ACTIVE
    assert len(game.legal_moves()) == 20
    snap = game.snapshot()
    assert len(snap["board"]) == 32
    assert snap["moves"] == []
    assert snap["last_move_from"] is None


def test_turn_order_enforced() -> None:
    game = Game.new()
    with pytest.raises(ValueError, match="turn"):
        game.apply_move(parse_move("e7e5"))
    game.apply_move(parse_move("e2e4"))
    assert game.current_turn == BLACK
    with pytest.raises(ValueError, match="turn"):
        game.apply_move(parse_move("d2d4"))


def test_illegal_and_empty_source_rejected() -> None:
    game = Game.new()
    with pytest.raises(ValueError, match="illegal"):
        game.apply_move(parse_move("e2e5"))
    with pytest.raises(ValueError, match="No piece"):
        game.apply_move(parse_move("e4e5"))
    # Promotion letter on a plain move
    with pytest.raises(ValueError, match="illegal"):
        game.apply_move(parse_move("e2e4q"))
    assert game.moves == []


def test_legal_moves_for_square_respects_turn() -> None:
    game = Game.new()
    assert len(game.legal_moves(sq("e2"))) == 2
    assert game.legal_moves(sq("e7")) == []
    assert game.legal_moves(sq("e4")) == []


def test_numbered_move_list_and_last_move() -> None:
    game = Game.new()
    play(game, ["e2e4", "e7e5", "g1f3"])
    assert game.moves == ["1. e2e4", "1... e7e5", "2. g1f3"]
    assert game.last_move_from == sq("g1")
    assert game.last_move_to == sq("f3")
    snap = game.snapshot()
    assert snap["last_move_to"] == {"row": 5, "col": 5}


def test_scholars_mate_ends_game() -> None:
    game = Game.new()
    play(game, SCHOLARS_MATE)
    assert game.status == CHECKMATE
    assert game.winner == WHITE
    assert game.in_check == BLACK
    assert game.moves[-1] == "4. h5f7#"
    assert game.legal_moves() == []
    with pytest.raises(ValueError, match="over"):
        game.apply_move(parse_move("e8e7"))


def test_stalemate_and_draw_status() -> None:
    game = Game.from_fen("7k/8/6K1/8/8/8/8/5Q2")
    game.apply_move(parse_move("f1f7"))
    assert game.status == STALEMATE
    assert game.winner is None

    game = Game.from_fen("4k3/8/8/8/8/8/8/3rK3")
    game.apply_move(parse_move("e1d1"))
    assert game.status == DRAW


def test_restored_game_detects_terminal_position() -> None:
    game = Game.from_fen("7k/6Q1/6K1/8/8/8/8/8", current_turn=BLACK)
    assert game.status == CHECKMATE
    assert game.winner == WHITE
    with pytest.raises(ValueError):
        Game.from_fen("7k/8/8/8/8/8/8/7K", current_turn="red")


def test_requested_under_promotion() -> None:
    game = Game.from_fen("k7/4P3/8/8/8/8/8/4K3")
    game.apply_move(parse_move("e7e8n"))
    assert game.board.piece_at(sq("e8")).kind == "knight"
    assert game.moves == ["1. e7e8=N"]


def test_resign() -> None:
    game = Game.new()
    game.resign(WHITE)
    assert game.status == RESIGNED
    assert game.winner == BLACK
    with pytest.raises(ValueError):
        game.resign(BLACK)


def test_undo_restores_prior_state() -> None:
    game = Game.new()
    play(game, SCHOLARS_MATE)
    game.undo_move()
    assert game.status == ACTIVE
    assert game.winner is None
    assert game.current_turn == WHITE
    assert len(game.moves) == 6
    while game.moves:
        game.undo_move()
    assert game.board == Board.startpos()
    with pytest.raises(ValueError, match="no moves"):
        game.undo_move()


def test_sparse_round_trip_through_snapshot() -> None:
    game = Game.new()
    play(game, ["e2e4", "e7e5"])
    snap = game.snapshot()
    restored = Game.from_sparse(snap["board"], current_turn=snap["current_turn"])
    assert restored.board == game.board
    assert restored.current_turn == WHITE
    pawn = restored.board.piece_at(sq("e4"))
    assert pawn is not None and pawn.has_moved


def test_undo_after_resign_takes_back_only_the_resignation() -> None:
    game = Game.new()
    game.apply_move(parse_move("e2e4"))
    game.resign(BLACK)

    game.undo_move()
    assert game.status == ACTIVE
    assert game.winner is None
    assert game.current_turn == BLACK
    assert game.moves == ["1. e2e4"]
    assert game.last_move_to == sq("e4")

    game.undo_move()
    assert game.moves == []
    assert game.board == Board.startpos()

from __future__ import annotations

from chessroom.engine.board import PAWN, STARTPOS_FEN, WHITE, Board, Piece
from chessroom.engine.move import Move, parse_move, str_to_square as sq
from chessroom.engine.rules import NO_PIECE_ERROR, make_move


def test_make_move_returns_new_board_and_does_not_mutate() -> None:
    b = Board.startpos()
    rows_before = b.rows()

    result = make_move(b, parse_move("e2e4"))

    assert result.valid
    assert b.to_fen() == STARTPOS_FEN
    assert b.rows() == rows_before
    assert result.new_board is not None and result.new_board is not b
    assert result.new_board.to_fen() == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR"


def test_moved_piece_is_marked() -> None:
    result = make_move(Board.startpos(), parse_move("g1f3"))
    assert result.new_board is not None
    knight = result.new_board.piece_at(sq("f3"))
    assert knight is not None and knight.has_moved
    assert result.new_board.piece_at(sq("g1")) is None


def test_no_piece_at_source_is_reported_not_raised() -> None:
    b = Board.startpos()
    result = make_move(b, parse_move("e4e5"))
    assert result.valid is False
    assert result.error == NO_PIECE_ERROR
    assert result.new_board is None and result.move is None


def test_result_move_flags_filled_in() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/3p4/R3K3")
    result = make_move(b, Move(sq("a1"), sq("a8")))
    assert result.move is not None
    assert result.move.is_check and not result.move.is_capture
    assert result.in_check == "black"

    result = make_move(b, Move(sq("e1"), sq("d2")))
    assert result.move is not None and result.move.is_capture
    assert not result.move.is_check


def test_opponent_status_is_recomputed_each_call() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/8/R3K3")
    checking = make_move(b, Move(sq("a1"), sq("a8")))
    quiet = make_move(b, Move(sq("a1"), sq("a2")))
    assert checking.in_check == "black"
    assert quiet.in_check is None
    assert b.piece_at(sq("a1")) is not None


def test_pieces_keep_identity_values() -> None:
    result = make_move(Board.startpos(), parse_move("d2d4"))
    assert result.new_board is not None
    assert result.new_board.piece_at(sq("d4")) == Piece(PAWN, WHITE, True)
    assert result.new_board.piece_at(sq("e2")) == Piece(PAWN, WHITE, False)

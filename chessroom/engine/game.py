from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from .board import COLORS, WHITE, Board, opponent
from .move import Move, MoveResult, Square, move_to_notation
from . import rules


logger = logging.getLogger(__name__)

ACTIVE = "active"
CHECKMATE = "checkmate"
STALEMATE = "stalemate"
DRAW = "draw"
RESIGNED = "resigned"


@dataclass
class _Snapshot:
    board: Board
    current_turn: str
    ep_target: Optional[Square]
    status: str
    winner: Optional[str]
    in_check: Optional[str]
    last_move_from: Optional[Square]
    last_move_to: Optional[Square]
    move_count: int


@dataclass
class Game:
    """Game wrapper around a board with turn order and outcome tracking.

    Responsibility: hold the current board, enforce whose turn it is, apply
    legal moves through the rules engine and keep the numbered move list.
    """

    board: Board
    current_turn: str = WHITE
    moves: List[str] = field(default_factory=list)
    status: str = ACTIVE
    winner: Optional[str] = None
    in_check: Optional[str] = None
    last_move_from: Optional[Square] = None
    last_move_to: Optional[Square] = None
    ep_target: Optional[Square] = None
    start_turn: str = WHITE
    _history: List[_Snapshot] = field(default_factory=list, repr=False)

    @classmethod
    def new(cls) -> "Game":
        return cls(board=Board.startpos())

    @classmethod
    def from_fen(cls, fen: str, current_turn: str = WHITE) -> "Game":
        return cls._restored(Board.from_fen(fen), current_turn)

    @classmethod
    def from_sparse(cls, data: Dict[str, Any], current_turn: str = WHITE) -> "Game":
        """Restore a game from a persisted sparse board document."""
        return cls._restored(Board.from_sparse(data), current_turn)

    @classmethod
    def _restored(cls, board: Board, current_turn: str) -> "Game":
        if current_turn not in COLORS:
            raise ValueError(f"invalid color: {current_turn!r}")
        game = cls(board=board, current_turn=current_turn, start_turn=current_turn)
        game._refresh_status()
        return game

    def _refresh_status(self) -> None:
        color = self.current_turn
        checked = rules.is_in_check(self.board, color)
        self.in_check = color if checked else None
        if rules.is_checkmate(self.board, color, self.ep_target):
            self.status = CHECKMATE
            self.winner = opponent(color)
        elif rules.is_stalemate(self.board, color, self.ep_target):
            self.status = STALEMATE
        elif rules.is_draw_by_insufficient_material(self.board):
            self.status = DRAW

    def is_over(self) -> bool:
        return self.status != ACTIVE

    def legal_moves(self, square: Optional[Tuple[int, int]] = None) -> List[Move]:
        """Legal moves for ``square``, or for the whole side to move."""
        if self.is_over():
            return []
        if square is None:
            return rules.all_valid_moves(self.board, self.current_turn, self.ep_target)
        piece = self.board.piece_at(square)
        if piece is None or piece.color != self.current_turn:
            return []
        return rules.get_valid_moves(self.board, square, self.ep_target)

    def apply_move(self, move: Move) -> MoveResult:
        """Validate ``move`` for the side to move and play it.

        Raises:
            ValueError: If the game is over, the source square is empty or
                holds an opponent piece, or the move is not legal.
        """
        if self.is_over():
            raise ValueError(f"game is over ({self.status})")
        piece = self.board.piece_at(move.from_sq)
        if piece is None:
            raise ValueError(rules.NO_PIECE_ERROR)
        if piece.color != self.current_turn:
            raise ValueError(f"not {piece.color}'s turn")

        legal = rules.get_valid_moves(self.board, move.from_sq, self.ep_target)
        chosen = next((m for m in legal if m.same_squares(move)), None)
        if chosen is None:
            raise ValueError("illegal move")
        if move.promotion is not None:
            if chosen.promotion is None:
                raise ValueError("illegal move")
            chosen = replace(chosen, promotion=move.promotion)

        result = rules.make_move(self.board, chosen)
        if not result.valid or result.new_board is None or result.move is None:
            raise ValueError(result.error or "illegal move")

        self._push_snapshot()
        mover = self.current_turn
        ply = len(self.moves) + (0 if self.start_turn == WHITE else 1)
        number = ply // 2 + 1
        notation = move_to_notation(result.move)
        self.moves.append(f"{number}. {notation}" if mover == WHITE else f"{number}... {notation}")

        self.board = result.new_board
        self.current_turn = opponent(mover)
        self.ep_target = rules.en_passant_target(self.board, result.move)
        self.in_check = result.in_check
        self.last_move_from = result.move.from_sq
        self.last_move_to = result.move.to_sq
        if result.is_checkmate:
            self.status = CHECKMATE
            self.winner = mover
        elif result.is_stalemate:
            self.status = STALEMATE
        elif result.is_draw:
            self.status = DRAW

        logger.debug("move %s by %s", notation, mover)
        if self.is_over():
            logger.info("game finished: %s (winner=%s)", self.status, self.winner)
        return result

    def resign(self, color: str) -> None:
        if color not in COLORS:
            raise ValueError(f"invalid color: {color!r}")
        if self.is_over():
            raise ValueError(f"game is over ({self.status})")
        self._push_snapshot()
        self.status = RESIGNED
        self.winner = opponent(color)
        logger.info("%s resigned", color)

    def undo_move(self) -> None:
        """Take back the most recent move or resignation."""
        if not self._history:
            raise ValueError("no moves to undo")
        snap = self._history.pop()
        del self.moves[snap.move_count:]
        self.board = snap.board
        self.current_turn = snap.current_turn
        self.ep_target = snap.ep_target
        self.status = snap.status
        self.winner = snap.winner
        self.in_check = snap.in_check
        self.last_move_from = snap.last_move_from
        self.last_move_to = snap.last_move_to

    def _push_snapshot(self) -> None:
        self._history.append(
            _Snapshot(
                self.board,
                self.current_turn,
                self.ep_target,
                self.status,
                self.winner,
                self.in_check,
                self.last_move_from,
                self.last_move_to,
                len(self.moves),
            )
        )

    def snapshot(self) -> Dict[str, Any]:
        """Return a JSON-ready document of the game state."""
        return {
            "board": self.board.to_sparse(),
            "current_turn": self.current_turn,
            "moves": list(self.moves),
            "status": self.status,
            "winner": self.winner,
            "in_check": self.in_check,
            "last_move_from": _square_doc(self.last_move_from),
            "last_move_to": _square_doc(self.last_move_to),
        }


def _square_doc(sq: Optional[Square]) -> Optional[Dict[str, int]]:
    if sq is None:
        return None
    return {"row": sq.row, "col": sq.col}

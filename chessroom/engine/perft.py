from __future__ import annotations

from typing import Dict, Optional, Tuple

from .board import Board, opponent
from .move import move_to_notation
from . import rules


def perft(
    board: Board, color: str, depth: int, ep_target: Optional[Tuple[int, int]] = None
) -> int:
    """Count leaf positions reachable in ``depth`` plies with ``color`` to move.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1).

    Note: promotions are generated to a queen only, so counts match the
    published tables only for positions where no under-promotion is
    reachable within ``depth``.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1

    moves = rules.all_valid_moves(board, color, ep_target)
    if depth == 1:
        return len(moves)

    nodes = 0
    for m in moves:
        result = rules.make_move(board, m)
        if result.new_board is None:
            raise ValueError(result.error or f"cannot apply {m.to_coordinate()}")
        child_ep = rules.en_passant_target(result.new_board, m)
        nodes += perft(result.new_board, opponent(color), depth - 1, child_ep)
    return nodes


def divide(board: Board, color: str, depth: int) -> Dict[str, int]:
    """Return perft(depth - 1) per root move, keyed by coordinate notation."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    out: Dict[str, int] = {}
    for m in rules.all_valid_moves(board, color):
        result = rules.make_move(board, m)
        if result.new_board is None:
            raise ValueError(result.error or f"cannot apply {m.to_coordinate()}")
        child_ep = rules.en_passant_target(result.new_board, m)
        out[move_to_notation(m)] = perft(result.new_board, opponent(color), depth - 1, child_ep)
    return out

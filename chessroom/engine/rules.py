from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from .board import (
    BISHOP,
    BLACK,
    KING,
    KNIGHT,
    PAWN,
    QUEEN,
    ROOK,
    WHITE,
    Board,
    Piece,
    opponent,
)
from .move import KINGSIDE, QUEENSIDE, Move, MoveResult, Square


NO_PIECE_ERROR = "No piece at the source position"

KNIGHT_OFFSETS = ((-2, -1), (-2, 1), (-1, -2), (-1, 2), (1, -2), (1, 2), (2, -1), (2, 1))
DIAGONALS = ((-1, -1), (-1, 1), (1, -1), (1, 1))
ORTHOGONALS = ((-1, 0), (1, 0), (0, -1), (0, 1))
ALL_DIRECTIONS = DIAGONALS + ORTHOGONALS


def pawn_direction(color: str) -> int:
    """Row step of a pawn advance: white moves toward row 0, black toward row 7."""
    return -1 if color == WHITE else 1


def _start_row(color: str) -> int:
    return 6 if color == WHITE else 1


def _promotion_row(color: str) -> int:
    return 0 if color == WHITE else 7


def _back_row(color: str) -> int:
    return 7 if color == WHITE else 0


def _on_board(row: int, col: int) -> bool:
    return 0 <= row < 8 and 0 <= col < 8


# --- Attack and check detection ---
def is_square_under_attack(board: Board, square: Tuple[int, int], by_color: str) -> bool:
    """Return True if any piece of ``by_color`` strikes ``square``.

    Pseudo-legal only: pins on the attacker are ignored. This is the leaf
    primitive used by king-move and castling tests, so it must never call
    into legal-move generation.
    """
    row, col = square

    # A pawn attacking (row, col) stands one step behind it along its advance.
    pawn_row = row - pawn_direction(by_color)
    for dc in (-1, 1):
        r, c = pawn_row, col + dc
        if _on_board(r, c):
            p = board.piece_at((r, c))
            if p is not None and p.kind == PAWN and p.color == by_color:
                return True

    for dr, dc in KNIGHT_OFFSETS:
        r, c = row + dr, col + dc
        if _on_board(r, c):
            p = board.piece_at((r, c))
            if p is not None and p.kind == KNIGHT and p.color == by_color:
                return True

    for dr, dc in ALL_DIRECTIONS:
        diagonal = dr != 0 and dc != 0
        r, c = row + dr, col + dc
        while _on_board(r, c):
            p = board.piece_at((r, c))
            if p is not None:
                if p.color == by_color:
                    if p.kind == QUEEN:
                        return True
                    if diagonal and p.kind == BISHOP:
                        return True
                    if not diagonal and p.kind == ROOK:
                        return True
                break
            r += dr
            c += dc

    for dr, dc in ALL_DIRECTIONS:
        r, c = row + dr, col + dc
        if _on_board(r, c):
            p = board.piece_at((r, c))
            if p is not None and p.kind == KING and p.color == by_color:
                return True

    return False


def is_in_check(board: Board, color: str) -> bool:
    """Return True if ``color``'s king is attacked.

    A board without that king reports False rather than raising.
    """
    king_sq = board.find_king(color)
    if king_sq is None:
        return False
    return is_square_under_attack(board, king_sq, opponent(color))


def _apply_to_board(board: Board, move: Move, piece: Piece, *, mark_moved: bool) -> Board:
    """Return a copy of ``board`` with ``move`` played by ``piece``.

    Handles the castling rook, the en passant victim and promotion.
    """
    frm, to = move.from_sq, move.to_sq
    placed = piece.moved() if mark_moved else piece
    if move.promotion:
        placed = Piece(move.promotion, piece.color, True)
    changes: Dict[Tuple[int, int], Optional[Piece]] = {frm: None}

    if move.is_castle:
        row = frm[0]
        if move.is_castle == KINGSIDE:
            rook_from, rook_to = (row, 7), (row, to[1] - 1)
        else:
            rook_from, rook_to = (row, 0), (row, to[1] + 1)
        rook = board.piece_at(rook_from)
        if rook is not None:
            changes[rook_from] = None
            changes[rook_to] = rook.moved() if mark_moved else rook

    if move.is_en_passant:
        changes[(frm[0], to[1])] = None

    changes[to] = placed
    return board.with_pieces(changes)


def would_leave_in_check(board: Board, move: Move, color: str) -> bool:
    """Return True if playing ``move`` exposes ``color``'s own king.

    The move is tried on a copy; ``board`` is left untouched. An empty source
    square relocates nothing, so the answer is the current check state.
    """
    piece = board.piece_at(move.from_sq)
    if piece is None:
        return is_in_check(board, color)
    test_board = _apply_to_board(board, move, piece, mark_moved=False)
    return is_in_check(test_board, color)


# --- Pseudo-legal generators ---
def pawn_moves(
    board: Board,
    square: Square,
    piece: Piece,
    moves: List[Move],
    ep_target: Optional[Tuple[int, int]] = None,
) -> None:
    """Append pawn pushes, captures and, given ``ep_target``, en passant.

    ``ep_target`` is the square a pawn skipped over on the opponent's last
    move (a double step); without it no en passant capture is generated.
    Moves landing on the far rank promote to a queen.
    """
    row, col = square
    step = pawn_direction(piece.color)
    promo_row = _promotion_row(piece.color)
    found: List[Tuple[Square, bool, bool]] = []

    one = row + step
    if _on_board(one, col) and board.piece_at((one, col)) is None:
        found.append((Square(one, col), False, False))
        two = row + 2 * step
        if row == _start_row(piece.color) and board.piece_at((two, col)) is None:
            found.append((Square(two, col), False, False))

    for dc in (-1, 1):
        c = col + dc
        if not _on_board(one, c):
            continue
        target = board.piece_at((one, c))
        if target is not None and target.color != piece.color:
            found.append((Square(one, c), True, False))
        elif target is None and ep_target is not None and tuple(ep_target) == (one, c):
            victim = board.piece_at((row, c))
            if victim is not None and victim.kind == PAWN and victim.color != piece.color:
                found.append((Square(one, c), True, True))

    for to, capture, en_passant in found:
        moves.append(
            Move(
                square,
                to,
                promotion=QUEEN if to.row == promo_row else None,
                is_capture=capture,
                is_en_passant=en_passant,
            )
        )


def knight_moves(board: Board, square: Square, piece: Piece, moves: List[Move]) -> None:
    row, col = square
    for dr, dc in KNIGHT_OFFSETS:
        r, c = row + dr, col + dc
        if not _on_board(r, c):
            continue
        target = board.piece_at((r, c))
        if target is None or target.color != piece.color:
            moves.append(Move(square, Square(r, c), is_capture=target is not None))


def _sliding_moves(
    board: Board,
    square: Square,
    piece: Piece,
    moves: List[Move],
    directions: Iterable[Tuple[int, int]],
) -> None:
    row, col = square
    for dr, dc in directions:
        r, c = row + dr, col + dc
        while _on_board(r, c):
            target = board.piece_at((r, c))
            if target is None:
                moves.append(Move(square, Square(r, c)))
            else:
                if target.color != piece.color:
                    moves.append(Move(square, Square(r, c), is_capture=True))
                break
            r += dr
            c += dc


def bishop_moves(board: Board, square: Square, piece: Piece, moves: List[Move]) -> None:
    _sliding_moves(board, square, piece, moves, DIAGONALS)


def rook_moves(board: Board, square: Square, piece: Piece, moves: List[Move]) -> None:
    _sliding_moves(board, square, piece, moves, ORTHOGONALS)


def queen_moves(board: Board, square: Square, piece: Piece, moves: List[Move]) -> None:
    _sliding_moves(board, square, piece, moves, ALL_DIRECTIONS)


def king_moves(board: Board, square: Square, piece: Piece, moves: List[Move]) -> None:
    """Append king steps and castling moves.

    Steps are tested with ``is_square_under_attack`` on a board where the
    king already stands on the destination, so a slider's ray through the
    vacated square is seen. Castling needs an unmoved king on its home
    square, out of check, an unmoved rook of its color in the corner, empty
    squares in between, and no attack on the two squares the king crosses.
    """
    row, col = square
    enemy = opponent(piece.color)
    for dr, dc in ALL_DIRECTIONS:
        r, c = row + dr, col + dc
        if not _on_board(r, c):
            continue
        target = board.piece_at((r, c))
        if target is not None and target.color == piece.color:
            continue
        test_board = board.with_pieces({square: None, (r, c): piece})
        if not is_square_under_attack(test_board, (r, c), enemy):
            moves.append(Move(square, Square(r, c), is_capture=target is not None))

    if piece.has_moved or row != _back_row(piece.color) or col != 4:
        return
    if is_in_check(board, piece.color):
        return

    for side, rook_col, step in ((KINGSIDE, 7, 1), (QUEENSIDE, 0, -1)):
        rook = board.piece_at((row, rook_col))
        if rook is None or rook.kind != ROOK or rook.color != piece.color or rook.has_moved:
            continue
        if any(board.piece_at((row, c)) is not None for c in range(col + step, rook_col, step)):
            continue
        transit = (col + step, col + 2 * step)
        if any(
            is_square_under_attack(board.with_pieces({square: None, (row, c): piece}), (row, c), enemy)
            for c in transit
        ):
            continue
        moves.append(Move(square, Square(row, col + 2 * step), is_castle=side))


def pseudo_legal_moves(
    board: Board, square: Tuple[int, int], ep_target: Optional[Tuple[int, int]] = None
) -> List[Move]:
    """Return moves obeying the piece's movement pattern, ignoring own-king safety."""
    piece = board.piece_at(square)
    if piece is None:
        return []
    sq = Square(*square)
    moves: List[Move] = []
    if piece.kind == PAWN:
        pawn_moves(board, sq, piece, moves, ep_target)
    elif piece.kind == KNIGHT:
        knight_moves(board, sq, piece, moves)
    elif piece.kind == BISHOP:
        bishop_moves(board, sq, piece, moves)
    elif piece.kind == ROOK:
        rook_moves(board, sq, piece, moves)
    elif piece.kind == QUEEN:
        queen_moves(board, sq, piece, moves)
    elif piece.kind == KING:
        king_moves(board, sq, piece, moves)
    return moves


# --- Legal move queries ---
def get_valid_moves(
    board: Board, square: Tuple[int, int], ep_target: Optional[Tuple[int, int]] = None
) -> List[Move]:
    """Return legal moves for the piece on ``square``.

    Args:
        board (Board): Position to query; not modified.
        square (Tuple[int, int]): ``(row, col)`` of the piece.
        ep_target (Optional[Tuple[int, int]]): Square skipped by the
            opponent's last double pawn step, enabling en passant.

    Returns:
        List[Move]: Pseudo-legal moves that keep the mover's king out of
            check; empty when ``square`` is empty.
    """
    piece = board.piece_at(square)
    if piece is None:
        return []
    return [
        m
        for m in pseudo_legal_moves(board, square, ep_target)
        if not would_leave_in_check(board, m, piece.color)
    ]


def all_valid_moves(
    board: Board, color: str, ep_target: Optional[Tuple[int, int]] = None
) -> List[Move]:
    """Return the legal moves of every ``color`` piece."""
    moves: List[Move] = []
    for sq, _piece in board.pieces(color):
        moves.extend(get_valid_moves(board, sq, ep_target))
    return moves


def has_valid_move(
    board: Board, color: str, ep_target: Optional[Tuple[int, int]] = None
) -> bool:
    return any(get_valid_moves(board, sq, ep_target) for sq, _piece in board.pieces(color))


def is_checkmate(
    board: Board, color: str, ep_target: Optional[Tuple[int, int]] = None
) -> bool:
    """``color`` is in check and has no legal move."""
    return is_in_check(board, color) and not has_valid_move(board, color, ep_target)


def is_stalemate(
    board: Board, color: str, ep_target: Optional[Tuple[int, int]] = None
) -> bool:
    """``color`` is not in check and has no legal move."""
    return not is_in_check(board, color) and not has_valid_move(board, color, ep_target)


def is_draw_by_insufficient_material(board: Board) -> bool:
    """Return True for K v K, K+minor v K and K+B v K+B.

    Bishop square colors are not compared; any other material, including
    K+N v K+N, is not flagged.
    """
    white = [p for _sq, p in board.pieces(WHITE)]
    black = [p for _sq, p in board.pieces(BLACK)]

    if len(white) == 1 and len(black) == 1:
        return True

    if sorted((len(white), len(black))) == [1, 2]:
        more = white if len(white) > len(black) else black
        extra = next((p for p in more if p.kind != KING), None)
        return extra is not None and extra.kind in (BISHOP, KNIGHT)

    if len(white) == 2 and len(black) == 2:
        return any(p.kind == BISHOP for p in white) and any(p.kind == BISHOP for p in black)

    return False


def en_passant_target(board: Board, move: Move) -> Optional[Square]:
    """Return the square skipped by ``move`` if it is a double pawn step.

    ``board`` is the position after the move was played.
    """
    piece = board.piece_at(move.to_sq)
    if piece is None or piece.kind != PAWN:
        return None
    if abs(move.to_sq[0] - move.from_sq[0]) != 2 or move.to_sq[1] != move.from_sq[1]:
        return None
    return Square((move.from_sq[0] + move.to_sq[0]) // 2, move.from_sq[1])


# --- Move application ---
def make_move(board: Board, move: Move) -> MoveResult:
    """Apply ``move`` and report the resulting game state.

    Args:
        board (Board): Position before the move; never mutated.
        move (Move): Move to play. Legality is the caller's concern; use
            ``get_valid_moves`` to obtain legal moves.

    Returns:
        MoveResult: ``valid=False`` with an error when the source square is
            empty. Otherwise the new board, the move with capture / check /
            checkmate flags filled in, and the opponent's check, checkmate,
            stalemate and insufficient-material status.
    """
    piece = board.piece_at(move.from_sq)
    if piece is None:
        return MoveResult(valid=False, error=NO_PIECE_ERROR)

    target = board.piece_at(move.to_sq)
    promotion = move.promotion
    if promotion is None and piece.kind == PAWN and move.to_sq[0] == _promotion_row(piece.color):
        promotion = QUEEN
    played = replace(
        move,
        from_sq=Square(*move.from_sq),
        to_sq=Square(*move.to_sq),
        promotion=promotion,
        is_capture=move.is_en_passant or (target is not None and target.color != piece.color),
    )

    new_board = _apply_to_board(board, played, piece, mark_moved=True)

    enemy = opponent(piece.color)
    ep = en_passant_target(new_board, played)
    in_check = is_in_check(new_board, enemy)
    can_move = has_valid_move(new_board, enemy, ep)
    checkmate = in_check and not can_move
    stalemate = not in_check and not can_move

    played = replace(played, is_check=in_check, is_checkmate=checkmate)
    return MoveResult(
        valid=True,
        move=played,
        new_board=new_board,
        in_check=enemy if in_check else None,
        is_checkmate=checkmate,
        is_stalemate=stalemate,
        is_draw=is_draw_by_insufficient_material(new_board),
    )

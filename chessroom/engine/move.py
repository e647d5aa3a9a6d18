from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple, Optional

if TYPE_CHECKING:
    from .board import Board


KINGSIDE = "kingside"
QUEENSIDE = "queenside"

PROMOTION_LETTERS = {"q": "queen", "r": "rook", "b": "bishop", "n": "knight"}

FILES = "abcdefgh"
RANKS = "87654321"


class Square(NamedTuple):
    """Board coordinate; row 0 is rank 8, col 0 is file a."""

    row: int
    col: int

    def __str__(self) -> str:
        return square_to_str(self)


@dataclass(frozen=True)
class Move:
    """Pure description of a move.

    Attributes:
        from_sq (Square): Origin square.
        to_sq (Square): Destination square.
        promotion (Optional[str]): Piece type a pawn promotes to, if any.
        is_capture (bool): Destination held an enemy piece (or en passant).
        is_check (bool): Move gives check.
        is_checkmate (bool): Move gives checkmate.
        is_castle (Optional[str]): ``"kingside"`` or ``"queenside"``.
        is_en_passant (bool): Pawn captures en passant.
    """

    from_sq: Square
    to_sq: Square
    promotion: Optional[str] = None
    is_capture: bool = False
    is_check: bool = False
    is_checkmate: bool = False
    is_castle: Optional[str] = None
    is_en_passant: bool = False

    def to_coordinate(self) -> str:
        """Serialize into bare coordinate form like ``"e2e4"`` or ``"e7e8q"``."""
        promo = ""
        if self.promotion:
            promo = next(k for k, v in PROMOTION_LETTERS.items() if v == self.promotion)
        return square_to_str(self.from_sq) + square_to_str(self.to_sq) + promo

    def same_squares(self, other: "Move") -> bool:
        return self.from_sq == other.from_sq and self.to_sq == other.to_sq


@dataclass
class MoveResult:
    """Outcome of applying a move.

    ``valid`` must be checked before any other field is trusted.
    """

    valid: bool
    error: Optional[str] = None
    move: Optional[Move] = None
    new_board: Optional["Board"] = None
    in_check: Optional[str] = None
    is_checkmate: bool = False
    is_stalemate: bool = False
    is_draw: bool = False


def move_to_notation(move: Move) -> str:
    """Render a move in simplified coordinate notation.

    Castling renders as ``O-O`` / ``O-O-O``; anything else as
    ``<from><to>`` with ``=Q`` style promotion suffix and a trailing ``+`` or
    ``#``. There is no piece letter, capture marker or disambiguation.
    """
    if move.is_castle == KINGSIDE:
        return "O-O"
    if move.is_castle == QUEENSIDE:
        return "O-O-O"
    notation = square_to_str(move.from_sq) + square_to_str(move.to_sq)
    if move.promotion:
        notation += "=" + ("N" if move.promotion == "knight" else move.promotion[0].upper())
    if move.is_checkmate:
        notation += "#"
    elif move.is_check:
        notation += "+"
    return notation


def parse_move(text: str) -> Move:
    """Parse a coordinate move string.

    Args:
        text (str): Move such as ``"e2e4"`` or ``"e7e8q"``.

    Returns:
        Move: Move carrying only squares and promotion; flags are filled in by
            the rules engine.

    Raises:
        ValueError: If the string has an invalid length, squares, or promotion
            piece.
    """
    if len(text) not in (4, 5):
        raise ValueError(f"invalid move length: {text!r}")
    from_sq = str_to_square(text[0:2])
    to_sq = str_to_square(text[2:4])
    promo: Optional[str] = None
    if len(text) == 5:
        promo = PROMOTION_LETTERS.get(text[4].lower())
        if promo is None:
            raise ValueError(f"invalid promotion piece: {text[4]!r}")
    return Move(from_sq, to_sq, promo)


def str_to_square(s: str) -> Square:
    """Convert a square name such as ``"e4"`` into a ``Square``.

    Raises:
        ValueError: If ``s`` is not a valid square.
    """
    if len(s) != 2 or s[0] not in FILES or s[1] not in RANKS:
        raise ValueError(f"invalid square: {s!r}")
    return Square(RANKS.index(s[1]), FILES.index(s[0]))


def square_to_str(sq: tuple[int, int]) -> str:
    """Convert a ``(row, col)`` pair into its square name.

    Raises:
        ValueError: If the pair lies off the board.
    """
    row, col = sq
    if not (0 <= row < 8 and 0 <= col < 8):
        raise ValueError(f"invalid square: {sq!r}")
    return FILES[col] + RANKS[row]

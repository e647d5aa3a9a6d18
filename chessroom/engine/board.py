from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .move import Square


WHITE = "white"
BLACK = "black"
COLORS = (WHITE, BLACK)

PAWN = "pawn"
KNIGHT = "knight"
BISHOP = "bishop"
ROOK = "rook"
QUEEN = "queen"
KING = "king"
PIECE_TYPES = (PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING)

STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"

TYPE_TO_CHAR = {
    PAWN: "p",
    KNIGHT: "n",
    BISHOP: "b",
    ROOK: "r",
    QUEEN: "q",
    KING: "k",
}
CHAR_TO_TYPE = {v: k for k, v in TYPE_TO_CHAR.items()}

# Castling right letter -> (color, rook home square)
_CASTLING_ROOKS = {
    "K": (WHITE, Square(7, 7)),
    "Q": (WHITE, Square(7, 0)),
    "k": (BLACK, Square(0, 7)),
    "q": (BLACK, Square(0, 0)),
}


def opponent(color: str) -> str:
    return BLACK if color == WHITE else WHITE


@dataclass(frozen=True)
class Piece:
    """A chess piece.

    Attributes:
        kind (str): One of ``PIECE_TYPES``.
        color (str): ``"white"`` or ``"black"``.
        has_moved (bool): Set once the piece has left its square; gates castling.
    """

    kind: str
    color: str
    has_moved: bool = False

    def moved(self) -> "Piece":
        return self if self.has_moved else replace(self, has_moved=True)

    def symbol(self) -> str:
        """Return the FEN letter, uppercase for white."""
        ch = TYPE_TO_CHAR[self.kind]
        return ch.upper() if self.color == WHITE else ch


class Board:
    """8x8 grid of optional pieces with copy-on-write mutation helpers.

    Notes:
    - ``grid[row][col]``; row 0 is rank 8 (black's back rank), row 7 is rank 1.
    - Pieces are immutable, so copying the row lists gives a snapshot that
      shares nothing mutable with the source board.
    """

    __slots__ = ("_grid",)

    def __init__(self, grid: Optional[List[List[Optional[Piece]]]] = None) -> None:
        if grid is None:
            grid = [[None] * 8 for _ in range(8)]
        if len(grid) != 8 or any(len(row) != 8 for row in grid):
            raise ValueError("board must be 8x8")
        self._grid = [list(row) for row in grid]

    @classmethod
    def empty(cls) -> "Board":
        return cls()

    @classmethod
    def startpos(cls) -> "Board":
        """Create a board initialized to the standard chess starting position."""
        return cls.from_fen(STARTPOS_FEN)

    @classmethod
    def from_fen(cls, fen: str) -> "Board":
        """Create a board from the placement (and optional castling) FEN fields.

        Args:
            fen (str): Piece placement such as ``"4k3/8/8/8/8/8/8/4K3"``. A full
                FEN string is accepted; only the placement and castling
                fields are read.

        Returns:
            Board: Board holding the described pieces.

        Raises:
            ValueError: If the placement is malformed.

        Notes:
            Pawns and minor pieces start unmoved. When a castling field is
            present, kings and corner rooks are unmoved only if a matching
            right is listed; with no castling field every king and rook on its
            home square is treated as unmoved.
        """
        if not fen or not isinstance(fen, str):
            raise ValueError("FEN must be a non-empty string")
        parts = fen.strip().split()
        placement = parts[0]
        castling: Optional[str] = None
        if len(parts) >= 3:
            castling = "" if parts[2] == "-" else parts[2]
            if any(ch not in "KQkq" for ch in castling):
                raise ValueError("invalid castling rights")

        ranks = placement.split("/")
        if len(ranks) != 8:
            raise ValueError("FEN board must have 8 ranks")
        grid: List[List[Optional[Piece]]] = [[None] * 8 for _ in range(8)]
        for row, rank in enumerate(ranks):
            col = 0
            for ch in rank:
                if ch.isdigit():
                    n = int(ch)
                    if n < 1 or n > 8:
                        raise ValueError("invalid empty count in FEN rank")
                    col += n
                    continue
                kind = CHAR_TO_TYPE.get(ch.lower())
                if kind is None:
                    raise ValueError(f"invalid piece in FEN: {ch!r}")
                if col >= 8:
                    raise ValueError("too many squares in FEN rank")
                color = WHITE if ch.isupper() else BLACK
                grid[row][col] = Piece(kind, color)
                col += 1
            if col != 8:
                raise ValueError("rank does not sum to 8 squares in FEN")

        board = cls(grid)
        if castling is not None:
            board._apply_castling_field(castling)
        else:
            board._mark_displaced_castlers()
        return board

    def _apply_castling_field(self, castling: str) -> None:
        for row in range(8):
            for col in range(8):
                piece = self._grid[row][col]
                if piece is None or piece.kind not in (KING, ROOK):
                    continue
                if piece.kind == KING:
                    rights = "KQ" if piece.color == WHITE else "kq"
                    unmoved = any(ch in castling for ch in rights)
                else:
                    unmoved = any(
                        ch in castling and (color, sq) == (piece.color, Square(row, col))
                        for ch, (color, sq) in _CASTLING_ROOKS.items()
                    )
                if not unmoved:
                    self._grid[row][col] = piece.moved()

    def _mark_displaced_castlers(self) -> None:
        for row in range(8):
            for col in range(8):
                piece = self._grid[row][col]
                if piece is None or piece.kind not in (KING, ROOK):
                    continue
                home_row = 7 if piece.color == WHITE else 0
                home_cols = (4,) if piece.kind == KING else (0, 7)
                if row != home_row or col not in home_cols:
                    self._grid[row][col] = piece.moved()

    def to_fen(self) -> str:
        """Serialize the piece placement field of FEN."""
        ranks: List[str] = []
        for row in self._grid:
            run = 0
            out = []
            for piece in row:
                if piece is None:
                    run += 1
                    continue
                if run:
                    out.append(str(run))
                    run = 0
                out.append(piece.symbol())
            if run:
                out.append(str(run))
            ranks.append("".join(out))
        return "/".join(ranks)

    # --- Sparse document codec ---
    def to_sparse(self) -> Dict[str, Dict[str, Any]]:
        """Return occupied squares keyed ``"<row>_<col>"``.

        Each value holds ``type``, ``color`` and ``hasMoved``; empty squares are
        omitted.
        """
        data: Dict[str, Dict[str, Any]] = {}
        for sq, piece in self.pieces():
            data[f"{sq.row}_{sq.col}"] = {
                "type": piece.kind,
                "color": piece.color,
                "hasMoved": piece.has_moved,
            }
        return data

    @classmethod
    def from_sparse(cls, data: Dict[str, Any]) -> "Board":
        """Rebuild a board from the ``"<row>_<col>"`` keyed document form.

        Keys that do not name an on-board square are ignored.

        Raises:
            ValueError: If a key is not ``row_col`` or a piece value is malformed.
        """
        board = cls.empty()
        for key, value in data.items():
            try:
                row_s, col_s = key.split("_")
                row, col = int(row_s), int(col_s)
            except ValueError as e:
                raise ValueError(f"invalid square key: {key!r}") from e
            if not (0 <= row < 8 and 0 <= col < 8):
                continue
            if not isinstance(value, dict):
                raise ValueError(f"invalid piece at {key!r}")
            kind = value.get("type")
            color = value.get("color")
            if kind not in PIECE_TYPES or color not in COLORS:
                raise ValueError(f"invalid piece at {key!r}")
            has_moved = value.get("hasMoved", False)
            if not isinstance(has_moved, bool):
                raise ValueError(f"invalid hasMoved flag at {key!r}")
            board._grid[row][col] = Piece(kind, color, has_moved)
        return board

    # --- Access ---
    def piece_at(self, sq: Tuple[int, int]) -> Optional[Piece]:
        row, col = sq
        return self._grid[row][col]

    def pieces(self, color: Optional[str] = None) -> Iterator[Tuple[Square, Piece]]:
        """Yield ``(square, piece)`` for occupied squares, row by row."""
        for row in range(8):
            for col in range(8):
                piece = self._grid[row][col]
                if piece is not None and (color is None or piece.color == color):
                    yield Square(row, col), piece

    def find_king(self, color: str) -> Optional[Square]:
        for sq, piece in self.pieces(color):
            if piece.kind == KING:
                return sq
        return None

    def rows(self) -> List[List[Optional[Piece]]]:
        """Return a copy of the grid as nested lists."""
        return [list(row) for row in self._grid]

    # --- Copy-on-write ---
    def copy(self) -> "Board":
        return Board(self._grid)

    def with_pieces(self, changes: Dict[Tuple[int, int], Optional[Piece]]) -> "Board":
        """Return a new board with each ``square -> piece`` (or None) applied."""
        board = self.copy()
        for (row, col), piece in changes.items():
            board._grid[row][col] = piece
        return board

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._grid == other._grid

    def __repr__(self) -> str:
        return f"Board({self.to_fen()!r})"

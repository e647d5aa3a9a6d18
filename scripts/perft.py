#!/usr/bin/env python3
# ruff: noqa: E402
from __future__ import annotations

import argparse
import time
import os
import sys

# Allow running this script directly via `python scripts/perft.py`
# by adding the repo root (which contains `chessroom/`) to sys.path.
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from chessroom.engine.board import Board, STARTPOS_FEN, WHITE, BLACK
from chessroom.engine.perft import divide, perft


def main() -> None:
    parser = argparse.ArgumentParser(description="Run perft on a given placement and depth")
    parser.add_argument(
        "--fen", type=str, default=STARTPOS_FEN, help="FEN placement (default: startpos)"
    )
    parser.add_argument(
        "--color", type=str, default=WHITE, choices=[WHITE, BLACK], help="Side to move"
    )
    parser.add_argument("--depth", type=int, default=3, help="Perft depth (default: 3)")
    parser.add_argument("--divide", action="store_true", help="Print node counts per root move")
    args = parser.parse_args()

    board = Board.from_fen(args.fen)
    start = time.perf_counter()
    if args.divide:
        per_move = divide(board, args.color, args.depth)
        for notation, count in sorted(per_move.items()):
            print(f"{notation}: {count}")
        nodes = sum(per_move.values())
    else:
        nodes = perft(board, args.color, args.depth)
    dt = time.perf_counter() - start
    print(f"nodes={nodes} depth={args.depth} time_ms={int(dt*1000)} nps={int(nodes/max(dt,1e-9))}")


if __name__ == "__main__":
    main()

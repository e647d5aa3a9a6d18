from __future__ import annotations

import secrets
import string
import threading
from typing import Dict, Optional

from ...engine.game import Game


GAME_ID_ALPHABET = string.ascii_uppercase + string.digits
GAME_ID_LENGTH = 6


def generate_game_id(length: int = GAME_ID_LENGTH) -> str:
    """Return a short room code such as ``"K3ZQ9A"``."""
    return "".join(secrets.choice(GAME_ID_ALPHABET) for _ in range(length))


class InMemorySessionStore:
    """Thread-safe in-memory game session store.

    Responsibilities:
    - Create new sessions under short unique room codes
    - Retrieve existing sessions by `game_id`
    - Replace a session's game when a saved position is restored

    Each `Game` is mutated in place by one request at a time; callers hold
    `lock_for(game_id)` around read-modify-write sequences.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._games: Dict[str, Game] = {}
        self._game_locks: Dict[str, threading.Lock] = {}

    def create(self, game: Optional[Game] = None) -> str:
        """Create a new game session and return its `game_id`."""
        if game is None:
            game = Game.new()
        with self._lock:
            gid = generate_game_id()
            while gid in self._games:
                gid = generate_game_id()
            self._games[gid] = game
            self._game_locks[gid] = threading.Lock()
        return gid

    def get(self, game_id: str) -> Optional[Game]:
        with self._lock:
            return self._games.get(game_id)

    def lock_for(self, game_id: str) -> threading.Lock:
        with self._lock:
            if game_id not in self._game_locks:
                raise KeyError(game_id)
            return self._game_locks[game_id]

    def set(self, game_id: str, game: Game) -> None:
        with self._lock:
            if game_id not in self._games:
                raise KeyError(game_id)
            self._games[game_id] = game

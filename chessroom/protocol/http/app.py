from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from .error import (
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from ...engine.game import Game
from ...engine.move import Move, move_to_notation, parse_move, square_to_str, str_to_square
from .session import InMemorySessionStore


logger = logging.getLogger(__name__)


class SquareOut(BaseModel):
    row: int
    col: int


class PieceOut(BaseModel):
    type: str
    color: str
    hasMoved: bool


class GameState(BaseModel):
    game_id: str
    fen: str
    board: Dict[str, PieceOut]
    current_turn: str
    moves: List[str]
    status: str
    winner: Optional[str]
    in_check: Optional[str]
    last_move_from: Optional[SquareOut]
    last_move_to: Optional[SquareOut]


class MoveOut(BaseModel):
    notation: str
    from_square: str
    to_square: str
    promotion: Optional[str] = None
    is_capture: bool = False
    is_castle: Optional[str] = None
    is_en_passant: bool = False


class MoveRequest(BaseModel):
    move: str = Field(..., description="Coordinate move string, e.g., e2e4 or e7e8q")


class ResignRequest(BaseModel):
    color: Literal["white", "black"]


class SetPositionRequest(BaseModel):
    board: Dict[str, Dict[str, Any]] = Field(
        ..., description="Sparse board keyed \"<row>_<col>\", as returned by the state endpoint"
    )
    current_turn: Literal["white", "black"] = "white"


def create_app() -> FastAPI:
    app = FastAPI(title="Chessroom API", version="0.1.0")

    logging.basicConfig(level=logging.INFO)

    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, exception_handler)

    store = InMemorySessionStore()
    app.state.store = store

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=GameState)
    async def create_game() -> GameState:
        game_id = store.create(Game.new())
        logger.info("game created", extra={"game_id": game_id})
        return _state(game_id, _require_game(store, game_id))

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        return _state(game_id, _require_game(store, game_id))

    @app.get("/api/games/{game_id}/moves", response_model=List[MoveOut])
    async def get_moves(
        game_id: str, square: str = Query(..., description="Square name, e.g., e2")
    ) -> List[MoveOut]:
        game = _require_game(store, game_id)
        try:
            sq = str_to_square(square)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return [_move_out(m) for m in game.legal_moves(sq)]

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    async def make_move(game_id: str, req: MoveRequest) -> GameState:
        _require_game(store, game_id)
        try:
            move = parse_move(req.move)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        with store.lock_for(game_id):
            game = _require_game(store, game_id)
            if game.is_over():
                raise HTTPException(status_code=409, detail=f"game is over ({game.status})")
            try:
                game.apply_move(move)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _state(game_id, game)

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        _require_game(store, game_id)
        try:
            game = Game.from_sparse(req.board, current_turn=req.current_turn)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        with store.lock_for(game_id):
            store.set(game_id, game)
        logger.info("position restored", extra={"game_id": game_id})
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/resign", response_model=GameState)
    async def resign(game_id: str, req: ResignRequest) -> GameState:
        _require_game(store, game_id)
        with store.lock_for(game_id):
            game = _require_game(store, game_id)
            if game.is_over():
                raise HTTPException(status_code=409, detail=f"game is over ({game.status})")
            game.resign(req.color)
            return _state(game_id, game)

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    async def undo(game_id: str) -> GameState:
        _require_game(store, game_id)
        with store.lock_for(game_id):
            game = _require_game(store, game_id)
            try:
                game.undo_move()
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _state(game_id, game)

    return app


def _require_game(store: InMemorySessionStore, game_id: str) -> Game:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game


def _state(game_id: str, game: Game) -> GameState:
    doc: Dict[str, Any] = game.snapshot()
    return GameState(game_id=game_id, fen=game.board.to_fen(), **doc)


def _move_out(move: Move) -> MoveOut:
    return MoveOut(
        notation=move_to_notation(move),
        from_square=square_to_str(move.from_sq),
        to_square=square_to_str(move.to_sq),
        promotion=move.promotion,
        is_capture=move.is_capture,
        is_castle=move.is_castle,
        is_en_passant=move.is_en_passant,
    )


# Default app for non-factory servers
app = create_app()

"""HTTP routes: move oracle endpoint, game statistics, and user profiles."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from sqlalchemy.exc import SQLAlchemyError

from tictactoe_server.exceptions import OracleError, OracleUnavailableError, TicTacToeError
from tictactoe_server.game import Move
from tictactoe_server.models import (
    AIMoveRequest,
    AIMoveResponse,
    CreateUserRequest,
    StatsReportRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/ai/move", response_model=AIMoveResponse)
async def ai_move(body: AIMoveRequest, request: Request):
    """Pick the oracle's move for the given board.

    400 when the model answers with an illegal move, 500 when the model is
    unreachable or not configured.
    """
    oracle = request.app.state.llm_oracle
    history = [Move(index=m.position, mark=m.player) for m in body.previousMoves if m.player]
    try:
        move = await oracle.request_move(body.board, body.size, body.difficulty, history)
    except OracleError:
        raise
    except Exception as exc:
        logger.exception("AI move error")
        raise OracleUnavailableError() from exc
    return AIMoveResponse(move=move)


@router.post("/game/stats")
def report_stats(body: StatsReportRequest, request: Request):
    stats = _call_store(
        request.app.state.stats.record_game,
        body.userId,
        body.result,
        body.duration,
        body.boardSize,
        body.difficulty.value,
    )
    return {"message": "Stats updated successfully", "stats": stats}


@router.get("/game/stats")
def get_stats(request: Request, userId: str | None = None):
    if not userId:
        raise TicTacToeError("User ID is required", status_code=400)
    return _call_store(request.app.state.stats.get_stats, userId)


@router.post("/users")
def create_user(body: CreateUserRequest, request: Request):
    user = _call_store(request.app.state.stats.create_user, body.username, body.email)
    return {"user": user}


@router.get("/users/{user_id}")
def get_user(user_id: str, request: Request):
    return {"user": _call_store(request.app.state.stats.get_user, user_id)}


def _call_store(fn, *args):
    try:
        return fn(*args)
    except SQLAlchemyError as exc:
        logger.exception("Stats store failure in %s", fn.__name__)
        raise TicTacToeError("Failed to access game statistics") from exc

"""Pydantic models for the WebSocket message protocol and HTTP bodies."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, ValidationError, model_validator

from tictactoe_server.game import Difficulty

BoardSize = Literal[3, 4, 5]
CellMark = Literal["X", "O"] | None


# ---------------------------------------------------------------------------
# Client → Server
# ---------------------------------------------------------------------------

class IdentifyMsg(BaseModel):
    type: Literal["identify"] = "identify"
    user_id: str = Field(min_length=1)


class LogoutMsg(BaseModel):
    type: Literal["logout"] = "logout"


class NewGameMsg(BaseModel):
    type: Literal["new_game"] = "new_game"
    size: BoardSize = 3
    difficulty: Difficulty = Difficulty.EASY


class PlaceMarkMsg(BaseModel):
    type: Literal["place_mark"] = "place_mark"
    index: int


class ResetMsg(BaseModel):
    type: Literal["reset"] = "reset"


ClientMessage = IdentifyMsg | LogoutMsg | NewGameMsg | PlaceMarkMsg | ResetMsg


# ---------------------------------------------------------------------------
# Server → Client
# ---------------------------------------------------------------------------

class IdentifiedMsg(BaseModel):
    type: Literal["identified"] = "identified"
    user_id: str
    username: str


class LoggedOutMsg(BaseModel):
    type: Literal["logged_out"] = "logged_out"


class GameStartedMsg(BaseModel):
    type: Literal["game_started"] = "game_started"
    game_id: str
    size: int
    difficulty: str
    board: list[str | None]


class MarkPlacedMsg(BaseModel):
    type: Literal["mark_placed"] = "mark_placed"
    index: int
    mark: str
    board: list[str | None]
    next_turn: str | None


class OracleThinkingMsg(BaseModel):
    type: Literal["oracle_thinking"] = "oracle_thinking"


class GameOverMsg(BaseModel):
    type: Literal["game_over"] = "game_over"
    status: str  # "won_by_local" | "won_by_oracle" | "draw"
    result: str  # "won" | "lost" | "draw"
    winning_line: list[int] | None


class ErrorMsg(BaseModel):
    type: Literal["error"] = "error"
    message: str


def parse_client_message(data: dict) -> ClientMessage | None:
    """Parse a raw dict into a typed client message, or None if invalid."""
    if not isinstance(data, dict):
        return None
    msg_type = data.get("type")
    mapping: dict[str, type[BaseModel]] = {
        "identify": IdentifyMsg,
        "logout": LogoutMsg,
        "new_game": NewGameMsg,
        "place_mark": PlaceMarkMsg,
        "reset": ResetMsg,
    }
    model = mapping.get(msg_type)  # type: ignore[arg-type]
    if model is None:
        return None
    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValidationError:
        return None


# ---------------------------------------------------------------------------
# HTTP bodies
# ---------------------------------------------------------------------------

class PreviousMove(BaseModel):
    position: int
    player: CellMark = None


class AIMoveRequest(BaseModel):
    board: list[CellMark]
    size: BoardSize
    difficulty: Difficulty
    previousMoves: list[PreviousMove] = Field(default_factory=list)

    @model_validator(mode="after")
    def board_matches_size(self) -> AIMoveRequest:
        if len(self.board) != self.size * self.size:
            raise ValueError(f"board must have {self.size * self.size} cells")
        return self


class AIMoveResponse(BaseModel):
    move: int


class StatsReportRequest(BaseModel):
    userId: str = Field(min_length=1)
    result: Literal["won", "lost", "draw"]
    duration: float = Field(ge=0)  # minutes
    boardSize: BoardSize
    difficulty: Difficulty


class CreateUserRequest(BaseModel):
    username: str = Field(min_length=3)
    email: str = Field(pattern=r"^\S+@\S+\.\S+$")

"""Per-connection game state: session, current match, and the oracle task."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from fastapi import WebSocket

from tictactoe_server.exceptions import OracleError, UserNotFoundError
from tictactoe_server.game import Difficulty, Move
from tictactoe_server.match import Match
from tictactoe_server.models import (
    ErrorMsg,
    GameOverMsg,
    GameStartedMsg,
    IdentifiedMsg,
    LoggedOutMsg,
    MarkPlacedMsg,
    OracleThinkingMsg,
)
from tictactoe_server.oracle import MoveOracle
from tictactoe_server.session import Session, SessionUser
from tictactoe_server.stats import StatsReporter, StatsService

logger = logging.getLogger(__name__)


class GameConnection:
    """Everything one WebSocket client owns.

    At most one match is live per connection. Starting a new match, resetting,
    or disconnecting discards the previous one and cancels its oracle request.
    """

    def __init__(
        self,
        ws: WebSocket,
        oracle: MoveOracle,
        stats: StatsService | None = None,
        oracle_timeout: float | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.ws = ws
        self.oracle = oracle
        self.stats = stats
        self.oracle_timeout = oracle_timeout
        self.clock = clock
        self.session = Session()
        self.match: Match | None = None
        self.oracle_task: asyncio.Task | None = None

    async def send(self, msg_dict: dict):
        try:
            await self.ws.send_json(msg_dict)
        except Exception:
            logger.debug("Could not send %s, client gone", msg_dict.get("type"))

    async def identify(self, user_id: str):
        if self.stats is None:
            await self.send(ErrorMsg(message="Accounts are not available").model_dump())
            return
        try:
            user = await asyncio.to_thread(self.stats.get_user, user_id)
        except UserNotFoundError as exc:
            await self.send(ErrorMsg(message=exc.message).model_dump())
            return
        self.session = self.session.login(SessionUser(id=user["id"], username=user["username"]))
        await self.send(IdentifiedMsg(user_id=user["id"], username=user["username"]).model_dump())

    async def logout(self):
        self.session = self.session.logout()
        await self.send(LoggedOutMsg().model_dump())

    async def new_game(self, size: int, difficulty: Difficulty):
        self._discard_match()

        reporter = None
        if self.stats is not None and self.session.is_authenticated:
            reporter = StatsReporter(self.stats, self.session.user_id)

        kwargs = {}
        if self.clock is not None:
            kwargs["clock"] = self.clock
        self.match = Match(
            size,
            difficulty,
            self.oracle,
            reporter=reporter,
            oracle_timeout=self.oracle_timeout,
            **kwargs,
        )
        logger.info(
            "Match %s started: %dx%d, %s, user=%s",
            self.match.game_id, size, size, self.match.difficulty.value, self.session.user_id,
        )
        await self.send(
            GameStartedMsg(
                game_id=self.match.game_id,
                size=size,
                difficulty=self.match.difficulty.value,
                board=list(self.match.board.cells),
            ).model_dump()
        )

    async def reset(self):
        if self.match is None:
            await self.send(ErrorMsg(message="No game to reset").model_dump())
            return
        await self.new_game(self.match.size, self.match.difficulty)

    async def place_mark(self, index: int):
        match = self.match
        if match is None:
            await self.send(ErrorMsg(message="No game in progress").model_dump())
            return

        move = await match.play_local(index)
        if move is None:
            # Occupied cell, finished game, or oracle still thinking.
            return

        await self._announce(match, move)
        if match.oracle_pending:
            await self.send(OracleThinkingMsg().model_dump())
            self.oracle_task = asyncio.create_task(self._oracle_turn(match))

    async def close(self):
        self._discard_match()

    async def _oracle_turn(self, match: Match):
        try:
            move = await match.play_oracle()
        except OracleError as exc:
            if match is self.match:
                await self.send(ErrorMsg(message=exc.message).model_dump())
            return
        if move is None or match is not self.match:
            return
        await self._announce(match, move)

    async def _announce(self, match: Match, move: Move):
        await self.send(
            MarkPlacedMsg(
                index=move.index,
                mark=move.mark,
                board=list(match.board.cells),
                next_turn=match.next_turn,
            ).model_dump()
        )
        if match.is_over:
            await self.send(
                GameOverMsg(
                    status=match.status.value,
                    result=match.status.result,
                    winning_line=list(match.winning_line) if match.winning_line else None,
                ).model_dump()
            )

    def _discard_match(self):
        if self.match is not None:
            self.match.discard()
        if self.oracle_task and not self.oracle_task.done():
            self.oracle_task.cancel()
        self.oracle_task = None

"""Turn coordination for one game between the local player and the move oracle."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable
from uuid import uuid4

from tictactoe_server.exceptions import OracleError, OracleUnavailableError
from tictactoe_server.game import (
    LOCAL_MARK,
    ORACLE_MARK,
    Difficulty,
    GameStatus,
    Move,
    create_board,
)
from tictactoe_server.oracle import MoveOracle, validate_oracle_move
from tictactoe_server.stats import StatsReporter

logger = logging.getLogger(__name__)


class Match:
    """One game instance: board, status, and move history.

    The local player always plays X and moves first. After every accepted
    local move that does not end the game the match waits for the oracle;
    local moves are rejected until ``play_oracle`` has finished, whether the
    oracle answered or failed.
    """

    def __init__(
        self,
        size: int,
        difficulty: Difficulty | str,
        oracle: MoveOracle,
        reporter: StatsReporter | None = None,
        oracle_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.game_id = uuid4().hex
        self.board = create_board(size)
        self.size = size
        self.difficulty = Difficulty(difficulty)
        self.oracle = oracle
        self.reporter = reporter
        self.oracle_timeout = oracle_timeout
        self._clock = clock

        self.status = GameStatus.IN_PROGRESS
        self.moves: list[Move] = []
        self.winning_line: tuple[int, ...] | None = None
        self.oracle_pending = False
        self.discarded = False
        self.started_at = clock()
        self.finished_at: float | None = None
        self.report_task: asyncio.Task | None = None

    @property
    def is_over(self) -> bool:
        return self.status.is_terminal

    @property
    def next_turn(self) -> str | None:
        if self.is_over:
            return None
        return ORACLE_MARK if self.oracle_pending else LOCAL_MARK

    @property
    def duration_minutes(self) -> float:
        end = self.finished_at if self.finished_at is not None else self._clock()
        return (end - self.started_at) / 60

    def can_play(self, index: int) -> bool:
        return (
            not self.is_over
            and not self.oracle_pending
            and not self.discarded
            and self.board.is_empty(index)
        )

    def discard(self) -> None:
        """Mark the match as abandoned; a late oracle answer will be dropped."""
        self.discarded = True

    async def play_local(self, index: int) -> Move | None:
        """Apply the local player's move, or return None if it is not allowed."""
        if not self.can_play(index):
            logger.debug("Rejected local move %s in match %s", index, self.game_id)
            return None

        move = self._apply(index, LOCAL_MARK)
        if not self.is_over:
            self.oracle_pending = True
        return move

    async def play_oracle(self) -> Move | None:
        """Ask the oracle for its move and apply it.

        Returns None when there is nothing to do or when the match was
        discarded while the oracle was thinking. Oracle failures are re-raised
        after the match has gone back to accepting local moves; the oracle's
        turn is skipped.
        """
        if self.is_over or self.discarded or not self.oracle_pending:
            return None

        try:
            index = await self._request_oracle_move()
        except OracleError as exc:
            if self.discarded:
                logger.info("Ignoring oracle failure for abandoned match %s", self.game_id)
                return None
            logger.warning(
                "Oracle failed in match %s, skipping its turn: %s", self.game_id, exc.message
            )
            raise
        finally:
            self.oracle_pending = False

        if self.discarded:
            logger.info("Dropping oracle move %d for abandoned match %s", index, self.game_id)
            return None
        return self._apply(index, ORACLE_MARK)

    async def play(self, index: int) -> list[Move]:
        """Play a full turn: the local move and, if the game goes on, the oracle's reply."""
        local = await self.play_local(index)
        if local is None:
            return []
        played = [local]
        if self.oracle_pending:
            reply = await self.play_oracle()
            if reply is not None:
                played.append(reply)
        return played

    async def _request_oracle_move(self) -> int:
        cells = list(self.board.cells)
        request = self.oracle.request_move(cells, self.size, self.difficulty, tuple(self.moves))
        try:
            if self.oracle_timeout:
                reply = await asyncio.wait_for(request, self.oracle_timeout)
            else:
                reply = await request
        except asyncio.TimeoutError as exc:
            raise OracleUnavailableError("AI move timed out") from exc
        except OracleError:
            raise
        except Exception as exc:
            logger.exception("Unexpected oracle error in match %s", self.game_id)
            raise OracleUnavailableError() from exc
        return validate_oracle_move(reply, self.board.cells, self.size)

    def _apply(self, index: int, mark: str) -> Move:
        self.board.place(index, mark)
        move = Move(index=index, mark=mark)
        self.moves.append(move)

        line = self.board.winning_line(mark)
        if line is not None:
            self.winning_line = line
            won = GameStatus.WON_BY_LOCAL if mark == LOCAL_MARK else GameStatus.WON_BY_ORACLE
            self._finish(won)
        elif self.board.is_full():
            self._finish(GameStatus.DRAW)
        return move

    def _finish(self, status: GameStatus) -> None:
        self.status = status
        self.finished_at = self._clock()
        logger.info(
            "Match %s finished: %s after %d moves", self.game_id, status.value, len(self.moves)
        )
        if self.reporter is not None:
            self.report_task = asyncio.create_task(
                self.reporter.report_outcome(
                    status, self.duration_minutes, self.size, self.difficulty
                )
            )

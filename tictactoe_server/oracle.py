"""Move oracle clients: ask an external language model for the O player's move."""

from __future__ import annotations

import logging
import re
from typing import Protocol, Sequence

import httpx
import openai
from openai import AsyncOpenAI

from tictactoe_server.exceptions import (
    InvalidOracleMoveError,
    OracleConfigurationError,
    OracleUnavailableError,
)
from tictactoe_server.game import ORACLE_MARK, Cell, Difficulty, Move

logger = logging.getLogger(__name__)

# Higher difficulty means less sampling randomness.
TEMPERATURES = {
    Difficulty.EASY: 1.0,
    Difficulty.MEDIUM: 0.7,
    Difficulty.HARD: 0.1,
}

BASE_PROMPT = (
    f"You are playing as {ORACLE_MARK} in a Tic Tac Toe game. "
    "You must choose a valid move from the available positions.\n"
    "Your response must be only a single number representing your chosen position "
    "from the available numbers shown on the board.\n"
    "You must select a position that is not already taken "
    "(positions marked with X or O are taken)."
)

DIFFICULTY_PROMPTS = {
    Difficulty.HARD: (
        "You are a Tic Tac Toe expert.\n"
        "Analyze the board deeply and make the optimal move.\n"
        "First priority is winning moves, second is blocking opponent's winning moves, "
        "third is creating winning opportunities.\n"
        "Always think several moves ahead for the best strategic position."
    ),
    Difficulty.MEDIUM: (
        "You are a casual Tic Tac Toe player.\n"
        "Make reasonable moves but occasionally make minor mistakes.\n"
        "Sometimes miss non-obvious winning opportunities.\n"
        "Focus mainly on immediate threats and opportunities."
    ),
    Difficulty.EASY: (
        "You are a beginner at Tic Tac Toe.\n"
        "Play casually without deep analysis.\n"
        "Frequently overlook winning opportunities and threats.\n"
        "Focus only on the current move without planning ahead."
    ),
}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class MoveOracle(Protocol):
    async def request_move(
        self,
        board: Sequence[Cell],
        size: int,
        difficulty: Difficulty,
        history: Sequence[Move],
    ) -> int:
        ...


def format_board(board: Sequence[Cell], size: int) -> str:
    """Render the board as text, showing the index of every empty cell.

    >>> print(format_board(["X", None, None, None, "O", None, None, None, None], 3))
    X | 1 | 2
    -----------
    3 | O | 5
    -----------
    6 | 7 | 8
    """
    rows = []
    for r in range(size):
        cells = [
            board[r * size + c] or str(r * size + c)
            for c in range(size)
        ]
        rows.append(" | ".join(cells))
    separator = "\n" + "-" * (size * 4 - 1) + "\n"
    return separator.join(rows)


def system_prompt(difficulty: Difficulty) -> str:
    extra = DIFFICULTY_PROMPTS.get(difficulty)
    if extra is None:
        return BASE_PROMPT
    return f"{BASE_PROMPT}\n{extra}"


def user_prompt(board: Sequence[Cell], size: int, history: Sequence[Move]) -> str:
    lines = [
        "Here's the current Tic Tac Toe board with available positions numbered:",
        format_board(board, size),
    ]
    if history:
        played = ", ".join(f"{m.mark} at {m.index}" for m in history)
        lines.append(f"Moves so far, in order: {played}.")
    lines.append(
        "Choose a position number from the available positions shown on the board "
        "(positions not marked with X or O).\n"
        "Respond with only the position number. Your response must be a valid available position."
    )
    return "\n".join(lines)


def validate_oracle_move(reply: object, board: Sequence[Cell], size: int) -> int:
    """Turn an oracle reply into a legal cell index or raise InvalidOracleMoveError.

    Text replies are read up to their first non-digit, so "4" and "4." are both
    accepted while "four" is not.
    """
    if isinstance(reply, bool):
        raise InvalidOracleMoveError(reply)
    if isinstance(reply, int):
        move = reply
    elif isinstance(reply, str):
        match = _LEADING_INT.match(reply)
        if match is None:
            raise InvalidOracleMoveError(reply)
        move = int(match.group(1))
    else:
        raise InvalidOracleMoveError(reply)

    if move < 0 or move >= size * size or move >= len(board):
        raise InvalidOracleMoveError(reply)
    if board[move] is not None:
        raise InvalidOracleMoveError(reply)
    return move


class LLMMoveOracle:
    """Asks a chat completion model for a move."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o",
        client: AsyncOpenAI | None = None,
    ):
        if client is None and api_key:
            client = AsyncOpenAI(api_key=api_key)
        self.client = client
        self.model = model

    async def request_move(
        self,
        board: Sequence[Cell],
        size: int,
        difficulty: Difficulty,
        history: Sequence[Move],
    ) -> int:
        if self.client is None:
            raise OracleConfigurationError()

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt(difficulty)},
                    {"role": "user", "content": user_prompt(board, size, history)},
                ],
                temperature=TEMPERATURES.get(difficulty, 1.0),
                max_tokens=10,
                presence_penalty=0,
                frequency_penalty=0,
            )
        except openai.OpenAIError as exc:
            logger.warning("Completion request failed: %s", exc)
            raise OracleUnavailableError() from exc

        text = ""
        if response.choices:
            text = (response.choices[0].message.content or "").strip()
        logger.debug("Oracle replied %r for %dx%d board (%s)", text, size, size, difficulty.value)
        return validate_oracle_move(text, board, size)


class HttpMoveOracle:
    """Asks a remote move endpoint (``POST {base_url}/api/ai/move``) for a move."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = base_url.rstrip("/") + "/api/ai/move"
        self.timeout = timeout
        self._client = client

    async def request_move(
        self,
        board: Sequence[Cell],
        size: int,
        difficulty: Difficulty,
        history: Sequence[Move],
    ) -> int:
        payload = {
            "board": list(board),
            "size": size,
            "difficulty": difficulty.value,
            "previousMoves": [m.to_dict() for m in history],
        }
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Move endpoint %s unreachable: %s", self.url, exc)
            raise OracleUnavailableError() from exc

        if response.status_code == 400:
            raise InvalidOracleMoveError(_error_message(response))
        if response.is_error:
            raise OracleUnavailableError(_error_message(response) or "Failed to get AI move")

        try:
            data = response.json()
        except ValueError:
            raise InvalidOracleMoveError(response.text)
        move = data.get("move") if isinstance(data, dict) else None
        return validate_oracle_move(move, board, size)


def _error_message(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    return data.get("error") or data.get("message")

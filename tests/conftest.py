"""Shared fixtures and test doubles."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.testclient import TestClient

from tictactoe_server.config import Settings
from tictactoe_server.main import create_app
from tictactoe_server.oracle import LLMMoveOracle


class ScriptedOracle:
    """Answers with a fixed list of moves (or raises the exceptions in it)."""

    def __init__(self, moves=()):
        self.moves = list(moves)
        self.calls = []

    async def request_move(self, board, size, difficulty, history):
        self.calls.append(
            {"board": list(board), "size": size, "difficulty": difficulty, "history": list(history)}
        )
        move = self.moves.pop(0)
        if isinstance(move, BaseException):
            raise move
        return move


class GatedOracle:
    """Waits for ``release`` before answering."""

    def __init__(self, move):
        self.move = move
        self.release = asyncio.Event()
        self.asked = asyncio.Event()

    async def request_move(self, board, size, difficulty, history):
        self.asked.set()
        await self.release.wait()
        return self.move


def openai_client_replying(content):
    message = MagicMock()
    message.content = content
    response = MagicMock()
    response.choices = [MagicMock(message=message)]
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


@pytest.fixture
def scripted_oracle():
    return ScriptedOracle


@pytest.fixture
def gated_oracle():
    return GatedOracle


@pytest.fixture
def make_openai_client():
    return openai_client_replying


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        oracle_timeout=5.0,
        cors_origins=["http://localhost:3000"],
    )


@pytest.fixture
def oracle():
    return ScriptedOracle()


@pytest.fixture
def llm_client():
    return openai_client_replying("4")


@pytest.fixture
def client(settings, oracle, llm_client):
    app = create_app(settings, oracle=oracle, llm_oracle=LLMMoveOracle(client=llm_client))
    with TestClient(app) as test_client:
        yield test_client

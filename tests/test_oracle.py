"""Tests for the move oracle clients: prompt building, reply validation, transports."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from tictactoe_server.exceptions import (
    InvalidOracleMoveError,
    OracleConfigurationError,
    OracleUnavailableError,
)
from tictactoe_server.game import Difficulty, Move
from tictactoe_server.oracle import (
    TEMPERATURES,
    HttpMoveOracle,
    LLMMoveOracle,
    format_board,
    system_prompt,
    user_prompt,
    validate_oracle_move,
)

EMPTY_3 = [None] * 9


def make_http_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestFormatBoard:
    def test_3x3(self):
        board = ["X", None, None, None, "O", None, None, None, None]
        assert format_board(board, 3) == (
            "X | 1 | 2\n"
            "-----------\n"
            "3 | O | 5\n"
            "-----------\n"
            "6 | 7 | 8"
        )

    def test_4x4_separator_width(self):
        text = format_board([None] * 16, 4)
        lines = text.split("\n")
        assert lines[0] == "0 | 1 | 2 | 3"
        assert lines[1] == "-" * 15
        assert lines[-1] == "12 | 13 | 14 | 15"
        assert len(lines) == 7


class TestPrompts:
    @pytest.mark.parametrize("difficulty", list(Difficulty))
    def test_every_difficulty_has_a_profile(self, difficulty):
        prompt = system_prompt(difficulty)
        assert prompt.startswith("You are playing as O")
        assert prompt != system_prompt(Difficulty.EASY) or difficulty is Difficulty.EASY

    def test_harder_means_colder(self):
        assert TEMPERATURES[Difficulty.HARD] < TEMPERATURES[Difficulty.MEDIUM] < TEMPERATURES[Difficulty.EASY]

    def test_user_prompt_lists_history(self):
        text = user_prompt(EMPTY_3, 3, [Move(0, "X"), Move(4, "O")])
        assert "0 | 1 | 2" in text
        assert "X at 0, O at 4" in text

    def test_user_prompt_without_history(self):
        assert "Moves so far" not in user_prompt(EMPTY_3, 3, [])


class TestValidateOracleMove:
    @pytest.mark.parametrize("reply, expected", [("4", 4), (" 7 ", 7), ("2.", 2), (0, 0), (8, 8)])
    def test_accepts_legal_moves(self, reply, expected):
        assert validate_oracle_move(reply, EMPTY_3, 3) == expected

    @pytest.mark.parametrize("reply", ["", "four", "-1", "9", 9, -3, None, 4.0, True, [4]])
    def test_rejects_garbage(self, reply):
        with pytest.raises(InvalidOracleMoveError):
            validate_oracle_move(reply, EMPTY_3, 3)

    def test_rejects_occupied_cell(self):
        board = list(EMPTY_3)
        board[4] = "X"
        with pytest.raises(InvalidOracleMoveError) as exc_info:
            validate_oracle_move(4, board, 3)
        assert exc_info.value.message == "AI returned invalid move"
        assert exc_info.value.status_code == 400


class TestLLMMoveOracle:
    @pytest.mark.asyncio
    async def test_returns_parsed_move(self, make_openai_client):
        client = make_openai_client(" 5\n")
        oracle = LLMMoveOracle(client=client, model="test-model")

        move = await oracle.request_move(EMPTY_3, 3, Difficulty.HARD, [])

        assert move == 5
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == TEMPERATURES[Difficulty.HARD]
        assert kwargs["max_tokens"] == 10
        system, user = kwargs["messages"]
        assert system["role"] == "system"
        assert system["content"] == system_prompt(Difficulty.HARD)
        assert "6 | 7 | 8" in user["content"]

    @pytest.mark.asyncio
    async def test_invalid_reply(self, make_openai_client):
        board = ["X"] + [None] * 8
        oracle = LLMMoveOracle(client=make_openai_client("0"))
        with pytest.raises(InvalidOracleMoveError):
            await oracle.request_move(board, 3, Difficulty.EASY, [Move(0, "X")])

    @pytest.mark.asyncio
    async def test_empty_reply(self, make_openai_client):
        oracle = LLMMoveOracle(client=make_openai_client(None))
        with pytest.raises(InvalidOracleMoveError):
            await oracle.request_move(EMPTY_3, 3, Difficulty.EASY, [])

    @pytest.mark.asyncio
    async def test_api_failure(self):
        client = MagicMock()
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=request)
        )
        oracle = LLMMoveOracle(client=client)
        with pytest.raises(OracleUnavailableError):
            await oracle.request_move(EMPTY_3, 3, Difficulty.MEDIUM, [])

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        oracle = LLMMoveOracle(api_key=None)
        with pytest.raises(OracleConfigurationError):
            await oracle.request_move(EMPTY_3, 3, Difficulty.MEDIUM, [])


class TestHttpMoveOracle:
    @pytest.mark.asyncio
    async def test_posts_game_state(self):
        seen = []

        def handler(request: httpx.Request):
            seen.append((request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={"move": 8})

        board = ["X"] + [None] * 8
        async with make_http_client(handler) as client:
            oracle = HttpMoveOracle("http://oracle.test/", client=client)
            move = await oracle.request_move(board, 3, Difficulty.MEDIUM, [Move(0, "X")])

        assert move == 8
        path, payload = seen[0]
        assert path == "/api/ai/move"
        assert payload == {
            "board": board,
            "size": 3,
            "difficulty": "medium",
            "previousMoves": [{"position": 0, "player": "X"}],
        }

    @pytest.mark.asyncio
    async def test_rejects_occupied_cell_from_endpoint(self):
        board = [None] * 4 + ["X"] + [None] * 4
        async with make_http_client(lambda r: httpx.Response(200, json={"move": 4})) as client:
            oracle = HttpMoveOracle("http://oracle.test", client=client)
            with pytest.raises(InvalidOracleMoveError):
                await oracle.request_move(board, 3, Difficulty.EASY, [])
        assert board[4] == "X"

    @pytest.mark.asyncio
    async def test_bad_request_is_invalid_move(self):
        def handler(request):
            return httpx.Response(400, json={"error": "AI returned invalid move"})

        async with make_http_client(handler) as client:
            oracle = HttpMoveOracle("http://oracle.test", client=client)
            with pytest.raises(InvalidOracleMoveError):
                await oracle.request_move(EMPTY_3, 3, Difficulty.EASY, [])

    @pytest.mark.asyncio
    async def test_server_error(self):
        def handler(request):
            return httpx.Response(500, json={"error": "Failed to generate AI move"})

        async with make_http_client(handler) as client:
            oracle = HttpMoveOracle("http://oracle.test", client=client)
            with pytest.raises(OracleUnavailableError) as exc_info:
                await oracle.request_move(EMPTY_3, 3, Difficulty.EASY, [])
        assert exc_info.value.message == "Failed to generate AI move"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_http_client(handler) as client:
            oracle = HttpMoveOracle("http://oracle.test", client=client)
            with pytest.raises(OracleUnavailableError):
                await oracle.request_move(EMPTY_3, 3, Difficulty.EASY, [])

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        async with make_http_client(lambda r: httpx.Response(200, text="not json")) as client:
            oracle = HttpMoveOracle("http://oracle.test", client=client)
            with pytest.raises(InvalidOracleMoveError):
                await oracle.request_move(EMPTY_3, 3, Difficulty.EASY, [])

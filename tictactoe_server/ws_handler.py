"""WebSocket endpoint and message routing."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from tictactoe_server.connection import GameConnection
from tictactoe_server.models import (
    ErrorMsg,
    IdentifyMsg,
    LogoutMsg,
    NewGameMsg,
    PlaceMarkMsg,
    ResetMsg,
    parse_client_message,
)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    state = ws.app.state
    conn = GameConnection(
        ws,
        oracle=state.oracle,
        stats=state.stats,
        oracle_timeout=state.settings.oracle_timeout,
        clock=getattr(state, "clock", None),
    )
    try:
        while True:
            data = await ws.receive_json()
            msg = parse_client_message(data)
            if msg is None:
                await ws.send_json(ErrorMsg(message="Unknown or invalid message").model_dump())
                continue

            if isinstance(msg, PlaceMarkMsg):
                await conn.place_mark(msg.index)

            elif isinstance(msg, NewGameMsg):
                await conn.new_game(msg.size, msg.difficulty)

            elif isinstance(msg, ResetMsg):
                await conn.reset()

            elif isinstance(msg, IdentifyMsg):
                await conn.identify(msg.user_id)

            elif isinstance(msg, LogoutMsg):
                await conn.logout()
    except WebSocketDisconnect:
        pass
    finally:
        await conn.close()

# runmate/routers/realtime.py
"""
WebSocket endpoint for real-time push: WS /ws?token=<jwt>.

The socket joins the caller's own channel (user_{id}) and receives every
event emitted to it as {"event": ..., "data": ...}. The client may send
"ping" and gets "pong" back; anything else it sends is ignored.

The token is checked in a session that is closed before the handshake
completes; an open socket holds no database connection.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from starlette.concurrency import run_in_threadpool

from runmate.core.exceptions import UnauthorizedError
from runmate.db import get_session_factory
from runmate.services.realtime import Connection, hub, user_channel
from runmate.utils.auth_dep import user_from_token

log = logging.getLogger(__name__)

router = APIRouter()


def _authenticate(session_factory, token: Optional[str]) -> int:
    with session_factory() as db:
        return user_from_token(token, db).id


async def _pump(websocket: WebSocket, conn: Connection) -> None:
    while True:
        message = await conn.queue.get()
        await websocket.send_json(message)


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    session_factory=Depends(get_session_factory),
):
    try:
        user_id = await run_in_threadpool(_authenticate, session_factory, token)
    except UnauthorizedError as e:
        log.info("realtime: rejected socket (%s)", e.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    conn = hub.connect(user_channel(user_id), asyncio.get_running_loop())
    await websocket.send_json({"event": "connected", "data": {"userId": user_id}})

    sender = asyncio.create_task(_pump(websocket, conn))
    try:
        while True:
            text = await websocket.receive_text()
            if text == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(conn)
        sender.cancel()
        # the pump ends cancelled, or with the send that failed
        for outcome in await asyncio.gather(sender, return_exceptions=True):
            if isinstance(outcome, Exception):
                log.warning("realtime: push to user %s failed: %r", user_id, outcome)

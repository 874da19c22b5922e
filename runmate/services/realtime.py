# runmate/services/realtime.py
"""
Real-time push over WebSockets.

Every connected client subscribes to its own channel ``user_{id}``. Handlers
call ``notify(...)``, which is fire-and-forget: a failed delivery is logged,
never retried, and never turns a successful request into an error.

Route handlers are sync and run in the threadpool, so ``emit`` hands the
payload to the socket's event loop with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol

log = logging.getLogger(__name__)

# Event names the frontend listens for
NEW_MESSAGE = "new_message"
MESSAGE_READ = "message_read"
MESSAGE_DELETED = "message_deleted"


def user_channel(user_id: int) -> str:
    return f"user_{user_id}"


class PushChannel(Protocol):
    def emit(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        ...


@dataclass(eq=False)
class Connection:
    channel: str
    loop: asyncio.AbstractEventLoop
    queue: "asyncio.Queue[Dict[str, Any]]" = field(default_factory=asyncio.Queue)


class RealtimeHub:
    """In-process registry of live sockets, keyed by channel."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: Dict[str, List[Connection]] = {}

    def connect(self, channel: str, loop: asyncio.AbstractEventLoop) -> Connection:
        conn = Connection(channel=channel, loop=loop)
        with self._lock:
            self._connections.setdefault(channel, []).append(conn)
        log.debug("realtime: %s connected", channel)
        return conn

    def disconnect(self, conn: Connection) -> None:
        with self._lock:
            conns = self._connections.get(conn.channel, [])
            if conn in conns:
                conns.remove(conn)
            if not conns:
                self._connections.pop(conn.channel, None)
        log.debug("realtime: %s disconnected", conn.channel)

    def connection_count(self, channel: Optional[str] = None) -> int:
        with self._lock:
            if channel is not None:
                return len(self._connections.get(channel, []))
            return sum(len(c) for c in self._connections.values())

    def emit(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        message = {"event": event, "data": payload}
        with self._lock:
            targets = list(self._connections.get(channel, []))
        for conn in targets:
            conn.loop.call_soon_threadsafe(conn.queue.put_nowait, message)


hub = RealtimeHub()


def get_push_channel() -> Optional[PushChannel]:
    """FastAPI dependency; tests override it with a recording channel."""
    return hub


def notify(
    push: Optional[PushChannel],
    user_ids: Iterable[int],
    event: str,
    payload: Dict[str, Any],
    *,
    exclude: Optional[int] = None,
) -> None:
    if push is None:
        return
    for uid in user_ids:
        if uid == exclude:
            continue
        try:
            push.emit(user_channel(uid), event, payload)
        except Exception:
            log.warning("realtime: failed to emit %s to user %s", event, uid, exc_info=True)

import asyncio
import gc
from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool
from starlette.websockets import WebSocketDisconnect

from runmate.core.security import create_access_token
from runmate.db import Base, enable_sqlite_savepoints, get_db, get_session_factory
from runmate.main import app
from runmate.models.user import User
from runmate.routers import realtime as realtime_router
from runmate.services.realtime import RealtimeHub, hub, notify, user_channel


def test_hub_delivers_only_to_the_channel():
    async def scenario():
        local = RealtimeHub()
        loop = asyncio.get_running_loop()
        mine = local.connect("user_1", loop)
        other = local.connect("user_2", loop)

        local.emit("user_1", "new_message", {"chatId": 7})
        received = await asyncio.wait_for(mine.queue.get(), timeout=1)
        assert received == {"event": "new_message", "data": {"chatId": 7}}
        assert other.queue.empty()

        local.disconnect(mine)
        assert local.connection_count("user_1") == 0
        assert local.connection_count() == 1

    asyncio.run(scenario())


def test_emit_without_listeners_is_silent():
    RealtimeHub().emit("user_404", "new_message", {})


class _FlakyPush:
    def __init__(self, broken_channel):
        self.broken_channel = broken_channel
        self.sent = []

    def emit(self, channel, event, payload):
        if channel == self.broken_channel:
            raise RuntimeError("socket gone")
        self.sent.append(channel)


def test_notify_skips_sender_and_survives_failures():
    push = _FlakyPush(broken_channel="user_2")
    notify(push, [1, 2, 3, 4], "new_message", {}, exclude=4)
    assert push.sent == ["user_1", "user_3"]


def test_notify_without_channel_is_a_no_op():
    notify(None, [1, 2], "new_message", {})


def test_socket_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws?token=not-a-jwt") as ws:
            ws.receive_json()


def test_socket_rejects_missing_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()


def test_socket_receives_own_channel(client, make_user):
    user = make_user()
    token = create_access_token({"sub": str(user.id)})

    with client.websocket_connect(f"/ws?token={token}") as ws:
        assert ws.receive_json() == {"event": "connected", "data": {"userId": user.id}}

        ws.send_text("ping")
        assert ws.receive_text() == "pong"

        hub.emit(user_channel(user.id), "message_deleted", {"chatId": 1, "messageId": 2})
        assert ws.receive_json() == {"event": "message_deleted", "data": {"chatId": 1, "messageId": 2}}


@pytest.fixture
def small_pool(tmp_path):
    """A file database behind a one-connection pool, so a leaked checkout blocks everyone."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'pool.db'}",
        connect_args={"check_same_thread": False},
        poolclass=QueuePool,
        pool_size=1,
        max_overflow=0,
        pool_timeout=1,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def _get_db():
        session = factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: factory
    try:
        yield engine, factory
    finally:
        app.dependency_overrides.clear()
        engine.dispose()


def test_open_socket_holds_no_connection(small_pool):
    engine, factory = small_pool
    with factory() as session:
        user = User(email="pool@example.com", password_hash="x", first_name="Pia", last_name="Pool")
        session.add(user)
        session.commit()
        user_id = user.id
    token = create_access_token({"sub": str(user_id)})

    with TestClient(app) as c:
        # the first socket writes last_active, the second only reads
        for _ in range(2):
            with c.websocket_connect(f"/ws?token={token}") as ws:
                assert ws.receive_json()["data"] == {"userId": user_id}
                assert engine.pool.checkedout() == 0

                resp = c.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
                assert resp.status_code == 200
                assert resp.json()["data"]["id"] == user_id


class _DroppingSocket:
    """Accepts, then fails every push after the greeting and hangs up shortly."""

    def __init__(self):
        self.sent = []

    async def accept(self):
        pass

    async def close(self, code=1000):
        pass

    async def send_json(self, message):
        if message["event"] != "connected":
            raise RuntimeError("connection reset")
        self.sent.append(message)

    async def send_text(self, text):
        self.sent.append(text)

    async def receive_text(self):
        await asyncio.sleep(0.05)
        raise WebSocketDisconnect(1000)


def test_failed_push_is_collected_on_disconnect(db, make_user, caplog):
    user = make_user()
    token = create_access_token({"sub": str(user.id)})
    user_id = user.id
    channel = user_channel(user_id)

    @contextmanager
    def session_factory():
        yield db

    async def scenario():
        unretrieved = []
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(lambda _loop, context: unretrieved.append(context))

        socket = _DroppingSocket()
        task = asyncio.create_task(
            realtime_router.realtime_socket(socket, token=token, session_factory=session_factory)
        )
        while hub.connection_count(channel) == 0:
            await asyncio.sleep(0.005)
        hub.emit(channel, "new_message", {"chatId": 1})
        await task

        gc.collect()
        await asyncio.sleep(0)
        return socket, unretrieved

    socket, unretrieved = asyncio.run(scenario())

    assert socket.sent == [{"event": "connected", "data": {"userId": user_id}}]
    assert hub.connection_count(channel) == 0
    assert unretrieved == []
    assert "connection reset" in caplog.text

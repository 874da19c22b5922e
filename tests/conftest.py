"""
Pytest configuration and fixtures

Every test gets a fresh in-memory SQLite schema. The app's get_db and
the websocket's session factory are overridden to hand out the test's own
session (rolled back after each use, as closing a real session would),
and the real-time hub is
replaced by a channel that just records what was emitted.
"""
import os

# must be set before anything from runmate is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret-key-with-at-least-32-characters!"
os.environ["AUTO_COMPLETE_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from contextlib import contextmanager
from datetime import timedelta
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from runmate.core.security import create_access_token, get_password_hash
from runmate.db import Base, enable_sqlite_savepoints, get_db, get_session_factory, utcnow
from runmate.main import app
from runmate.models.user import User
from runmate.repositories.run_events import RunEventRepository
from runmate.services.realtime import get_push_channel

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_savepoints(engine)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

PASSWORD = "secret123"
_password_hash = None
_seq = count(1)


class RecordingPush:
    """Push channel double: remembers every emit as (channel, event, payload)."""

    def __init__(self):
        self.sent = []

    def emit(self, channel, event, payload):
        self.sent.append((channel, event, payload))

    def events_for(self, user_id, event=None):
        return [
            payload
            for channel, name, payload in self.sent
            if channel == f"user_{user_id}" and (event is None or name == event)
        ]


@pytest.fixture
def db():
    Base.metadata.create_all(engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def push():
    return RecordingPush()


@pytest.fixture
def client(db, push):
    def _get_db():
        try:
            yield db
        finally:
            db.rollback()

    @contextmanager
    def _short_session():
        try:
            yield db
        finally:
            db.rollback()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: _short_session
    app.dependency_overrides[get_push_channel] = lambda: push
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _hash():
    global _password_hash
    if _password_hash is None:
        _password_hash = get_password_hash(PASSWORD)
    return _password_hash


@pytest.fixture
def make_user(db):
    def _make(first_name="Runner", last_name=None, **fields):
        n = next(_seq)
        user = User(
            email=fields.pop("email", f"runner{n}@example.com"),
            password_hash=_hash(),
            first_name=first_name,
            last_name=last_name or f"Nr{n}",
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_event(db):
    def _make(host, *, days=3, participants=(), **fields):
        data = {
            "title": "Morning 10k",
            "description": "Easy pace along the water",
            "location_name": "Djurgården",
            "distance": 10.0,
            "pace": 330,
            "date": utcnow() + timedelta(days=days),
            "max_participants": 4,
        }
        status = fields.pop("status", None)
        data.update(fields)
        repo = RunEventRepository(db)
        run_event = repo.create(host.id, **data)
        for user in participants:
            repo.add_participant(run_event, user.id)
        if status is not None:
            run_event.status = status
        db.commit()
        db.refresh(run_event)
        return run_event

    return _make


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def headers():
    return auth_headers

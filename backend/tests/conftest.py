from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from visionscreen.db import Base, get_db
from visionscreen.main import app
from visionscreen.routers import sessions as sessions_router


class StepClock:
    """Millisecond clock that advances a fixed step on every read."""

    def __init__(self, step_ms: int = 500) -> None:
        self.step_ms = step_ms
        self.now = 0

    def __call__(self) -> int:
        value = self.now
        self.now += self.step_ms
        return value


class ScriptedChoice:
    """Replays a fixed script of picks; falls back to the first option when a pick is not allowed."""

    def __init__(self, script) -> None:
        self.script = list(script)
        self.calls = 0

    def __call__(self, options):
        pick = self.script[self.calls % len(self.script)]
        self.calls += 1
        return pick if pick in options else options[0]


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    sessions_router._sessions.clear()
    sessions_router._saved.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    sessions_router._sessions.clear()
    sessions_router._saved.clear()


@pytest.fixture
def auth_headers(client):
    creds = {"username": "screener", "password": "s3cret-pass"}
    response = client.post("/auth/register", json=creds)
    assert response.status_code == 201
    token = client.post("/auth/token", data=creds).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}

"""
Shared pytest fixtures for Dispatch tests.

- In-memory SQLite engine (one connection shared through StaticPool)
- Per-test Session and user factory
- FastAPI TestClient wired to the test engine
- Bearer token headers
- Time freezing utilities
"""

import pytest
from fastapi.testclient import TestClient
from freezegun import freeze_time
from sqlalchemy.pool import StaticPool
from sqlmodel import Session

from dispatch_app.db.config import build_engine, get_session
from dispatch_app.db.init import init_db
from dispatch_app.main import app
from dispatch_app.middleware.auth import create_access_token
from dispatch_app.models.user import User


@pytest.fixture
def engine():
    """Fresh in-memory database with all tables created."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(session):
    """
    Returns a function that inserts a user.

    Usage:
        def test_something(make_user):
            user = make_user(time_zone="Asia/Tokyo")
    """
    counter = {"n": 0}

    def _make_user(user_id=None, time_zone=None):
        counter["n"] += 1
        user_id = user_id or f"user-{counter['n']}"
        user = User(id=user_id, email=f"{user_id}@example.com", name=user_id, time_zone=time_zone)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user(user_id="alice", time_zone="UTC")


@pytest.fixture
def client(engine):
    """TestClient whose requests use the in-memory database."""

    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """
    Returns a function building Authorization headers for a user id.

    Usage:
        response = client.get(url, headers=auth_headers("alice"))
    """

    def _headers(user_id, email=None):
        token = create_access_token(user_id, email=email or f"{user_id}@example.com")
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def frozen_time():
    """Freezes time to 2026-02-21 12:00:00 UTC (a Saturday)."""
    with freeze_time("2026-02-21 12:00:00") as frozen:
        yield frozen

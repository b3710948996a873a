from pathlib import Path

from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / ".env.test"
load_dotenv(env_file)

from contextlib import asynccontextmanager  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.db.base  # noqa: E402, F401
from app.core import events  # noqa: E402
from app.core import redis as redis_module  # noqa: E402
from app.db.session import Base, get_db, get_session_factory  # noqa: E402
from app.main import app  # noqa: E402
from app.support import tasks as support_tasks  # noqa: E402
from tests.utils.factories import create_profile_factory  # noqa: E402

UNIVERSITY = "Northfield University"
OTHER_UNIVERSITY = "Lakeside College"


@pytest.fixture
def memory_engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(memory_engine):
    return sessionmaker(bind=memory_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def mock_redis():
    """Redis client double keeping string keys in a dict."""
    store: dict[str, str] = {}

    async def setex(key, ttl, value):
        store[key] = value

    async def get(key):
        return store.get(key)

    async def delete(*keys):
        return sum(1 for key in keys if store.pop(key, None) is not None)

    redis = MagicMock()
    redis.store = store
    redis.ping = AsyncMock(return_value=True)
    redis.setex = AsyncMock(side_effect=setex)
    redis.get = AsyncMock(side_effect=get)
    redis.delete = AsyncMock(side_effect=delete)
    redis.publish = AsyncMock(return_value=0)
    return redis


@pytest.fixture
def change_feed():
    feed = events.InMemoryChangeFeed()
    events.change_feed = feed
    yield feed
    events.change_feed = None


@pytest.fixture(autouse=True)
def reply_notification(monkeypatch):
    """Replace the Celery reply-email task so nothing reaches a broker."""
    task = MagicMock()
    monkeypatch.setattr(support_tasks, "send_ticket_reply_notification", task)
    return task


@pytest.fixture
async def test_app(db_session, session_factory, mock_redis, change_feed):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    redis_module.redis_client = mock_redis

    yield app

    app.dependency_overrides.clear()
    redis_module.redis_client = None


@pytest.fixture
async def test_client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client


@asynccontextmanager
async def _no_lifespan(app):
    yield


@pytest.fixture
def ws_client(monkeypatch, db_session, session_factory, mock_redis, change_feed):
    """Blocking client for websocket tests.

    HTTP calls and websocket sessions share the client's event loop, so change
    signals published by a request reach the open streams. The lifespan is
    skipped to keep the Redis double in place.
    """

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    monkeypatch.setattr(app.router, "lifespan_context", _no_lifespan)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    redis_module.redis_client = mock_redis

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    redis_module.redis_client = None


@pytest.fixture
def student(db_session):
    return create_profile_factory(db_session, university=UNIVERSITY, role="student")


@pytest.fixture
def other_student(db_session):
    return create_profile_factory(db_session, university=UNIVERSITY, role="student")


@pytest.fixture
def foreign_student(db_session):
    return create_profile_factory(db_session, university=OTHER_UNIVERSITY, role="student")


@pytest.fixture
def admin(db_session):
    return create_profile_factory(
        db_session, university=UNIVERSITY, role="admin", is_verified=True
    )


@pytest.fixture
def pending_admin(db_session):
    return create_profile_factory(
        db_session, university=UNIVERSITY, role="admin", is_verified=False
    )


@pytest.fixture
def foreign_admin(db_session):
    return create_profile_factory(
        db_session, university=OTHER_UNIVERSITY, role="admin", is_verified=True
    )

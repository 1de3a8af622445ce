"""
SportConnect Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:  AsyncMock session for pure unit tests
    ├── db_engine:        in-memory SQLite (aiosqlite) with all tables created
    ├── session_factory:  async_sessionmaker bound to db_engine
    ├── db_session:       one AsyncSession on db_engine
    ├── sql_store:        SqlToggleStore on session_factory
    ├── fake_store:       FakeToggleStore (in-memory, scriptable)
    └── test_client:      HTTPX AsyncClient → FastAPI app wired to db_engine
"""

import asyncio
import os
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must happen before any sportconnect import builds `settings`
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"

from sportconnect import database  # noqa: E402
from sportconnect.database import get_db_session, init_models  # noqa: E402
from sportconnect.exceptions import TransactionConflictError  # noqa: E402
from sportconnect.models.social import Post, UserProfile  # noqa: E402
from sportconnect.schemas.toggles import ToggleOperation, ToggleResult  # noqa: E402
from sportconnect.services.sql_store import SqlToggleStore, get_toggle_store  # noqa: E402
from sportconnect.services.store_base import ToggleStore  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Fake Toggle Store
# ══════════════════════════════════════════════════════════════════════════

class FakeToggleStore(ToggleStore):
    """
    In-memory ToggleStore with the same contract as SqlToggleStore.

    Knobs:
        fail_with:       exception raised instead of committing
        gate:            asyncio.Event awaited before committing (holds a
                         toggle in flight)
        missing_targets: target ids that behave as deleted
                         (→ TransactionConflictError)
    """

    def __init__(self):
        self.members: Dict[Tuple[str, str], List[str]] = {}
        self.counters: Dict[Tuple[str, str], List[str]] = {}
        self.calls: List[ToggleOperation] = []
        self.fail_with: Optional[BaseException] = None
        self.gate: Optional[asyncio.Event] = None
        self.missing_targets = set()

    def seed(self, kind: str, target_id: str, members: List[str]) -> None:
        self.members[(kind, target_id)] = list(members)

    async def apply_toggle(self, operation: ToggleOperation) -> ToggleResult:
        self.calls.append(operation)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        if operation.target_id in self.missing_targets:
            raise TransactionConflictError(context={"target_id": operation.target_id})

        kind = operation.kind.value
        members = self.members.setdefault((kind, operation.target_id), [])
        counter = self.counters.setdefault((kind, operation.actor_id), [])
        if operation.actor_id in members:
            members.remove(operation.actor_id)
            if operation.target_id in counter:
                counter.remove(operation.target_id)
            is_member = False
        else:
            members.append(operation.actor_id)
            if operation.target_id not in counter:
                counter.append(operation.target_id)
            is_member = True

        return ToggleResult(
            operation=operation,
            is_member=is_member,
            count=len(members),
            counter_count=len(counter),
        )


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    Usage:
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await post_service.get_post(mock_db_session, "missing")
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def fake_store():
    return FakeToggleStore()


@pytest_asyncio.fixture
async def db_engine():
    """
    Fresh in-memory SQLite database per test.

    StaticPool keeps one connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def sql_store(session_factory):
    return SqlToggleStore(session_factory=session_factory)


@pytest.fixture
def make_profile(session_factory):
    """Insert a profile row and return it."""

    async def _make(user_id: str, **fields) -> UserProfile:
        defaults = dict(
            display_name=user_id.title(),
            email=f"{user_id}@example.com",
            bio="",
            followers=[],
            followers_count=0,
            following=[],
            following_count=0,
            liked_posts=[],
            posts_count=0,
        )
        defaults.update(fields)
        profile = UserProfile(user_id=user_id, **defaults)
        async with session_factory() as session:
            async with session.begin():
                session.add(profile)
        return profile

    return _make


@pytest.fixture
def make_post(session_factory):
    """Insert a post row and return it."""

    async def _make(user_id: str, text: str = "Anyone up for doubles?", **fields) -> Post:
        defaults = dict(
            user_display_name=user_id.title(),
            likes=[],
            like_count=0,
            comment_count=0,
        )
        defaults.update(fields)
        post = Post(user_id=user_id, text=text, **defaults)
        async with session_factory() as session:
            async with session.begin():
                session.add(post)
        return post

    return _make


@pytest_asyncio.fixture
async def test_client(db_engine, session_factory, sql_store, monkeypatch):
    """
    HTTPX AsyncClient routed straight into the FastAPI app.

    The app's session dependency, toggle store and the engine probed by
    /health are all pointed at the test's in-memory database.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from sportconnect.main import app

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_toggle_store] = lambda: sql_store
    monkeypatch.setattr(database, "engine", db_engine)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()

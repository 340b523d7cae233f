"""
Dear Diary Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session for pure unit tests
    ├── db_engine:       aiosqlite engine on a fresh file in tmp_path, tables created
    ├── db_session:      AsyncSession on that engine (service-level tests)
    ├── hasher:          PasswordHasher with the minimum bcrypt cost
    ├── app:             fresh FastAPI app whose get_db_session uses db_engine
    ├── test_client:     httpx AsyncClient over ASGITransport (keeps cookies)
    └── make_client:     factory for extra clients, one cookie jar per user
"""

import os

# Override settings for testing BEFORE any deardiary imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["AUTH_RATE_LIMIT_REQUESTS"] = "10000"
os.environ["ENVIRONMENT"] = "test"

from typing import AsyncGenerator, List  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

import deardiary.models  # noqa: E402,F401
from deardiary.database import Base, get_db_session  # noqa: E402
from deardiary.main import create_app  # noqa: E402
from deardiary.services.security import PasswordHasher  # noqa: E402

BASE_URL = "http://testserver"
DEFAULT_PASSWORD = "secret1"


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = entry
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A real SQLite database per test, schema created from the ORM metadata."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'deardiary_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


# ══════════════════════════════════════════════════════════════════════════
# API Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(db_engine):
    """A fresh app whose per-request sessions come from the test database."""
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application = create_app()
    application.dependency_overrides[get_db_session] = override_get_db_session
    return application


@pytest_asyncio.fixture
async def make_client(app):
    """
    Factory for independent HTTP clients against the same app.

    Usage:
        alice = await make_client()
        bob = await make_client()
    """
    clients: List[AsyncClient] = []

    async def _make() -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()


@pytest_asyncio.fixture
async def test_client(make_client):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    return await make_client()


async def register_and_login(client: AsyncClient, username: str, password: str = DEFAULT_PASSWORD):
    """Registers `username` and logs the client in (session cookie kept in its jar)."""
    response = await client.post(
        "/api/auth/register",
        json={"username": username, "password": password, "confirmPassword": password},
    )
    assert response.status_code == 201, response.text
    response = await client.post(
        "/api/auth/login", json={"username": username, "password": password}
    )
    assert response.status_code == 200, response.text
    return response

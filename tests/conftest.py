"""
Shared pytest fixtures.

Settings are read from the environment at import time, so the variables are
set here before anything under `app` is imported.
"""
import os

os.environ["ENVIRONMENT"] = "DEV"
os.environ["DEBUG"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256-signing")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.infrastructure.database.base import Base
from app.infrastructure.database.session import get_db
from app.schemas.user import UserCreate
from app.services.token_service import SqlTokenStore
from app.services.user_service import SqlUserDirectory

from tests.fakes import InMemoryTokenStore, InMemoryUserDirectory, RecordingUnitOfWork


# =============================================================================
# In-memory fakes
# =============================================================================

@pytest.fixture
def fake_users():
    return InMemoryUserDirectory()


@pytest.fixture
def fake_tokens():
    return InMemoryTokenStore()


@pytest.fixture
def unit_of_work():
    return RecordingUnitOfWork()


# =============================================================================
# SQLite-backed stores
# =============================================================================

@pytest_asyncio.fixture
async def session_factory():
    """One in-memory database per test, shared by every session through StaticPool."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def token_store(db_session):
    return SqlTokenStore(db_session)


@pytest.fixture
def user_directory(db_session):
    return SqlUserDirectory(db_session)


@pytest_asyncio.fixture
async def registered_user(user_directory, db_session):
    user = await user_directory.create_user(
        UserCreate(name="Ada Lovelace", email="ada@example.com", password="password1")
    )
    await db_session.commit()
    return user


# =============================================================================
# HTTP client
# =============================================================================

@pytest_asyncio.fixture
async def client(session_factory):
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()

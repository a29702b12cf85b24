"""
Shared pytest configuration for recruiting tests.

Uses a file-backed SQLite database (aiosqlite) so the suite runs without a
database server. TEST_DATABASE_URL may point at PostgreSQL instead.
"""

import os
import tempfile

# Must be set before the app modules are imported
os.environ.setdefault("ENV", "test")
os.environ.setdefault(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'recruiting_test.db')}",
)
os.environ.setdefault("DATABASE_URL", os.environ["TEST_DATABASE_URL"])

import asyncio
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from recruiting.database.db import Base
from recruiting.services import websocket_manager

TEST_DATABASE_URL = os.environ["TEST_DATABASE_URL"]


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a fresh schema for each test and point db.AsyncSessionLocal at it."""
    # NullPool avoids reusing connections across event loops
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # Code that opens its own sessions (scouting fan-out) must hit the test database
    from recruiting.database import db

    test_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    original_async_session_local = db.AsyncSessionLocal
    db.AsyncSessionLocal = test_session_maker

    yield engine

    db.AsyncSessionLocal = original_async_session_local

    try:
        await asyncio.sleep(0.05)  # Let detached tasks finish with their sessions
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(test_engine):
    """Session factory for tests that need several independent sessions."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_maker):
    """A database session closed after the test."""
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


@pytest.fixture
def ws_manager(monkeypatch):
    """A fresh process-wide WebSocket manager for each test."""
    manager = websocket_manager.WebSocketManager()
    monkeypatch.setattr(websocket_manager, "_websocket_manager", manager)
    return manager


"""Pytest configuration and shared fixtures for the test suite."""

import os
import tempfile
from typing import TYPE_CHECKING, AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from promptline.history.storage.memory import InMemoryHistoryRepository
from promptline.history.storage.repository import HistoryRepository
from promptline.history.storage.sql import SqlHistoryRepository

if TYPE_CHECKING:
    from promptline.storage.database import Database


# Configure pytest-asyncio to use auto mode
pytest_plugins = ["pytest_asyncio"]


async def _create_memory_database() -> "Database":
    from promptline.storage.database import Database, DatabaseConfig

    db = Database(DatabaseConfig(url="sqlite+aiosqlite:///:memory:", echo=False))
    await db.create_tables()
    return db


@pytest.fixture
async def test_db() -> AsyncGenerator["Database", None]:
    """Create an in-memory SQLite database for testing.

    Yields:
        Database instance with in-memory SQLite connection and all tables
    """
    db = await _create_memory_database()

    yield db

    # Cleanup
    await db.close()


@pytest.fixture
async def test_db_file() -> AsyncGenerator["Database", None]:
    """Create a file-based SQLite database for persistence testing.

    Yields:
        Database instance with file-based SQLite connection
    """
    from promptline.storage.database import Database, DatabaseConfig

    # Create temporary database file
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    try:
        db = Database(DatabaseConfig(url=f"sqlite+aiosqlite:///{db_path}", echo=False))
        await db.create_tables()

        yield db

        await db.close()
    finally:
        # Remove temporary database file
        if os.path.exists(db_path):
            os.remove(db_path)


@pytest.fixture
async def db_session(test_db: "Database") -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing.

    Args:
        test_db: Test database instance

    Yields:
        AsyncSession for database operations
    """
    async with test_db.session() as session:
        yield session


@pytest.fixture(params=["memory", "sql"])
async def repository(request: pytest.FixtureRequest) -> AsyncGenerator[HistoryRepository, None]:
    """History repository for each storage backend.

    Tests using this fixture run once against the in-memory repository and
    once against the SQL repository on in-memory SQLite.
    """
    if request.param == "memory":
        yield InMemoryHistoryRepository()
        return

    db = await _create_memory_database()
    yield SqlHistoryRepository(db)
    await db.close()

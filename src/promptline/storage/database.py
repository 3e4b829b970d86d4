"""Database configuration and session management.

This module provides SQLAlchemy async engine configuration and session
management for the SQL history repository.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from promptline.storage.base_model import Base

ASYNC_DRIVERS = ("aiosqlite", "asyncpg", "psycopg", "aiomysql", "asyncmy")


class DatabaseConfig:
    """Database configuration.

    Attributes:
        url: Async database connection URL
        echo: Whether to log SQL statements (default: False)
        pool_size: Connection pool size (default: 5)
        max_overflow: Maximum overflow connections (default: 10)
    """

    def __init__(
        self,
        url: str = "sqlite+aiosqlite:///:memory:",
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ):
        self.url = url
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow


class Database:
    """Database connection and session manager.

    Manages the SQLAlchemy async engine and session lifecycle.

    Example:
        >>> config = DatabaseConfig(url="sqlite+aiosqlite:///./history.db")
        >>> db = Database(config)
        >>> await db.create_tables()
        >>> async with db.session() as session:
        ...     result = await session.execute(select(RevisionModel))
    """

    def __init__(self, config: DatabaseConfig):
        """Initialize database with configuration.

        Args:
            config: Database configuration

        Raises:
            ValueError: If the URL does not name an async driver
        """
        if not any(driver in config.url for driver in ASYNC_DRIVERS):
            raise ValueError(
                f"Database URL must use an async driver ({', '.join(ASYNC_DRIVERS)}): "
                f"{config.url}"
            )

        self.config = config
        self.is_sqlite = config.url.startswith("sqlite")

        # Prepare engine kwargs (exclude pool settings for SQLite)
        engine_kwargs: dict[str, Any] = {"echo": config.echo}
        if not self.is_sqlite:
            engine_kwargs["pool_size"] = config.pool_size
            engine_kwargs["max_overflow"] = config.max_overflow

        self.engine = create_async_engine(config.url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

        if self.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    async def create_tables(self) -> None:
        """Create all tables defined in ORM models.

        Calls register_all_models() to ensure all ORM model modules are imported
        before creating tables.
        """
        from promptline.storage.model_registry import register_all_models

        register_all_models()

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop all tables defined in ORM models."""
        from promptline.storage.model_registry import register_all_models

        register_all_models()

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Create a new database session.

        The session commits when the block exits normally and rolls back when
        it raises.

        Yields:
            Async database session
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close database engine and connections."""
        await self.engine.dispose()

    async def health_check(self) -> bool:
        """Check database connectivity.

        Returns:
            True if database is healthy

        Raises:
            Exception if database connection fails
        """
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    """Turn on foreign key enforcement for each new SQLite connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

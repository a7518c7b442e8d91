"""Async engine, session factory and the unit of work entry point.

This module wires configuration, the schema initializer and the unit of
work together so callers only need ``unit_of_work()``.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from safety_ai.core.config import DatabaseSettings, settings
from safety_ai.database.initializer import DatabaseInitializer
from safety_ai.repositories.unit_of_work import UnitOfWork
from safety_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(db_settings: DatabaseSettings) -> AsyncEngine:
    """Create the async engine for the configured database.

    Args:
        db_settings: Connection, pool and timeout settings

    Returns:
        AsyncEngine: Engine using asyncpg for PostgreSQL or aiosqlite for SQLite
    """
    url = db_settings.connection_url

    if db_settings.is_sqlite:
        kwargs = {
            "echo": db_settings.echo,
            "connect_args": {"timeout": db_settings.command_timeout},
        }
        if make_url(url).database in (None, "", ":memory:"):
            # A single shared connection keeps the in-memory database alive
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"]["check_same_thread"] = False
        engine = create_async_engine(url, **kwargs)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        pool_size=db_settings.pool_size,
        max_overflow=db_settings.max_overflow,
        echo=db_settings.echo,
        future=True,
        pool_pre_ping=True,
        connect_args={"command_timeout": db_settings.command_timeout},
    )


class Database:
    """Engine, session factory and schema initializer for one database."""

    def __init__(
        self,
        db_settings: Optional[DatabaseSettings] = None,
        environment: Optional[str] = None,
        drop_existing: Optional[bool] = None,
    ):
        self.settings = db_settings or settings.db
        self.engine = create_engine(self.settings)
        self.session_maker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        self.initializer = DatabaseInitializer(
            self.engine,
            self.session_maker,
            db_settings=self.settings,
            environment=environment,
            drop_existing=drop_existing,
        )

    def unit_of_work(self) -> UnitOfWork:
        """New unit of work with its own session; the schema is not checked."""
        return UnitOfWork(self.session_maker)

    async def dispose(self) -> None:
        """Close pooled connections."""
        try:
            await self.engine.dispose()
            LOGGER.info("Database connection closed")
        except Exception as e:
            LOGGER.error(
                "Error closing database connection",
                exc_info=True,
                extra={"error": str(e)},
            )


@lru_cache()
def get_database() -> Database:
    """Process-wide database built from the global settings."""
    return Database()


async def close_database() -> None:
    """Dispose the process-wide database and forget it."""
    if get_database.cache_info().currsize:
        await get_database().dispose()
        get_database.cache_clear()


@asynccontextmanager
async def unit_of_work(database: Optional[Database] = None) -> AsyncIterator[UnitOfWork]:
    """Yield a unit of work on an initialized schema and dispose it afterwards.

    Args:
        database: Target database; defaults to ``get_database()``

    Raises:
        InitializationError: If the schema cannot be brought up to date
    """
    database = database or get_database()
    await database.initializer.initialize()
    async with database.unit_of_work() as uow:
        yield uow

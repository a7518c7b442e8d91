"""Schema bootstrap: database creation, Alembic migrations and sample data.

The initializer owns its ``is_initialized`` flag; the process-wide instance
lives on the cached ``Database`` from ``safety_ai.core.database``.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import text
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from safety_ai.core.config import DatabaseSettings, settings
from safety_ai.core.exceptions import InitializationError
from safety_ai.database.seed import seed_sample_incidents
from safety_ai.repositories.unit_of_work import UnitOfWork
from safety_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"
MAINTENANCE_DATABASE = "postgres"


class DatabaseInitializer:
    """Brings a database to the latest schema exactly once per instance."""

    def __init__(
        self,
        engine: AsyncEngine,
        session_maker: async_sessionmaker[AsyncSession],
        db_settings: Optional[DatabaseSettings] = None,
        environment: Optional[str] = None,
        drop_existing: Optional[bool] = None,
    ):
        """Initialize the schema initializer.

        Args:
            engine: Engine bound to the target database
            session_maker: Session factory used for sample data seeding
            db_settings: Database settings; defaults to the global settings
            environment: Deployment environment; defaults to the global settings
            drop_existing: Drop and recreate the database before migrating;
                defaults to ``DATABASE_DROP_EXISTING``
        """
        self.engine = engine
        self.session_maker = session_maker
        self.db_settings = db_settings or settings.db
        self.environment = environment or settings.environment
        self.drop_existing = (
            self.db_settings.drop_existing if drop_existing is None else drop_existing
        )
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _get_lock(self) -> asyncio.Lock:
        """Lock for the running event loop, recreated when the loop changes.

        An asyncio.Lock is bound to the first loop it waits on.
        """
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def initialize(self) -> None:
        """Create the database if needed and migrate it to head.

        Concurrent callers wait on one another; only the first does the work.

        Raises:
            InitializationError: If any step fails; a later call retries
        """
        if self._initialized:
            return

        async with self._get_lock():
            if self._initialized:
                return

            LOGGER.info(
                "Initializing database schema",
                extra={"drop_existing": self.drop_existing},
            )
            try:
                if self.drop_existing:
                    LOGGER.warning("Dropping existing database before migration")
                    await self.drop_database()
                await self.create_database()
                await self._run_migrations()
            except Exception as e:
                LOGGER.error(
                    "Database initialization failed",
                    exc_info=True,
                    extra={"error": str(e)},
                )
                raise InitializationError("Database initialization failed", original_error=e) from e

            self._initialized = True
            LOGGER.info("Database schema initialized")

    async def _run_migrations(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(self._upgrade_to_head)

    def _upgrade_to_head(self, connection: Connection) -> None:
        cfg = self.alembic_config()
        cfg.attributes["connection"] = connection
        command.upgrade(cfg, "head")

    def alembic_config(self) -> Config:
        """Alembic configuration pointing at the packaged migration scripts."""
        cfg = Config()
        cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
        cfg.set_main_option("sqlalchemy.url", self.db_settings.connection_url.replace("%", "%%"))
        return cfg

    async def current_revision(self) -> Optional[str]:
        """Revision stamped in the database, or None before the first migration."""
        async with self.engine.connect() as conn:
            return await conn.run_sync(
                lambda sync_conn: MigrationContext.configure(sync_conn).get_current_revision()
            )

    # Database lifecycle

    def _sqlite_path(self) -> Optional[str]:
        """Database file path, or None for an in-memory database."""
        database = make_url(self.db_settings.connection_url).database
        if not database or database == ":memory:":
            return None
        return database

    async def database_exists(self) -> bool:
        if self.db_settings.is_sqlite:
            path = self._sqlite_path()
            return path is None or os.path.exists(path)

        name = make_url(self.db_settings.connection_url).database
        maintenance = self._maintenance_engine()
        try:
            async with maintenance.connect() as conn:
                found = await conn.scalar(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": name}
                )
            return found is not None
        finally:
            await maintenance.dispose()

    async def create_database(self) -> None:
        """Create the target database; a no-op when it already exists."""
        if await self.database_exists():
            LOGGER.debug("Database already exists")
            return

        if self.db_settings.is_sqlite:
            path = Path(self._sqlite_path())
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch(exist_ok=True)
            LOGGER.info(f"Created SQLite database at {path}")
            return

        name = make_url(self.db_settings.connection_url).database
        maintenance = self._maintenance_engine()
        try:
            async with maintenance.connect() as conn:
                quoted = conn.dialect.identifier_preparer.quote(name)
                await conn.execute(text(f"CREATE DATABASE {quoted}"))
            LOGGER.info(f"Created database {name}")
        finally:
            await maintenance.dispose()

    async def drop_database(self) -> None:
        """Drop the target database; a no-op when it does not exist.

        Pooled connections of ``engine`` are closed first. For an in-memory
        SQLite database that alone discards every table.
        """
        await self.engine.dispose()
        self._initialized = False

        if self.db_settings.is_sqlite:
            path = self._sqlite_path()
            if path is None:
                return
            for suffix in ("", "-journal", "-wal", "-shm"):
                candidate = Path(path + suffix)
                if candidate.exists():
                    candidate.unlink()
            LOGGER.info(f"Removed SQLite database at {path}")
            return

        if not await self.database_exists():
            return

        name = make_url(self.db_settings.connection_url).database
        maintenance = self._maintenance_engine()
        try:
            async with maintenance.connect() as conn:
                await conn.execute(
                    text(
                        "SELECT pg_terminate_backend(pid) FROM pg_stat_activity "
                        "WHERE datname = :name AND pid <> pg_backend_pid()"
                    ),
                    {"name": name},
                )
                quoted = conn.dialect.identifier_preparer.quote(name)
                await conn.execute(text(f"DROP DATABASE IF EXISTS {quoted}"))
            LOGGER.warning(f"Dropped database {name}")
        finally:
            await maintenance.dispose()

    def _maintenance_engine(self) -> AsyncEngine:
        url = make_url(self.db_settings.connection_url).set(database=MAINTENANCE_DATABASE)
        return create_async_engine(url, isolation_level="AUTOCOMMIT", poolclass=NullPool)

    # Sample data

    async def seed_test_data(self) -> int:
        """Insert the sample incidents into an empty, non-production database.

        Returns:
            Number of reports seeded; 0 when seeding is disabled or data exists
        """
        if not self.db_settings.enable_sample_data_seeding:
            LOGGER.debug("Sample data seeding disabled")
            return 0
        if self.environment.lower() == "production":
            LOGGER.info("Skipping sample data seeding in production")
            return 0

        await self.initialize()
        async with UnitOfWork(self.session_maker) as uow:
            if await uow.safety_reports.base.count() > 0:
                LOGGER.debug("Reports already present; skipping sample data")
                return 0
            seeded = await seed_sample_incidents(uow)

        LOGGER.info(f"Seeded {seeded} sample safety reports")
        return seeded

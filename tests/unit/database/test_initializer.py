"""Unit tests for DatabaseInitializer."""

import asyncio
import os

import pytest

from safety_ai.core.database import Database, unit_of_work
from safety_ai.core.exceptions import InitializationError
from safety_ai.database.initializer import DatabaseInitializer


class TestDatabaseInitializer:
    """Test suite for schema bootstrap."""

    @pytest.fixture
    async def fresh_database(self, db_settings):
        """Database whose schema has not been initialized yet."""
        database = Database(db_settings, environment="test")
        yield database
        await database.dispose()

    @pytest.mark.asyncio
    async def test_initialize_migrates_to_head(self, fresh_database):
        initializer = fresh_database.initializer
        assert initializer.is_initialized is False

        await initializer.initialize()

        assert initializer.is_initialized is True
        assert await initializer.current_revision() == "0002"

    @pytest.mark.asyncio
    async def test_current_revision_before_migration(self, fresh_database):
        assert await fresh_database.initializer.current_revision() is None

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, fresh_database, monkeypatch):
        initializer = fresh_database.initializer
        calls = []
        original = initializer._run_migrations

        async def counting_run_migrations():
            calls.append(1)
            await original()

        monkeypatch.setattr(initializer, "_run_migrations", counting_run_migrations)

        await initializer.initialize()
        await initializer.initialize()

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_concurrent_initialize_runs_migrations_once(self, fresh_database, monkeypatch):
        initializer = fresh_database.initializer
        calls = []
        original = initializer._run_migrations

        async def slow_run_migrations():
            calls.append(1)
            await asyncio.sleep(0.01)
            await original()

        monkeypatch.setattr(initializer, "_run_migrations", slow_run_migrations)

        await asyncio.gather(*[initializer.initialize() for _ in range(8)])

        assert len(calls) == 1
        assert initializer.is_initialized is True

    def test_lock_is_usable_from_successive_event_loops(self, db_settings):
        database = Database(db_settings, environment="test")
        initializer = database.initializer

        async def contend():
            async def hold():
                async with initializer._get_lock():
                    await asyncio.sleep(0.01)

            await asyncio.gather(hold(), hold())

        asyncio.run(contend())
        asyncio.run(contend())
        asyncio.run(database.dispose())

    @pytest.mark.asyncio
    async def test_failure_leaves_flag_false_and_retry_succeeds(self, fresh_database, monkeypatch):
        initializer = fresh_database.initializer
        original = initializer._run_migrations

        async def failing_run_migrations():
            raise RuntimeError("migration exploded")

        monkeypatch.setattr(initializer, "_run_migrations", failing_run_migrations)

        with pytest.raises(InitializationError) as exc_info:
            await initializer.initialize()

        assert isinstance(exc_info.value.original_error, RuntimeError)
        assert initializer.is_initialized is False

        monkeypatch.setattr(initializer, "_run_migrations", original)
        await initializer.initialize()

        assert initializer.is_initialized is True

    @pytest.mark.asyncio
    async def test_create_and_drop_sqlite_database(self, fresh_database, db_settings):
        initializer = fresh_database.initializer
        path = db_settings.url.split(":///", 1)[1]

        await initializer.drop_database()
        assert await initializer.database_exists() is False
        assert not os.path.exists(path)

        await initializer.create_database()
        await initializer.create_database()
        assert await initializer.database_exists() is True

        await initializer.drop_database()
        await initializer.drop_database()
        assert await initializer.database_exists() is False

    @pytest.mark.asyncio
    async def test_drop_existing_profile_starts_empty(self, db_settings, make_report):
        first = Database(db_settings, environment="test")
        async with unit_of_work(first) as uow:
            uow.safety_reports.add(make_report())
            await uow.save_changes()
        await first.dispose()

        second = Database(db_settings, environment="test")
        try:
            async with unit_of_work(second) as uow:
                assert await uow.safety_reports.get_all() == []
        finally:
            await second.dispose()

    @pytest.mark.asyncio
    async def test_without_drop_existing_data_survives(self, db_settings, make_report):
        first = Database(db_settings, environment="test")
        async with unit_of_work(first) as uow:
            uow.safety_reports.add(make_report())
            await uow.save_changes()
        await first.dispose()

        second = Database(db_settings, environment="test", drop_existing=False)
        try:
            async with unit_of_work(second) as uow:
                assert len(await uow.safety_reports.get_all()) == 1
        finally:
            await second.dispose()

    @pytest.mark.asyncio
    async def test_in_memory_database_always_exists(self, db_settings):
        memory_settings = db_settings.model_copy(update={"url": "sqlite+aiosqlite:///:memory:"})
        database = Database(memory_settings, environment="test")
        try:
            assert await database.initializer.database_exists() is True

            async with unit_of_work(database) as uow:
                assert await uow.safety_reports.get_all() == []
        finally:
            await database.dispose()


class TestSeedTestData:
    """Test suite for sample data seeding."""

    @pytest.mark.asyncio
    async def test_seeds_empty_database_once(self, database):
        assert await database.initializer.seed_test_data() == 2
        assert await database.initializer.seed_test_data() == 0

        async with database.unit_of_work() as uow:
            reports = await uow.safety_reports.get_all_reports()
            assert {report.file_name for report in reports} == {
                "sample_incident_001.pdf",
                "equipment_failure_002.jpg",
            }
            assert len(await uow.recommendations.get_all()) == 2

    @pytest.mark.asyncio
    async def test_skipped_in_production(self, database, db_settings):
        initializer = DatabaseInitializer(
            database.engine,
            database.session_maker,
            db_settings=db_settings,
            environment="Production",
            drop_existing=False,
        )

        assert await initializer.seed_test_data() == 0

    @pytest.mark.asyncio
    async def test_skipped_when_disabled(self, database, db_settings):
        disabled = db_settings.model_copy(update={"enable_sample_data_seeding": False})
        initializer = DatabaseInitializer(
            database.engine,
            database.session_maker,
            db_settings=disabled,
            environment="test",
            drop_existing=False,
        )

        assert await initializer.seed_test_data() == 0

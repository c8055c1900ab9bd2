"""Tests for the PostgreSQL provider lifecycle."""

import asyncio
import logging
from datetime import timedelta

import pytest
from sqlalchemy import Column, DateTime, Integer, MetaData, Table
from sqlalchemy.exc import OperationalError

from conftest import FakeSession, FakeSessionFactory
from dbprovider.exceptions import ArgumentError, ConfigurationError
from dbprovider.model.conventions import SnakeCaseNamingConvention, UtcDateTime
from dbprovider.providers.options import DatabaseConfigurationOptions, DatabaseOptionsBuilder
from dbprovider.providers.postgres import NO_BACKUP, PostgresDatabaseProvider
from dbprovider.providers.protocol import DatabaseProvider


@pytest.fixture
def provider(database_env):
    return PostgresDatabaseProvider(logger=logging.getLogger("test.provider"), env=database_env)


class TestConstruction:
    """Configuration is built once, at construction."""

    def test_implements_protocol(self, provider):
        assert isinstance(provider, DatabaseProvider)

    def test_config_built(self, provider):
        assert provider.config.host == "dbhost"
        assert provider.config.port == 6543
        assert provider.session_factory is None
        assert provider.is_initialised is False

    def test_fails_fast_without_url(self):
        with pytest.raises(ConfigurationError):
            PostgresDatabaseProvider(env={})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://envhost/envdb")
        monkeypatch.delenv("DATABASE_MAX_POOL_SIZE", raising=False)
        provider = PostgresDatabaseProvider()
        assert provider.config.host == "envhost"
        assert provider.config.database == "envdb"

    def test_adapters_do_not_share_config(self, database_env):
        first = PostgresDatabaseProvider(env=database_env)
        second = PostgresDatabaseProvider(env={"DATABASE_URL": "postgresql://other/db"})
        assert first.config.host == "dbhost"
        assert second.config.host == "other"


class TestInitialise:
    """Registration with the host's session options."""

    def test_registers_configuration(self, provider):
        options = DatabaseOptionsBuilder()
        provider.initialise(options, DatabaseConfigurationOptions())
        assert options.connection_config is provider.config
        assert options.drivername == "postgresql+asyncpg"
        assert provider.is_initialised is True

    def test_registers_retry_policy(self, provider):
        options = DatabaseOptionsBuilder()
        provider.initialise(options, DatabaseConfigurationOptions())
        assert options.retry_policy.max_retry_count == 5
        assert options.retry_policy.max_retry_delay == timedelta(seconds=10)

    def test_registers_snake_case_naming(self, provider):
        options = DatabaseOptionsBuilder()
        provider.initialise(options, DatabaseConfigurationOptions())
        assert isinstance(options.naming_convention, SnakeCaseNamingConvention)

    def test_logs_information(self, provider, caplog):
        with caplog.at_level(logging.INFO, logger="test.provider"):
            provider.initialise(DatabaseOptionsBuilder(), DatabaseConfigurationOptions())
        assert "Using PostgreSQL database provider from DATABASE_URL." in caplog.text
        assert "secret" not in caplog.text

    def test_second_call_warns_and_re_registers(self, provider, caplog):
        options = DatabaseOptionsBuilder()
        provider.initialise(options, DatabaseConfigurationOptions())
        with caplog.at_level(logging.WARNING, logger="test.provider"):
            provider.initialise(options, DatabaseConfigurationOptions())
        assert "more than once" in caplog.text
        assert options.connection_config is provider.config


class TestScheduledOptimisation:
    """VACUUM ANALYZE through the session factory."""

    @pytest.mark.asyncio
    async def test_noop_without_factory(self, provider):
        await provider.run_scheduled_optimisation()

    @pytest.mark.asyncio
    async def test_runs_vacuum_analyze(self, provider, fake_session_factory):
        provider.session_factory = fake_session_factory
        await provider.run_scheduled_optimisation()

        [session] = fake_session_factory.sessions
        assert session.autocommit_statements == ["VACUUM ANALYZE"]
        assert session.statements == []
        assert session.closed is True

    @pytest.mark.asyncio
    async def test_error_propagates_and_session_released(self, provider):
        error = OperationalError("VACUUM ANALYZE", {}, Exception("server closed the connection"))
        factory = FakeSessionFactory(error=error)
        provider.session_factory = factory

        with pytest.raises(OperationalError):
            await provider.run_scheduled_optimisation()
        assert factory.sessions[0].closed is True

    @pytest.mark.asyncio
    async def test_cancellation_releases_session(self, provider):
        started = asyncio.Event()
        sessions = []

        class BlockingSession(FakeSession):
            async def execute_autocommit(self, sql):
                started.set()
                await asyncio.sleep(3600)

        class BlockingFactory:
            async def create_session(self):
                session = BlockingSession()
                sessions.append(session)
                return session

        provider.session_factory = BlockingFactory()
        task = asyncio.create_task(provider.run_scheduled_optimisation())
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert sessions[0].closed is True


class TestStubs:
    """Shutdown and backup hooks are no-ops for PostgreSQL."""

    @pytest.mark.asyncio
    async def test_shutdown_is_noop(self, provider, fake_session_factory):
        provider.session_factory = fake_session_factory
        assert await provider.run_shutdown_task() is None
        assert fake_session_factory.sessions == []

    @pytest.mark.asyncio
    async def test_backup_returns_empty_key(self, provider, caplog):
        with caplog.at_level(logging.WARNING, logger="test.provider"):
            key = await provider.migration_backup_fast()
        assert key == NO_BACKUP == ""
        assert "External database backups are recommended" in caplog.text

    @pytest.mark.asyncio
    async def test_backup_never_touches_the_database(self, provider):
        provider.session_factory = FakeSessionFactory(error=RuntimeError("must not be called"))
        assert await provider.migration_backup_fast() == ""
        assert provider.session_factory.sessions == []

    @pytest.mark.asyncio
    async def test_restore_logs_warning(self, provider, caplog):
        with caplog.at_level(logging.WARNING, logger="test.provider"):
            assert await provider.restore_backup_fast("any-key") is None
        assert "not implemented" in caplog.text

    @pytest.mark.asyncio
    async def test_delete_backup(self, provider):
        assert await provider.delete_backup("") is None
        assert await provider.delete_backup("key") is None


class TestPurgeDatabase:
    """TRUNCATE ... RESTART IDENTITY CASCADE."""

    @pytest.mark.asyncio
    async def test_none_table_names(self, provider, fake_session):
        with pytest.raises(ArgumentError):
            await provider.purge_database(fake_session, None)
        assert fake_session.statements == []

    @pytest.mark.asyncio
    async def test_argument_error_is_type_error(self, provider, fake_session):
        with pytest.raises(TypeError):
            await provider.purge_database(fake_session, None)

    @pytest.mark.asyncio
    async def test_empty_table_names(self, provider, fake_session):
        await provider.purge_database(fake_session, [])
        assert fake_session.statements == []

    @pytest.mark.asyncio
    async def test_single_string_rejected(self, provider, fake_session):
        with pytest.raises(TypeError):
            await provider.purge_database(fake_session, "users")
        assert fake_session.statements == []

    @pytest.mark.asyncio
    async def test_escapes_quotes(self, provider, fake_session):
        await provider.purge_database(fake_session, ['a"b'])
        assert fake_session.statements == ['TRUNCATE TABLE "a""b" RESTART IDENTITY CASCADE;']

    @pytest.mark.asyncio
    async def test_runs_on_callers_transaction(self, provider, fake_session):
        await provider.purge_database(fake_session, ["users"])
        assert fake_session.statements == ['TRUNCATE TABLE "users" RESTART IDENTITY CASCADE;']
        assert fake_session.autocommit_statements == []

    @pytest.mark.asyncio
    async def test_one_statement_in_input_order(self, provider, fake_session):
        await provider.purge_database(fake_session, (name for name in ["Users", "items", "Users"]))
        assert fake_session.statements == [
            'TRUNCATE TABLE "Users", "items", "Users" RESTART IDENTITY CASCADE;'
        ]

    @pytest.mark.asyncio
    async def test_session_left_open(self, provider, fake_session):
        await provider.purge_database(fake_session, ["users"])
        assert fake_session.closed is False

    @pytest.mark.asyncio
    async def test_execution_error_propagates(self, provider):
        session = FakeSession(error=OperationalError("TRUNCATE", {}, Exception("relation does not exist")))
        with pytest.raises(OperationalError):
            await provider.purge_database(session, ["missing"])


class TestModelHooks:
    """on_model_creating / configure_conventions."""

    def test_naive_timestamps_become_utc(self, provider):
        metadata = MetaData()
        table = Table(
            "events",
            metadata,
            Column("id", Integer, primary_key=True),
            Column("created", DateTime()),
            Column("scheduled", DateTime(timezone=True)),
        )
        provider.on_model_creating(metadata)

        assert isinstance(table.c.created.type, UtcDateTime)
        assert not isinstance(table.c.scheduled.type, UtcDateTime)
        assert isinstance(table.c.id.type, Integer)

    def test_configure_conventions_is_noop(self, provider):
        builder = {"untouched": True}
        provider.configure_conventions(builder)
        assert builder == {"untouched": True}

"""
PostgreSQL Database Provider
============================

Configures the host to use a PostgreSQL database described by the
`DATABASE_URL` environment variable.

Lifecycle
---------
- Construction reads the environment once and fails fast with
  `ConfigurationError` when `DATABASE_URL` is missing or invalid.
- `initialise` registers the configuration with the host's
  `DatabaseOptionsBuilder`: PostgreSQL over asyncpg, retry on transient
  failure (5 retries, backoff capped at 10s), snake_case naming.
- `run_scheduled_optimisation` runs ``VACUUM ANALYZE``.
- `purge_database` empties tables with a single
  ``TRUNCATE ... RESTART IDENTITY CASCADE``.
- Backups are left to external tooling: the backup hooks log a warning and
  do nothing.

Notes
-----
- `session_factory` is injected by the host after `initialise`; until then
  maintenance is a no-op.
- The adapter keeps no mutable shared state besides that reference, so it
  needs no locking. Concurrent purges of overlapping tables race in the
  database, not here.
"""

import logging
from datetime import timedelta
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import MetaData

from dbprovider.config.connection_config import ConnectionConfig, build_connection_config
from dbprovider.exceptions import ArgumentError
from dbprovider.helpers.identifiers import build_truncate_statement
from dbprovider.helpers.retry import RetryPolicy
from dbprovider.helpers.sessionManagement import DatabaseSession, SessionFactory
from dbprovider.model.conventions import apply_utc_datetime_default
from dbprovider.providers.options import DatabaseConfigurationOptions, DatabaseOptionsBuilder
from dbprovider.providers.registry import register_provider

NO_BACKUP = ""
"""Backup key meaning "no backup artifact was produced"."""

OPTIMISE_STATEMENT = "VACUUM ANALYZE"

TRANSIENT_RETRY_POLICY = RetryPolicy(max_retry_count=5, max_retry_delay=timedelta(seconds=10))
"""Retry policy registered with the host's session machinery."""


@register_provider("PostgreSQL", "postgres")
class PostgresDatabaseProvider:
    """
    PostgreSQL implementation of `DatabaseProvider`.

    Parameters
    ----------
    logger : logging.Logger | None
        Destination for informational and warning messages. Defaults to the
        module logger.
    env : Mapping[str, str] | None
        Environment snapshot to build the configuration from. Defaults to the
        process environment (and `.env`).

    Raises
    ------
    ConfigurationError
        If `DATABASE_URL` is absent, blank, or not a valid absolute URI.
    """

    DATABASE_TYPE = "PostgreSQL"

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        self._logger = logger or logging.getLogger(__name__)
        self._config = build_connection_config(env)
        self._initialised = False
        self.session_factory: Optional[SessionFactory] = None

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def is_initialised(self) -> bool:
        return self._initialised

    def initialise(
        self,
        options: DatabaseOptionsBuilder,
        database_configuration: DatabaseConfigurationOptions,
    ) -> None:
        """
        Register the connection configuration with the host's options.

        Parameters
        ----------
        options : DatabaseOptionsBuilder
            Session-construction options; mutated in place.
        database_configuration : DatabaseConfigurationOptions
            Host's database selection. Not used by this provider.
        """
        if self._initialised:
            self._logger.warning("PostgreSQL database provider initialised more than once; re-registering.")

        self._logger.info("Using PostgreSQL database provider from DATABASE_URL.")
        options.use_postgresql(self._config, TRANSIENT_RETRY_POLICY).use_snake_case_naming_convention()
        self._initialised = True

    async def run_scheduled_optimisation(self) -> None:
        """Refresh planner statistics and reclaim dead tuples (``VACUUM ANALYZE``)."""
        await self._execute_raw_sql(OPTIMISE_STATEMENT)

    async def run_shutdown_task(self) -> None:
        """Nothing to clean up for a server database."""
        return None

    async def migration_backup_fast(self) -> str:
        """
        Unsupported. Logs a warning and returns `NO_BACKUP`.

        Returns
        -------
        str
            Always the empty string.
        """
        self._logger.warning(
            "Migration backup is not implemented for PostgreSQL provider. External database backups are recommended."
        )
        return NO_BACKUP

    async def restore_backup_fast(self, key: str) -> None:
        """Unsupported. Logs a warning; nothing is restored."""
        self._logger.warning("RestoreBackupFast was requested for PostgreSQL provider and is not implemented.")

    async def delete_backup(self, key: str) -> None:
        return None

    async def purge_database(
        self, session: DatabaseSession, table_names: Optional[Iterable[str]]
    ) -> None:
        """
        Empty the named tables in one round trip.

        Identities are restarted and the removal cascades to referencing
        tables. This cannot be undone; restrict it to trusted callers.

        Parameters
        ----------
        session : DatabaseSession
            Active session. The statement joins its current transaction,
            which is neither committed nor rolled back here, and the session
            is not closed.
        table_names : Iterable[str]
            Tables to empty. An empty iterable is a no-op.

        Raises
        ------
        ArgumentError
            If `table_names` is None.
        TypeError
            If `table_names` is a single string.
        sqlalchemy.exc.DBAPIError
            If the statement fails.
        """
        if table_names is None:
            raise ArgumentError("table_names")
        if isinstance(table_names, str):
            raise TypeError("table_names must be an iterable of table names, not a single string.")

        statement = build_truncate_statement(table_names)
        if statement is None:
            return

        self._logger.debug("Purging database tables: %s", statement)
        await session.execute_raw(statement)

    def on_model_creating(self, metadata: MetaData) -> None:
        """Treat every timestamp column declared without a timezone as UTC."""
        changed = apply_utc_datetime_default(metadata)
        self._logger.debug("Applied UTC default to %d timestamp column(s).", changed)

    def configure_conventions(self, convention_builder: Any) -> None:
        pass

    async def _execute_raw_sql(self, sql: str) -> None:
        if self.session_factory is None:
            return

        session = await self.session_factory.create_session()
        try:
            self._logger.debug("Executing maintenance statement: %s", sql)
            await session.execute_autocommit(sql)
        finally:
            await session.close()

"""
DatabaseProvider protocol: the contract every backend must satisfy.

The host drives a provider through this lifecycle without knowing which
backend is active:

    provider = create_provider("postgres")          # Constructed
    provider.initialise(options, host_config)       # Initialised (exactly once)
    provider.session_factory = options.build_session_factory()
    await provider.run_scheduled_optimisation()     # Active, any number of times
    await provider.purge_database(session, tables)  # Active, any number of times
    await provider.run_shutdown_task()              # terminal

Cancellation is asyncio task cancellation: cancelling the task awaiting an
operation aborts it at its next suspension point.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol, runtime_checkable

from sqlalchemy import MetaData

from dbprovider.helpers.sessionManagement import DatabaseSession, SessionFactory
from dbprovider.providers.options import DatabaseConfigurationOptions, DatabaseOptionsBuilder


@runtime_checkable
class DatabaseProvider(Protocol):
    """Protocol that all database providers must implement."""

    session_factory: Optional[SessionFactory]

    def initialise(
        self,
        options: DatabaseOptionsBuilder,
        database_configuration: DatabaseConfigurationOptions,
    ) -> None: ...

    async def run_scheduled_optimisation(self) -> None: ...

    async def run_shutdown_task(self) -> None: ...

    async def migration_backup_fast(self) -> str: ...

    async def restore_backup_fast(self, key: str) -> None: ...

    async def delete_backup(self, key: str) -> None: ...

    async def purge_database(
        self, session: DatabaseSession, table_names: Optional[Iterable[str]]
    ) -> None: ...

    def on_model_creating(self, metadata: MetaData) -> None: ...

    def configure_conventions(self, convention_builder: Any) -> None: ...

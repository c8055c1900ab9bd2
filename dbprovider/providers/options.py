"""
Bootstrap Options
=================

The two builder-like objects a host hands to `DatabaseProvider.initialise`:

- `DatabaseOptionsBuilder` collects how sessions must be built (engine URL,
  pool and driver options, retry policy, naming convention). A provider
  fills it in; the host then calls `build_session_factory()` and injects the
  result back into the provider as `session_factory`. Table definitions go
  on `build_metadata()`, so they pick up the selected naming convention.
- `DatabaseConfigurationOptions` is the host's own database selection
  (which provider key is active, plus free-form provider options).

Usage
-----
    options = DatabaseOptionsBuilder()
    provider.initialise(options, DatabaseConfigurationOptions(database_type="postgres"))
    provider.session_factory = options.build_session_factory()
    metadata = options.build_metadata()
    # ... declare tables on metadata ...
    provider.on_model_creating(metadata)
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine

from dbprovider.config.connection_config import ConnectionConfig
from dbprovider.config.connection_engine import (
    DEFAULT_DRIVERNAME,
    create_engine_from_config,
)
from dbprovider.exceptions import ConfigurationError
from dbprovider.helpers.retry import NO_RETRY, RetryPolicy
from dbprovider.helpers.sessionManagement import SessionFactory
from dbprovider.model.conventions import SnakeCaseNamingConvention


class DatabaseConfigurationOptions(BaseModel):
    """Host-side database selection."""

    database_type: str = Field("postgres", description="Registry key of the active provider.")
    custom_options: Dict[str, Any] = Field(
        default_factory=dict, description="Provider-specific options, passed through untouched."
    )


class DatabaseOptionsBuilder:
    """
    Mutable collector of session-construction options.

    Attributes
    ----------
    connection_config : ConnectionConfig | None
        Set by `use_postgresql`.
    drivername : str
        SQLAlchemy driver name used for the engine URL.
    retry_policy : RetryPolicy
        Applied to every session built from these options.
    naming_convention : SnakeCaseNamingConvention | None
        Set by `use_snake_case_naming_convention`; applied by `build_metadata`.
    engine_options : dict
        Extra `create_async_engine` keyword arguments (host overrides).
    """

    def __init__(self):
        self.connection_config: Optional[ConnectionConfig] = None
        self.drivername: str = DEFAULT_DRIVERNAME
        self.retry_policy: RetryPolicy = NO_RETRY
        self.naming_convention: Optional[SnakeCaseNamingConvention] = None
        self.engine_options: Dict[str, Any] = {}

    @property
    def is_configured(self) -> bool:
        return self.connection_config is not None

    def use_postgresql(
        self,
        config: ConnectionConfig,
        retry_policy: Optional[RetryPolicy] = None,
        drivername: str = DEFAULT_DRIVERNAME,
    ) -> "DatabaseOptionsBuilder":
        """Select PostgreSQL with `config`; a later call replaces an earlier one."""
        self.connection_config = config
        self.drivername = drivername
        self.retry_policy = retry_policy or NO_RETRY
        return self

    def use_snake_case_naming_convention(self) -> "DatabaseOptionsBuilder":
        self.naming_convention = SnakeCaseNamingConvention()
        return self

    def build_engine(self, **engine_kwargs: Any) -> AsyncEngine:
        """
        Create the pooled async engine.

        Raises
        ------
        ConfigurationError
            If no provider has selected a database yet.
        """
        if self.connection_config is None:
            raise ConfigurationError("No database has been selected on these options.")
        options = dict(self.engine_options)
        options.update(engine_kwargs)
        return create_engine_from_config(self.connection_config, self.drivername, **options)

    def build_session_factory(self, **engine_kwargs: Any) -> SessionFactory:
        """Engine plus session factory carrying the configured retry policy."""
        return SessionFactory(self.build_engine(**engine_kwargs), self.retry_policy)

    def build_metadata(self, schema: Optional[str] = None) -> MetaData:
        """
        `MetaData` for the host's table definitions.

        Carries the naming convention's constraint templates when one was
        selected; a plain `MetaData` otherwise.
        """
        if self.naming_convention is None:
            return MetaData(schema=schema)
        return self.naming_convention.create_metadata(schema)

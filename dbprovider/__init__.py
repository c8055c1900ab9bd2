"""
The `dbprovider` package turns a `DATABASE_URL` into a pooled PostgreSQL
configuration and exposes the lifecycle hooks a host persistence layer calls
without knowing which backend is active.

Contents:
    - config:
        Environment settings, the `ConnectionConfig` value object and the
        SQLAlchemy engine bootstrap.

    - helpers:
        Session factory, raw statement execution, retry policy and
        identifier quoting.

    - model:
        Schema conventions (snake_case naming, UTC timestamps).

    - providers:
        The `DatabaseProvider` contract, the provider registry and the
        PostgreSQL provider.

    - exceptions:
        `ConfigurationError`, `ArgumentError`, `BackendExecutionError`.
"""

from dbprovider.config import ConnectionConfig, SslMode, build_connection_config
from dbprovider.exceptions import ArgumentError, BackendExecutionError, ConfigurationError
from dbprovider.providers import (
    DatabaseConfigurationOptions,
    DatabaseOptionsBuilder,
    DatabaseProvider,
    PostgresDatabaseProvider,
    create_provider,
)

"""
Connection Engine (SQLAlchemy asyncio)

Purpose
-------
Turns a `ConnectionConfig` into a pooled SQLAlchemy `AsyncEngine`:
- Builds the connection URL with `URL.create(...)` (see `ConnectionConfig.to_url`).
- Applies pool bounds and timeouts from the configuration.
- Passes driver options (timeouts, SSL) through `connect_args`.

Notes
-----
- Creating the engine does not open a connection; the pool connects lazily.
- `QueuePool` treats `pool_size=0` as "unbounded", so the pool is never
  sized below one connection.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from dbprovider.config.connection_config import ConnectionConfig

DEFAULT_DRIVERNAME = "postgresql+asyncpg"


def engine_options_from_config(config: ConnectionConfig) -> dict:
    """
    Engine keyword arguments derived from the configuration.

    Parameters
    ----------
    config : ConnectionConfig
        Built connection configuration.

    Returns
    -------
    dict
        Keyword arguments for `create_async_engine`.
    """
    return {
        "pool_size": max(config.max_pool_size, 1),
        "max_overflow": 0,
        "pool_timeout": config.connect_timeout_seconds,
        "pool_pre_ping": True,
        "connect_args": config.to_connect_args(),
    }


def create_engine_from_config(
    config: ConnectionConfig,
    drivername: str = DEFAULT_DRIVERNAME,
    **engine_kwargs: Any,
) -> AsyncEngine:
    """
    Create the async engine (connection pool + SQL execution entry point).

    Extra keyword arguments override the derived engine options.
    """
    options = engine_options_from_config(config)
    options.update(engine_kwargs)
    return create_async_engine(config.to_url(drivername), **options)

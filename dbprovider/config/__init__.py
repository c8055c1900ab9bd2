"""
The `config` package turns the process environment into everything needed to
reach the PostgreSQL server.

Contents:
    - config: Environment layer - raw `DATABASE_*` variables loaded through pydantic-settings (with .env support)
    - connection_config: `ConnectionConfig` value object, `SslMode`, and `build_connection_config` which derives the configuration from `DATABASE_URL`
    - connection_engine: SQLAlchemy bootstrap that creates the pooled `AsyncEngine` from a `ConnectionConfig`
"""

from .config import DatabaseEnvironment
from .connection_config import ConnectionConfig, SslMode, build_connection_config
from .connection_engine import create_engine_from_config

"""
Providers Package: Swappable Database Backends
===============================================

A provider adapts one relational backend to the lifecycle the host drives
(initialise, scheduled optimisation, shutdown, backup hooks, purge, model
conventions). The host only talks to the `DatabaseProvider` protocol and
picks the implementation by key through the registry.

Contents
--------
- protocol
    `DatabaseProvider`: the runtime-checkable lifecycle contract
- options
    `DatabaseOptionsBuilder` (session-construction options a provider fills in)
    and `DatabaseConfigurationOptions` (the host's database selection)
- registry
    `register_provider` / `create_provider`: backend key -> provider factory
- postgres
    `PostgresDatabaseProvider`, registered as ``"PostgreSQL"`` and ``"postgres"``
"""

from .options import DatabaseConfigurationOptions, DatabaseOptionsBuilder
from .protocol import DatabaseProvider
from .registry import create_provider, get_provider_factory, register_provider, registered_providers
from .postgres import NO_BACKUP, PostgresDatabaseProvider

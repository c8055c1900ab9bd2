"""
Exceptions
==========

Error taxonomy shared by every database provider.

- ``ConfigurationError``: the environment does not describe a usable
  database (missing or malformed connection URL, unknown provider key).
  Raised at construction time; the host must not continue without a valid
  configuration.
- ``ArgumentError``: a caller passed an absent argument where a value is
  required (e.g. ``None`` table names to a purge).
- ``BackendExecutionError``: failures raised by the driver while a
  maintenance or purge statement runs. These are SQLAlchemy ``DBAPIError``
  instances surfaced unchanged, so the name is an alias and not a wrapper.
"""

from sqlalchemy.exc import DBAPIError


class DatabaseProviderError(Exception):
    """Base class for errors raised by the provider layer itself."""


class ConfigurationError(DatabaseProviderError, ValueError):
    """The database configuration is missing or invalid."""


class ArgumentError(DatabaseProviderError, TypeError):
    """A required argument was ``None``."""

    def __init__(self, param_name: str):
        super().__init__(f"Argument '{param_name}' must not be None.")
        self.param_name = param_name


BackendExecutionError = DBAPIError
"""Driver-level execution failure (``sqlalchemy.exc.DBAPIError``)."""

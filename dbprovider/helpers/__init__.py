"""
The `helpers` package provides the session and retry machinery that sits
below the database providers.

Contents
--------
- sessionManagement
    Session collaborators used by the providers:
        - `SessionFactory` hands out sessions bound to the pooled async engine and offers a scoped `session()` context manager
        - `DatabaseSession` runs raw statements on the caller's transaction or in autocommit mode, and releases its connection on `close()`
- identifiers
    `quote_identifier` and `build_truncate_statement`: the single place caller-supplied table names are escaped
- retry
    `RetryPolicy`: bounded exponential backoff for failures the driver classifies as transient
"""

from .retry import NO_RETRY, RetryPolicy
from .sessionManagement import DatabaseSession, SessionFactory
from .identifiers import build_truncate_statement, quote_identifier, quote_identifiers

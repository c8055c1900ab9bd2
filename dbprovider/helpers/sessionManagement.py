"""
Database Session Management
===========================

This module provides the session collaborators the provider talks to:
a factory that hands out sessions bound to the pooled async engine, and a
thin session wrapper exposing the one capability maintenance code needs,
running a raw statement.

Key features
~~~~~~~~~~~~
- `async_sessionmaker` bound to the engine created from `ConnectionConfig`
- Scoped acquisition (`async with factory.session() as session:`) that always
  releases the session, including on error or task cancellation
- `execute_raw` joins the caller's transaction and leaves commit or rollback
  to the caller
- `execute_autocommit` runs outside a transaction block, which `VACUUM`
  requires, on a session acquired for that statement alone
- The connection's isolation level is restored when it returns to the pool

"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from dbprovider.helpers.retry import NO_RETRY, RetryPolicy

AUTOCOMMIT = {"isolation_level": "AUTOCOMMIT"}


class DatabaseSession:
    """
    A backend session: execute raw statements, then release.

    Two ways to run a raw statement:

    - `execute_raw` joins whatever transaction the session already has and
      never ends it. Commit and rollback stay with whoever owns the session.
    - `execute_autocommit` runs outside any transaction block and is meant
      for sessions acquired only for that statement (``VACUUM``).

    Parameters
    ----------
    session : AsyncSession
        The underlying SQLAlchemy session. Exposed as `orm_session` for hosts
        that also run ORM work on it.
    retry_policy : RetryPolicy
        Applied to a raw statement only when no transaction was open before
        it, so a retry never replays part of someone else's unit of work.
    """

    def __init__(self, session: AsyncSession, retry_policy: RetryPolicy = NO_RETRY):
        self.orm_session = session
        self.retry_policy = retry_policy
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def execute_raw(self, sql: str) -> None:
        """
        Execute `sql` verbatim on the session's current transaction.

        A transaction is started if none is open. It is left open either way:
        the caller commits or rolls back.

        Parameters
        ----------
        sql : str
            Complete statement; no parameters are bound.

        Raises
        ------
        sqlalchemy.exc.DBAPIError
            Any driver failure. Transient failures are retried only when the
            statement opened the transaction itself.
        """
        if self.orm_session.in_transaction():
            await self._exec_driver_sql(sql)
            return

        async def run() -> None:
            try:
                await self._exec_driver_sql(sql)
            except Exception:
                # only the transaction this call started is discarded
                await self.orm_session.rollback()
                raise

        await self.retry_policy.execute(run)

    async def execute_autocommit(self, sql: str) -> None:
        """
        Execute `sql` verbatim outside a transaction block (AUTOCOMMIT).

        Parameters
        ----------
        sql : str
            Complete statement; no parameters are bound.

        Raises
        ------
        sqlalchemy.exc.InvalidRequestError
            If the session already has an open transaction; the isolation
            level of an established connection cannot be changed.
        sqlalchemy.exc.DBAPIError
            Any driver failure that is not transient, or the last transient
            one once retries are exhausted.
        """
        if self.orm_session.in_transaction():
            raise InvalidRequestError(
                "Autocommit statements need a session without an open transaction."
            )

        async def run() -> None:
            try:
                connection = await self.orm_session.connection(execution_options=AUTOCOMMIT)
                await connection.exec_driver_sql(sql)
            except Exception:
                await self.orm_session.rollback()
                raise
            # releases the connection so the pool restores its isolation level
            await self.orm_session.commit()

        await self.retry_policy.execute(run)

    async def _exec_driver_sql(self, sql: str) -> None:
        connection = await self.orm_session.connection()
        await connection.exec_driver_sql(sql)

    async def close(self) -> None:
        """Release the session and its connection. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        await self.orm_session.close()

    async def __aenter__(self) -> "DatabaseSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class SessionFactory:
    """
    Pooled session factory.

    Parameters
    ----------
    engine : AsyncEngine
        Engine (and pool) the sessions are bound to.
    retry_policy : RetryPolicy | None
        Retry policy handed to every session; no retries when None.
    """

    def __init__(self, engine: AsyncEngine, retry_policy: Optional[RetryPolicy] = None):
        self.engine = engine
        self.retry_policy = retry_policy or NO_RETRY
        self._sessionmaker = async_sessionmaker(bind=engine, expire_on_commit=False)

    async def create_session(self) -> DatabaseSession:
        """Acquire a new session. The caller must close it."""
        return DatabaseSession(self._sessionmaker(), self.retry_policy)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[DatabaseSession]:
        """Scoped session; closed on every exit path."""
        db_session = await self.create_session()
        try:
            yield db_session
        finally:
            await db_session.close()

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()

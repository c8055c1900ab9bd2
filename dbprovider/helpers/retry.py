"""
Retry on Transient Failure
==========================

A bounded retry policy for statements executed through the provider's
sessions. It mirrors what the host's session machinery registers in
`initialise`: at most `max_retry_count` retries, exponential backoff capped
at `max_retry_delay`, and no per-engine error code list.

An error is transient when the driver says so:
- `sqlalchemy.exc.OperationalError` (lost connection, server shutting down, ...)
- `sqlalchemy.exc.InterfaceError` (connection-level driver failure)
- any `sqlalchemy.exc.DBAPIError` whose `connection_invalidated` flag is set

Everything else (syntax errors, constraint violations, ...) propagates on
the first failure. Cancellation during a backoff sleep propagates as well.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """
    Bounded exponential-backoff retry policy.

    Attributes
    ----------
    max_retry_count : int
        Retries allowed after the first attempt.
    max_retry_delay : timedelta
        Upper bound for a single backoff delay.
    base_delay : timedelta
        Delay before the first retry; doubled for every further retry.
    """

    model_config = ConfigDict(frozen=True)

    max_retry_count: int = Field(5, ge=0)
    max_retry_delay: timedelta = timedelta(seconds=10)
    base_delay: timedelta = timedelta(seconds=1)

    def is_transient(self, error: BaseException) -> bool:
        """Whether the driver classifies `error` as retryable."""
        if isinstance(error, (OperationalError, InterfaceError)):
            return True
        return isinstance(error, DBAPIError) and bool(error.connection_invalidated)

    def delay_for(self, retry_number: int) -> float:
        """Backoff in seconds before retry `retry_number` (1-based)."""
        delay = self.base_delay.total_seconds() * (2 ** (retry_number - 1))
        return min(delay, self.max_retry_delay.total_seconds())

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run `operation`, retrying transient failures.

        Parameters
        ----------
        operation : Callable[[], Awaitable[T]]
            Zero-argument coroutine factory; called once per attempt.

        Returns
        -------
        T
            Result of the first successful attempt.

        Raises
        ------
        Exception
            The last error once retries are exhausted, or the first
            non-transient error.
        """
        retry_number = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if retry_number >= self.max_retry_count or not self.is_transient(e):
                    raise
                retry_number += 1
                delay = self.delay_for(retry_number)
                logger.warning(
                    "Transient database failure, retrying (%d/%d) in %.1fs: %s",
                    retry_number,
                    self.max_retry_count,
                    delay,
                    type(e).__name__,
                )
                await asyncio.sleep(delay)


NO_RETRY = RetryPolicy(max_retry_count=0)
"""Policy that never retries."""

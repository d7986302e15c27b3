"""
Retry helper for transient database failures.

Booking and settlement both take row locks; under contention MySQL may pick
a transaction as a deadlock victim or time out waiting for a lock, and SQLite
reports a locked database. Those are safe to retry from the top of the unit of
work; anything else is re-raised untouched.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# MySQL error codes
MYSQL_DEADLOCK_ERROR = "1213"
MYSQL_LOCK_WAIT_TIMEOUT = "1205"
SQLITE_LOCKED = "database is locked"


def is_deadlock_error(error: Exception) -> bool:
    if not isinstance(error, (OperationalError, DBAPIError)):
        return False
    message = str(error)
    return (
        MYSQL_DEADLOCK_ERROR in message
        or MYSQL_LOCK_WAIT_TIMEOUT in message
        or SQLITE_LOCKED in message
    )


async def retry_on_deadlock(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 0.1,
) -> T:
    """
    Run `func`, retrying with exponential backoff (base_delay * 2**attempt)
    while it fails with a deadlock or lock timeout.

    Example:
        async def sweep():
            return await expire_uc.execute()

        released = await retry_on_deadlock(sweep)
    """
    for attempt in range(max_attempts):
        try:
            return await func()
        except Exception as e:
            if not is_deadlock_error(e):
                raise
            if attempt == max_attempts - 1:
                logger.error(
                    "Database deadlock persists after max retries",
                    extra={"attempts": max_attempts, "error": str(e)},
                )
                raise

            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Database deadlock detected, retrying",
                extra={
                    "attempt": attempt + 1,
                    "max_attempts": max_attempts,
                    "retry_delay": delay,
                    "error": str(e),
                },
            )
            await asyncio.sleep(delay)
    raise RuntimeError("retry_on_deadlock called with max_attempts < 1")

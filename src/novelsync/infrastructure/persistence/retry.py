"""Retry decorator for SQLite "database is locked" errors."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


def is_lock_error(exception: BaseException) -> bool:
    """True for a transient SQLite lock/busy error."""
    if not isinstance(exception, OperationalError):
        return False
    message = str(exception).lower()
    return "locked" in message or "busy" in message


# Hey future me - SQLite locks are TEMPORARY! A second writer (another process, or a raised
# sync concurrency) gets "database is locked"; waiting a moment and retrying nearly always
# works. Only lock errors are retried, everything else raises immediately.
def with_db_retry[**P, T](
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    max_delay: float = 5.0,
    backoff_factor: float = 2.0,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry an async database operation on lock errors with exponential backoff.

    Args:
        max_attempts: Total attempts including the first
        initial_delay: Delay before the second attempt (seconds)
        max_delay: Cap for the growing delay
        backoff_factor: Delay multiplier per retry

    Example:
        @with_db_retry(max_attempts=3)
        async def upsert_chapters(self, novel_id, chapters, page=None): ...
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            delay = initial_delay
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except OperationalError as e:
                    if not is_lock_error(e) or attempt >= max_attempts:
                        raise
                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.1fs: %s",
                        attempt,
                        max_attempts,
                        delay,
                        func.__qualname__,
                    )
                    await asyncio.sleep(delay)
                    delay = min(delay * backoff_factor, max_delay)
                    attempt += 1

        return wrapper

    return decorator

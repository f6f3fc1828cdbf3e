"""Fixed-delay retry helper shared by the engines."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count plus a FIXED delay between attempts.

    Hey future me - no exponential backoff here, unlike with_db_retry! Content sources
    fail for minutes (site down) or for one request (timeout), and a flat delay between
    a handful of attempts covers the second case without stalling a whole library run
    on the first. max_retries=2 means up to 3 calls total.

    Example:
        policy = RetryPolicy(max_retries=2, delay=2.0)
        novel = await policy.run(lambda: source.fetch_novel(path))
    """

    max_retries: int = 2
    delay: float = 2.0
    sleep: Sleep = field(default=asyncio.sleep, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    async def run[T](
        self,
        operation: Callable[[], Awaitable[T]],
        on_retry: Callable[[int, Exception], None] | None = None,
    ) -> T:
        """Run `operation` until it succeeds or attempts are exhausted.

        Args:
            operation: Zero-arg coroutine factory (called once per attempt)
            on_retry: Called with (failed_attempt_number, error) before each wait

        Returns:
            Result of the first successful attempt

        Raises:
            The error of the last attempt when every attempt failed.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as e:
                if attempt >= self.max_attempts:
                    raise
                if on_retry is not None:
                    on_retry(attempt, e)
                else:
                    logger.debug(
                        f"Attempt {attempt}/{self.max_attempts} failed, "
                        f"retrying in {self.delay:.1f}s: {e}"
                    )
                await self.sleep(self.delay)

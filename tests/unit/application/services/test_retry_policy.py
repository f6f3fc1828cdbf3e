"""Tests for RetryPolicy."""

from unittest.mock import AsyncMock

import pytest

from novelsync.application.services import RetryPolicy


class TestRetryPolicy:
    @pytest.fixture
    def sleep(self) -> AsyncMock:
        return AsyncMock()

    async def test_success_first_try_never_sleeps(self, sleep):
        policy = RetryPolicy(max_retries=2, delay=2.0, sleep=sleep)
        operation = AsyncMock(return_value="ok")

        assert await policy.run(operation) == "ok"
        operation.assert_awaited_once()
        sleep.assert_not_awaited()

    async def test_retries_with_fixed_delay(self, sleep):
        policy = RetryPolicy(max_retries=2, delay=2.0, sleep=sleep)
        operation = AsyncMock(side_effect=[RuntimeError("a"), RuntimeError("b"), "ok"])

        assert await policy.run(operation) == "ok"
        assert operation.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 2.0]

    async def test_raises_last_error_when_exhausted(self, sleep):
        policy = RetryPolicy(max_retries=2, delay=1.0, sleep=sleep)
        operation = AsyncMock(
            side_effect=[RuntimeError("first"), RuntimeError("second"), RuntimeError("third")]
        )

        with pytest.raises(RuntimeError, match="third"):
            await policy.run(operation)
        assert operation.await_count == 3
        # No wait after the final attempt
        assert sleep.await_count == 2

    async def test_on_retry_receives_attempt_number(self, sleep):
        policy = RetryPolicy(max_retries=1, delay=0.5, sleep=sleep)
        seen: list[tuple[int, str]] = []
        operation = AsyncMock(side_effect=[ValueError("x"), 5])

        await policy.run(operation, on_retry=lambda attempt, e: seen.append((attempt, str(e))))

        assert seen == [(1, "x")]

    async def test_zero_retries_means_one_attempt(self, sleep):
        policy = RetryPolicy(max_retries=0, sleep=sleep)
        operation = AsyncMock(side_effect=RuntimeError("nope"))

        with pytest.raises(RuntimeError):
            await policy.run(operation)
        operation.assert_awaited_once()

    def test_rejects_negative_values(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)
        with pytest.raises(ValueError):
            RetryPolicy(delay=-0.1)

    def test_max_attempts(self):
        assert RetryPolicy(max_retries=2).max_attempts == 3

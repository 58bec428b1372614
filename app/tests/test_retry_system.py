"""
Unit tests for the async retry system (core/retry.py) used by the CSV importer.

Tests cover:
- Exponential backoff calculation and capping
- Exception classification (retryable vs non-retryable)
- Retry success after N attempts
- Immediate failure on non-retryable and unexpected errors
"""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from core.retry import async_retry, RetryableError, NonRetryableError


def decorated_with(side_effect, **retry_kwargs):
    """Wraps an AsyncMock in a real coroutine function so the decorator sees a named callable."""
    calls = AsyncMock(side_effect=side_effect)

    @async_retry(**retry_kwargs)
    async def flaky(*args, **kwargs):
        return await calls(*args, **kwargs)

    return flaky, calls


class TestAsyncRetryDecorator:
    """Test suite for @async_retry decorator"""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        fn, calls = decorated_with(["success"], max_attempts=3)

        assert await fn() == "success"
        assert calls.call_count == 1

    @pytest.mark.asyncio
    async def test_retry_on_retryable_error_then_success(self):
        fn, calls = decorated_with([RetryableError("HTTP 503"), "success"], max_attempts=3, base_delay=0.01)

        assert await fn() == "success"
        assert calls.call_count == 2

    @pytest.mark.asyncio
    async def test_retry_on_transport_error_then_success(self):
        """Connection failures from httpx are treated as retryable"""
        fn, calls = decorated_with(
            [httpx.ConnectError("connection refused"), "success"], max_attempts=3, base_delay=0.01
        )

        assert await fn() == "success"
        assert calls.call_count == 2

    @pytest.mark.asyncio
    async def test_retry_on_timeout_error_then_success(self):
        fn, calls = decorated_with([asyncio.TimeoutError(), "success"], max_attempts=3, base_delay=0.01)

        assert await fn() == "success"
        assert calls.call_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_error_fails_immediately(self):
        fn, calls = decorated_with(NonRetryableError("HTTP 422"), max_attempts=3, base_delay=0.01)

        with pytest.raises(NonRetryableError):
            await fn()

        assert calls.call_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_is_not_retried(self):
        fn, calls = decorated_with(ValueError("bad payload"), max_attempts=3, base_delay=0.01)

        with pytest.raises(ValueError):
            await fn()

        assert calls.call_count == 1

    @pytest.mark.asyncio
    async def test_exhausts_all_retries_then_fails(self):
        fn, calls = decorated_with(RetryableError("persistent error"), max_attempts=3, base_delay=0.01)

        with pytest.raises(RetryableError) as exc_info:
            await fn()

        assert str(exc_info.value) == "persistent error"
        assert calls.call_count == 3

    @pytest.mark.asyncio
    async def test_backoff_capped_at_max_delay(self):
        fn, _ = decorated_with(
            [RetryableError("fail"), RetryableError("fail"), RetryableError("fail"), "success"],
            max_attempts=4, base_delay=1.0, max_delay=2.0,
        )

        with patch("core.retry.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            result = await fn()

        assert result == "success"
        delays = [c.args[0] for c in mock_sleep.call_args_list]
        # 1.0, 2.0, 4.0 -> capped at 2.0
        assert delays == [pytest.approx(1.0), pytest.approx(2.0), pytest.approx(2.0)]

    @pytest.mark.asyncio
    async def test_retry_with_function_arguments(self):
        fn, calls = decorated_with([RetryableError("fail"), "success"], max_attempts=3, base_delay=0.01)

        assert await fn("arg1", 42, kwarg1="value1") == "success"
        calls.assert_called_with("arg1", 42, kwarg1="value1")

    @pytest.mark.asyncio
    async def test_logging_on_retry(self):
        fn, _ = decorated_with([RetryableError("connection failed"), "success"], max_attempts=3, base_delay=0.01)

        with patch("core.retry.logger") as mock_logger:
            await fn()

        assert any("Retry attempt" in str(call) for call in mock_logger.warning.call_args_list)

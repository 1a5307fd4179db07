"""Tests for connection utilities."""
import pytest
import asyncio
from junos_commit.errors import LockError
from junos_commit.utils.connection import (
    with_retry,
    retry_fixed,
    RETRYABLE_EXCEPTIONS,
)


class TestWithRetry:
    """Tests for retry decorator."""

    @pytest.mark.asyncio
    async def test_async_success_no_retry(self):
        """Successful async function doesn't retry."""
        call_count = 0

        @with_retry(max_attempts=3)
        async def succeeding_func():
            nonlocal call_count
            call_count += 1
            return "success"

        result = await succeeding_func()
        assert result == "success"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_async_retry_then_success(self):
        """Async function retries on failure then succeeds."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01, max_wait=0.1)
        async def failing_then_succeeding():
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise ConnectionRefusedError("Connection refused")
            return "success"

        result = await failing_then_succeeding()
        assert result == "success"
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_async_max_retries_exceeded(self):
        """Async function raises after max retries."""
        call_count = 0

        @with_retry(max_attempts=3, min_wait=0.01, max_wait=0.1)
        async def always_failing():
            nonlocal call_count
            call_count += 1
            raise TimeoutError("Always times out")

        with pytest.raises(TimeoutError):
            await always_failing()
        assert call_count == 3

    def test_plain_function_rejected(self):
        """Blocking functions belong in an executor, not under with_retry."""
        def blocking_connect():
            return "connected"

        with pytest.raises(TypeError, match="coroutine function"):
            with_retry(max_attempts=3)(blocking_connect)

    @pytest.mark.asyncio
    async def test_non_retryable_exception(self):
        """Non-retryable exceptions are not retried."""
        call_count = 0

        @with_retry(max_attempts=3, exceptions=(ConnectionRefusedError,))
        async def raising_value_error():
            nonlocal call_count
            call_count += 1
            raise ValueError("Not retryable")

        with pytest.raises(ValueError):
            await raising_value_error()
        assert call_count == 1  # Only one attempt

    @pytest.mark.asyncio
    async def test_single_attempt(self):
        """max_attempts=1 means no retry at all (the ssh_retry_to_establish default)."""
        call_count = 0

        @with_retry(max_attempts=1, min_wait=0.01, max_wait=0.1)
        async def refused():
            nonlocal call_count
            call_count += 1
            raise ConnectionRefusedError("Connection refused")

        with pytest.raises(ConnectionRefusedError):
            await refused()
        assert call_count == 1


class TestRetryFixed:
    """Tests for the fixed-interval wait used on the candidate lock."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        """No wait when the first attempt succeeds."""
        calls = []

        async def take():
            calls.append(1)
            return "locked"

        assert await retry_fixed(take, (LockError,), interval=10, timeout=60) == "locked"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        """Keeps trying while the lock is held elsewhere."""
        calls = []

        async def take():
            calls.append(1)
            if len(calls) < 3:
                raise LockError("configuration database locked")
            return "locked"

        assert await retry_fixed(take, (LockError,), interval=0.01, timeout=5) == "locked"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_timeout_reraises_last_error(self):
        """The last LockError surfaces once the timeout is spent."""
        calls = []

        async def take():
            calls.append(1)
            raise LockError(f"attempt {len(calls)}")

        loop = asyncio.get_event_loop()
        start = loop.time()
        with pytest.raises(LockError) as exc_info:
            await retry_fixed(take, (LockError,), interval=0.01, timeout=0.05)
        assert loop.time() - start < 1
        assert len(calls) > 1
        assert str(exc_info.value) == f"attempt {len(calls)}"

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self):
        """Only the listed exceptions are retried."""
        calls = []

        async def take():
            calls.append(1)
            raise ConnectionError("session dropped")

        with pytest.raises(ConnectionError):
            await retry_fixed(take, (LockError,), interval=0.01, timeout=5)
        assert len(calls) == 1


class TestRetryableExceptions:
    """Tests for retryable exceptions list."""

    def test_connection_refused_is_retryable(self):
        """ConnectionRefusedError is retryable."""
        assert ConnectionRefusedError in RETRYABLE_EXCEPTIONS

    def test_timeout_is_retryable(self):
        """TimeoutError is retryable."""
        assert TimeoutError in RETRYABLE_EXCEPTIONS

    def test_connection_reset_is_retryable(self):
        """ConnectionResetError is retryable."""
        assert ConnectionResetError in RETRYABLE_EXCEPTIONS

    def test_os_error_is_retryable(self):
        """OSError is retryable."""
        assert OSError in RETRYABLE_EXCEPTIONS

    def test_eof_error_is_retryable(self):
        """EOFError is retryable."""
        assert EOFError in RETRYABLE_EXCEPTIONS

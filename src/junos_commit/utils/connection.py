"""Retry utilities for connection setup and lock acquisition."""
import inspect
import logging
from functools import wraps
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    retry,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
    wait_fixed,
    retry_if_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Common network exceptions to retry on
RETRYABLE_EXCEPTIONS = (
    ConnectionRefusedError,
    ConnectionResetError,
    TimeoutError,
    OSError,
    EOFError,
)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> Callable:
    """Retry a coroutine function with exponential backoff.

    Only coroutine functions are accepted: blocking work such as the SSH
    handshake runs in an executor from inside the coroutine.
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"with_retry needs a coroutine function, got {func!r}")

        @retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
            retry=retry_if_exception_type(exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await func(*args, **kwargs)

        return wrapper

    return decorator


async def retry_fixed(
    func: Callable[[], Awaitable[T]],
    exceptions: tuple,
    interval: float,
    timeout: float,
) -> T:
    """Call `func` until it stops raising `exceptions` or `timeout` expires.

    Waits `interval` seconds between attempts. The last exception is
    re-raised once the timeout is exhausted.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_delay(timeout),
        wait=wait_fixed(interval),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        reraise=True,
    ):
        with attempt:
            return await func()
    raise AssertionError("unreachable")  # pragma: no cover

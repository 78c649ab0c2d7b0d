"""Retry helpers for channel establishment."""
import logging
from typing import Any, Awaitable, Callable, TypeVar

import paramiko
from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    retry_if_not_exception_type,
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
    paramiko.SSHException,
)

# Failures retrying cannot fix, even where they subclass a retryable type
NON_RETRYABLE_EXCEPTIONS = (
    paramiko.AuthenticationException,
)


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
    **kwargs: Any,
) -> T:
    """Await ``func`` with exponential backoff retries.

    Args:
        func: Coroutine function to call
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
        exceptions: Tuple of exception types to retry on; the last one is re-raised.
            NON_RETRYABLE_EXCEPTIONS are raised at once.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=(
            retry_if_exception_type(exceptions)
            & retry_if_not_exception_type(NON_RETRYABLE_EXCEPTIONS)
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            return await func(*args, **kwargs)
    raise RuntimeError("unreachable")  # pragma: no cover

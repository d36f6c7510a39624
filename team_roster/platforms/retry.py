"""Retry policy for platform API calls.

Transient transport failures are retried with exponential backoff
(tenacity). Anything else propagates on the first attempt.
"""

import functools
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import httpx
import structlog
from googleapiclient.errors import HttpError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")

# Exceptions that are retriable (transient failures)
RETRIABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    httpx.TransportError,
    HttpError,
)

MAX_ATTEMPTS = 5


def with_retry(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    """Decorator to retry an async API call with exponential backoff.

    Retries up to 5 times (1s min, 30s max wait), logging before each retry.
    The last error is re-raised once attempts are exhausted.

    Args:
        func: Async function performing one API request

    Returns:
        Wrapped function with retry logic
    """

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        @retry(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            wait=wait_exponential(multiplier=1, min=1, max=30),
            retry=retry_if_exception_type(RETRIABLE_EXCEPTIONS),
            before_sleep=before_sleep_log(logger, log_level=20),  # INFO level
            reraise=True,
        )
        async def inner() -> T:
            return await func(*args, **kwargs)

        return await inner()

    return wrapper

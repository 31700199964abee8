"""HTTP client utilities and helpers."""

from __future__ import annotations

from asyncio import sleep
from functools import wraps

from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

import httpx

from blockshot.helpers.constants import (
    CONNECTION_TIMEOUT,
    DEFAULT_TIMEOUT,
    MAX_CONNECTIONS,
    MAX_KEEPALIVE_CONNECTIONS,
    MAX_RETRIES,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from blockshot.helpers.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def retry_with_backoff(
    max_retries: int = MAX_RETRIES,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
    *,
    retry_on: tuple[type[BaseException], ...] = (httpx.HTTPError,),
    log_errors: bool = True,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator to retry async functions with exponential backoff.

    Only exceptions listed in ``retry_on`` are retried; anything else
    propagates immediately.

    Args:
        max_retries: Maximum number of attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay between retries (default: 30.0)
        retry_on: Exception types that trigger another attempt
        log_errors: Whether to log retry attempts (default: True)

    Returns:
        Decorated function that retries on the given exception types

    Example:
        ```python
        from blockshot.errors import InsufficientHistoryError
        from blockshot.helpers.http import retry_with_backoff

        @retry_with_backoff(max_retries=3, retry_on=(InsufficientHistoryError,))
        async def estimate(probe: EndpointProbe) -> AverageBlockTime:
            return await BlockTimeEstimator().estimate(probe)

        # Will retry up to 3 times with delays of 1s, 2s
        ```
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            last_exception: BaseException | None = None

            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    last_exception = e
                    if log_errors and attempt < max_retries - 1:
                        logger.warning(
                            "%s failed (attempt %d/%d): %s",
                            func.__name__,
                            attempt + 1,
                            max_retries,
                            e,
                        )

                # Don't sleep after the last attempt
                if attempt < max_retries - 1:
                    delay = min(base_delay * (2**attempt), max_delay)
                    await sleep(delay)

            if last_exception:
                if log_errors:
                    logger.error(
                        "%s failed after %d attempts", func.__name__, max_retries
                    )
                raise last_exception

            # Only reachable with max_retries < 1
            msg = f"{func.__name__} failed without exception"
            raise RuntimeError(msg)

        return wrapper

    return decorator


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT, **kwargs: Any
) -> httpx.AsyncClient:
    """Create a configured httpx AsyncClient.

    The client is meant to live for one chain session; its connection pool
    is released when the client is closed.

    Args:
        timeout: Default timeout in seconds (default: DEFAULT_TIMEOUT)
        **kwargs: Additional httpx.AsyncClient kwargs

    Returns:
        Configured AsyncClient instance

    Example:
        ```python
        from blockshot.helpers.http import create_http_client

        async with create_http_client(timeout=5.0) as client:
            response = await client.post("https://rpc.example.com", json=payload)
        ```
    """
    kwargs.setdefault(
        "limits",
        httpx.Limits(
            max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
            max_connections=MAX_CONNECTIONS,
        ),
    )
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=min(timeout, CONNECTION_TIMEOUT)),
        **kwargs,
    )


__all__ = [
    "create_http_client",
    "retry_with_backoff",
]

"""Exponential backoff for flaky provider calls."""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def backoff_seconds(attempt: int, delay_ms: int = 1000, backoff_factor: float = 2.0) -> float:
    """Seconds to wait after failed attempt ``attempt`` (1-based): delay, delay*f, delay*f^2..."""
    return delay_ms * backoff_factor ** (attempt - 1) / 1000


def retry(
    max_attempts: int = 3,
    delay_ms: int = 1000,
    backoff_factor: float = 2.0,
    sleep: Sleep = asyncio.sleep,
    retry_on: tuple[type[Exception], ...] = (Exception,),
) -> Callable[..., Any]:
    """Wrap an async callable so it is re-awaited until it succeeds or attempts run out.

    The last error is re-raised unchanged. Exceptions outside ``retry_on``
    propagate on the first failure.
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    if attempt >= max_attempts:
                        raise
                    wait = backoff_seconds(attempt, delay_ms, backoff_factor)
                    logger.debug(
                        "retry_scheduled",
                        func=getattr(func, "__name__", repr(func)),
                        attempt=attempt,
                        max_attempts=max_attempts,
                        wait_seconds=wait,
                        error=str(e),
                    )
                    await sleep(wait)
                    attempt += 1

        return wrapper

    return decorator

"""Retry and backoff utilities for start-up calls.

The poll loop owns its own backoff; this is only for one-shot calls
(cursor seeding) where giving up means the process can't start.
"""
from __future__ import annotations

from functools import wraps
from typing import Any, Callable, TypeVar

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from burnwatch.clients.base import APIError


F = TypeVar('F', bound=Callable[..., Any])


def _retryable(exc: BaseException) -> bool:
    return isinstance(exc, APIError) and exc.retryable


def with_retry(attempts: int = 5, max_wait: float = 30.0) -> Callable[[F], F]:
    """Decorator for async functions that call external APIs.

    Retries retryable APIErrors (rate limits, 5xx, connection errors)
    with exponential backoff from 1s up to ``max_wait``. Client errors
    are raised immediately.
    """
    def decorator(func: F) -> F:
        @retry(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=1, min=1, max=max_wait),
            retry=retry_if_exception(_retryable),
            reraise=True,
        )
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator

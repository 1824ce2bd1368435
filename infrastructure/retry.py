"""Exponential backoff retry for transient collaborator failures.

Used around persistence writes, where a locked SQLite file or a dropped
database connection usually clears within a second. Errors that are not in
``exceptions`` propagate immediately.

Usage::

    from infrastructure.retry import with_retry

    @with_retry(max_attempts=3, base_seconds=0.2, exceptions=(OperationalError,))
    def save(record) -> None:
        ...
"""

from __future__ import annotations

import functools
import logging
import random
import time
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_DEFAULT_RETRYABLE: tuple[type[Exception], ...] = (
    OSError,
    TimeoutError,
    ConnectionError,
)


def with_retry(
    *,
    max_attempts: int = 3,
    base_seconds: float = 0.5,
    max_seconds: float = 10.0,
    jitter: bool = True,
    exceptions: tuple[type[Exception], ...] = _DEFAULT_RETRYABLE,
) -> Callable[[F], F]:
    """Decorator factory for jittered exponential backoff.

    Wait before attempt n+1 is ``min(base_seconds * 2**(n-1), max_seconds)``,
    scaled by a random factor in [0.75, 1.25] when ``jitter`` is set. After
    the last attempt the final exception is re-raised unchanged, so callers
    can still catch the original type.

    Args:
        max_attempts: Total attempts including the first.
        base_seconds: First wait.
        max_seconds: Cap on any single wait.
        jitter: Randomise waits by ±25%.
        exceptions: Exception types that trigger another attempt.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    if attempt == max_attempts:
                        logger.error(
                            "retry: %s gave up after %d attempts (%s)",
                            func.__name__,
                            max_attempts,
                            exc,
                        )
                        raise
                    wait = min(base_seconds * (2 ** (attempt - 1)), max_seconds)
                    if jitter:
                        wait *= 1 + random.uniform(-0.25, 0.25)  # noqa: S311
                    logger.warning(
                        "retry: %s attempt %d/%d failed (%s); retrying in %.2fs",
                        func.__name__,
                        attempt,
                        max_attempts,
                        exc,
                        wait,
                    )
                    time.sleep(wait)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper  # type: ignore[return-value]

    return decorator

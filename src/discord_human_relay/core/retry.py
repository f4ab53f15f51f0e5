from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Coroutine, ParamSpec, TypeVar, cast

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .exceptions import TransientError

P = ParamSpec("P")
T = TypeVar("T")

logger = logging.getLogger(__name__)


def retry_transient(
    max_attempts: int = 4,
    base_wait: float = 1.0,
    max_wait: float = 30.0,
    jitter: float = 1.0,
) -> Callable[[Callable[P, Coroutine[Any, Any, T]]], Callable[P, Coroutine[Any, Any, T]]]:
    """
    Decorator for retrying transient errors with exponential backoff.

    Args:
        max_attempts: Total attempts including the first call (default: 4)
        base_wait: Initial wait in seconds (default: 1.0)
        max_wait: Maximum wait in seconds between attempts (default: 30.0)
        jitter: Maximum random seconds added to each wait (default: 1.0)

    The last error is re-raised once attempts are exhausted.
    """

    def decorator(
        func: Callable[P, Coroutine[Any, Any, T]],
    ) -> Callable[P, Coroutine[Any, Any, T]]:
        @wraps(func)
        @retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential_jitter(initial=base_wait, max=max_wait, jitter=jitter),
            retry=retry_if_exception_type(TransientError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return cast(T, await func(*args, **kwargs))

        return wrapper

    return decorator

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..core.logging_utils import log_event

ThreadFactory = Callable[[], Awaitable[str]]


class ThreadCache:
    """Lazily created thread id with single-flight creation.

    The first caller to find the slot empty starts ``factory``; callers that
    arrive while it runs await the same attempt and observe its result or its
    error. A failed attempt leaves the slot empty so the next call retries.
    """

    def __init__(self, name: str, *, logger: Optional[logging.Logger] = None) -> None:
        self._name = name
        self._logger = logger or logging.getLogger(__name__)
        self._value: Optional[str] = None
        self._inflight: Optional[asyncio.Future[str]] = None

    def peek(self) -> Optional[str]:
        return self._value

    async def get_or_create(self, factory: ThreadFactory) -> str:
        if self._value is not None:
            return self._value
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._create(factory))
            self._inflight.add_done_callback(_consume_exception)
        # Shielded so one cancelled waiter does not abort creation for the rest.
        return await asyncio.shield(self._inflight)

    async def _create(self, factory: ThreadFactory) -> str:
        try:
            value = await factory()
        except Exception as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "relay.thread.create_failed",
                thread=self._name,
                exc=exc,
            )
            raise
        finally:
            self._inflight = None
        self._value = value
        log_event(
            self._logger,
            logging.INFO,
            "relay.thread.created",
            thread=self._name,
            thread_id=value,
        )
        return value


def _consume_exception(future: asyncio.Future[str]) -> None:
    # Keeps asyncio quiet when every waiter was cancelled before a failure landed.
    if not future.cancelled():
        future.exception()

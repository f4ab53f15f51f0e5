from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..core.logging_utils import log_event
from .messages import InboundMessage


@dataclass(eq=False)
class PendingReply:
    channel_id: str
    author_id: str
    future: asyncio.Future[Optional[InboundMessage]] = field(repr=False)

    def matches(self, message: InboundMessage) -> bool:
        return (
            message.channel_id == self.channel_id
            and message.author_id == self.author_id
        )


class ReplyWaiters:
    """Pending reply-awaits fed by inbound gateway messages.

    Each inbound message satisfies at most one waiter, the oldest matching one.
    Closing the registry releases every waiter with ``None``.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._pending: list[PendingReply] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._pending)

    def register(self, *, channel_id: str, author_id: str) -> PendingReply:
        future: asyncio.Future[Optional[InboundMessage]] = (
            asyncio.get_running_loop().create_future()
        )
        pending = PendingReply(channel_id=channel_id, author_id=author_id, future=future)
        if self._closed:
            future.set_result(None)
        else:
            self._pending.append(pending)
        return pending

    def discard(self, pending: PendingReply) -> None:
        if pending in self._pending:
            self._pending.remove(pending)
        if not pending.future.done():
            pending.future.cancel()

    def feed(self, message: InboundMessage) -> bool:
        for pending in list(self._pending):
            if pending.future.done():
                self._pending.remove(pending)
                continue
            if not pending.matches(message):
                continue
            self._pending.remove(pending)
            pending.future.set_result(message)
            log_event(
                self._logger,
                logging.DEBUG,
                "discord.reply.matched",
                channel_id=message.channel_id,
                message_id=message.message_id,
            )
            return True
        return False

    async def wait(
        self, pending: PendingReply, *, timeout: Optional[float] = None
    ) -> Optional[InboundMessage]:
        try:
            if timeout is None:
                return await pending.future
            return await asyncio.wait_for(pending.future, timeout)
        except asyncio.TimeoutError:
            return None
        finally:
            self.discard(pending)

    def close(self) -> None:
        self._closed = True
        pending, self._pending = self._pending, []
        for item in pending:
            if not item.future.done():
                item.future.set_result(None)

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from .replies import ReplyWaiters


class DiscordRestApi(Protocol):
    async def create_thread(
        self,
        *,
        channel_id: str,
        name: str,
        auto_archive_duration: int = ...,
        thread_type: int = ...,
    ) -> dict[str, Any]: ...

    async def create_channel_message(
        self, *, channel_id: str, payload: dict[str, Any]
    ) -> dict[str, Any]: ...


@dataclass(frozen=True)
class DiscordSession:
    """Capability handed out once the gateway reports READY."""

    rest: DiscordRestApi
    replies: ReplyWaiters
    bot_user_id: Optional[str] = None
    session_id: Optional[str] = None

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


def _as_id(value: object) -> str | None:
    if value is None:
        return None
    token = str(value).strip()
    return token or None


@dataclass(frozen=True)
class InboundMessage:
    message_id: str
    channel_id: str
    author_id: str
    content: str


def parse_message_create(payload: dict[str, Any]) -> Optional[InboundMessage]:
    """Parse a MESSAGE_CREATE dispatch payload; None when required ids are missing."""
    message_id = _as_id(payload.get("id"))
    channel_id = _as_id(payload.get("channel_id"))
    author = payload.get("author")
    author_id = _as_id(author.get("id")) if isinstance(author, dict) else None
    if not message_id or not channel_id or not author_id:
        return None
    content = payload.get("content")
    return InboundMessage(
        message_id=message_id,
        channel_id=channel_id,
        author_id=author_id,
        content=content if isinstance(content, str) else "",
    )


def extract_bot_user_id(ready_payload: dict[str, Any]) -> Optional[str]:
    user = ready_payload.get("user")
    if not isinstance(user, dict):
        return None
    return _as_id(user.get("id"))

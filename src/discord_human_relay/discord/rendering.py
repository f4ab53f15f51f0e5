from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .constants import (
    DISCORD_MAX_EMBED_DESCRIPTION_LENGTH,
    DISCORD_MAX_EMBED_FOOTER_LENGTH,
    DISCORD_MAX_EMBED_TITLE_LENGTH,
    DISCORD_MAX_MESSAGE_LENGTH,
    DISCORD_MAX_THREAD_NAME_LENGTH,
)

TRUNCATION_SUFFIX = "..."

ROLE_COLORS: Mapping[str, int] = {
    "human": 0x3498DB,
    "assistant": 0x2ECC71,
    "system": 0x95A5A6,
}
DEFAULT_ROLE_COLOR = 0x7F8C8D


def format_user_mention(user_id: str) -> str:
    return f"<@{user_id}>"


def thread_title(text: str, max_len: int = DISCORD_MAX_THREAD_NAME_LENGTH) -> str:
    # Counts code points, not bytes; Discord measures names the same way.
    return text[:max_len]


def trim_text(
    text: str, *, max_len: int, suffix: str = TRUNCATION_SUFFIX
) -> str:
    if max_len <= 0:
        raise ValueError("max_len must be positive")
    if len(text) <= max_len:
        return text
    if max_len <= len(suffix):
        return suffix[:max_len]
    return text[: max_len - len(suffix)] + suffix


def split_message(text: str, *, max_len: int = DISCORD_MAX_MESSAGE_LENGTH) -> list[str]:
    """Split ``text`` into chunks of at most ``max_len`` characters.

    Cuts prefer a paragraph break, then a line break, then a space, and fall
    back to a hard cut when a single word is longer than the limit.
    """
    if max_len <= 0:
        raise ValueError("max_len must be positive")
    chunks: list[str] = []
    remaining = text
    while remaining:
        if len(remaining) <= max_len:
            chunks.append(remaining)
            break
        cut = _boundary(remaining, max_len)
        chunks.append(remaining[:cut])
        remaining = remaining[cut:]
    return chunks


def _boundary(text: str, limit: int) -> int:
    for separator in ("\n\n", "\n", " "):
        cut = text.rfind(separator, 0, limit)
        if cut > 0:
            return cut + len(separator)
    return limit


def build_question_messages(
    user_id: str, question: str, *, max_len: int = DISCORD_MAX_MESSAGE_LENGTH
) -> list[str]:
    """Render the question as one or more messages; only the first mentions the user.

    The question body is split on its own so a cut never lands inside the
    mention prefix.
    """
    prefix = f"{format_user_mention(user_id)} "
    if len(prefix) >= max_len:
        raise ValueError("max_len must leave room for the mention")
    head_chunks = split_message(question, max_len=max_len - len(prefix))
    head = head_chunks[0] if head_chunks else ""
    return [prefix + head, *split_message(question[len(head):], max_len=max_len)]


def role_color(role: str) -> int:
    return ROLE_COLORS.get(role, DEFAULT_ROLE_COLOR)


def build_log_embed(
    role: str,
    message: str,
    context: Optional[str] = None,
    *,
    timestamp: Optional[datetime] = None,
) -> dict[str, Any]:
    when = timestamp or datetime.now(timezone.utc)
    embed: dict[str, Any] = {
        "title": trim_text(
            f"\N{SPEECH BALLOON} {role.upper()}",
            max_len=DISCORD_MAX_EMBED_TITLE_LENGTH,
        ),
        "description": trim_text(
            message, max_len=DISCORD_MAX_EMBED_DESCRIPTION_LENGTH
        ),
        "color": role_color(role),
        "timestamp": when.isoformat(),
    }
    if context:
        embed["footer"] = {
            "text": trim_text(context, max_len=DISCORD_MAX_EMBED_FOOTER_LENGTH)
        }
    return embed

"""Minimal Discord REST and gateway client used by the relay."""

from .constants import (
    DEFAULT_INTENTS,
    DISCORD_API_BASE_URL,
    DISCORD_GATEWAY_URL,
    DISCORD_MAX_MESSAGE_LENGTH,
)
from .errors import (
    DiscordAPIError,
    DiscordError,
    DiscordPermanentError,
    DiscordTransientError,
)
from .gateway import (
    DiscordGatewayClient,
    GatewayFrame,
    build_identify_payload,
    calculate_reconnect_backoff,
    parse_gateway_frame,
)
from .messages import InboundMessage, extract_bot_user_id, parse_message_create
from .replies import PendingReply, ReplyWaiters
from .rest import DiscordRestClient
from .session import DiscordSession

__all__ = [
    "DEFAULT_INTENTS",
    "DISCORD_API_BASE_URL",
    "DISCORD_GATEWAY_URL",
    "DISCORD_MAX_MESSAGE_LENGTH",
    "DiscordError",
    "DiscordAPIError",
    "DiscordTransientError",
    "DiscordPermanentError",
    "DiscordGatewayClient",
    "GatewayFrame",
    "build_identify_payload",
    "calculate_reconnect_backoff",
    "parse_gateway_frame",
    "InboundMessage",
    "extract_bot_user_id",
    "parse_message_create",
    "PendingReply",
    "ReplyWaiters",
    "DiscordRestClient",
    "DiscordSession",
]

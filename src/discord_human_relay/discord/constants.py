from __future__ import annotations

DISCORD_API_BASE_URL = "https://discord.com/api/v10"
DISCORD_GATEWAY_URL = "wss://gateway.discord.gg/?v=10&encoding=json"

# Discord hard limits (https://discord.com/developers/docs/resources/message).
DISCORD_MAX_MESSAGE_LENGTH = 2000
DISCORD_MAX_THREAD_NAME_LENGTH = 100
DISCORD_MAX_EMBED_TITLE_LENGTH = 256
DISCORD_MAX_EMBED_DESCRIPTION_LENGTH = 4096
DISCORD_MAX_EMBED_FOOTER_LENGTH = 2048

# Gateway intents bitflags (https://discord.com/developers/docs/topics/gateway#gateway-intents).
DISCORD_INTENT_GUILDS = 1 << 0
DISCORD_INTENT_GUILD_MESSAGES = 1 << 9
DISCORD_INTENT_MESSAGE_CONTENT = 1 << 15

DEFAULT_INTENTS = (
    DISCORD_INTENT_GUILDS
    | DISCORD_INTENT_GUILD_MESSAGES
    | DISCORD_INTENT_MESSAGE_CONTENT
)

DISCORD_CHANNEL_TYPE_PUBLIC_THREAD = 11

# Thread auto-archive durations, in minutes.
AUTO_ARCHIVE_ONE_DAY = 1440
AUTO_ARCHIVE_ONE_WEEK = 10080

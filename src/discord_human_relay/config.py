from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .discord.constants import DEFAULT_INTENTS
from .relay.human import DEFAULT_LOG_THREAD_NAME

DEFAULT_LOG_LEVEL = "INFO"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_TRUE_TOKENS = {"1", "true", "yes", "on"}
_FALSE_TOKENS = {"0", "false", "no", "off", ""}


class RelayConfigError(Exception):
    """Raised when relay configuration is missing or invalid."""


@dataclass(frozen=True)
class RelayConfig:
    bot_token: str
    channel_id: str
    user_id: str
    enable_conversation_log: bool = False
    log_channel_id: Optional[str] = None
    log_thread_name: str = DEFAULT_LOG_THREAD_NAME
    reply_timeout_seconds: Optional[float] = None
    intents: int = DEFAULT_INTENTS
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[Path] = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "RelayConfig":
        cfg: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

        bot_token = str(cfg.get("discord_token") or "").strip()
        if not bot_token:
            raise RelayConfigError(
                "Discord bot token is required (--discord-token or DISCORD_TOKEN)"
            )
        channel_id = _parse_snowflake(cfg.get("discord_channel_id"), key="discord_channel_id")
        if channel_id is None:
            raise RelayConfigError(
                "Discord channel id is required (--discord-channel-id or DISCORD_CHANNEL_ID)"
            )
        user_id = _parse_snowflake(cfg.get("discord_user_id"), key="discord_user_id")
        if user_id is None:
            raise RelayConfigError(
                "Discord user id is required (--discord-user-id or DISCORD_USER_ID)"
            )

        enable_conversation_log = _parse_bool(
            cfg.get("enable_conversation_log"),
            default=False,
            key="enable_conversation_log",
        )
        log_channel_id = _parse_snowflake(cfg.get("log_channel_id"), key="log_channel_id")

        log_thread_name = str(
            cfg.get("log_thread_name") or DEFAULT_LOG_THREAD_NAME
        ).strip()
        if not log_thread_name:
            log_thread_name = DEFAULT_LOG_THREAD_NAME
        if len(log_thread_name) > 100:
            raise RelayConfigError("log_thread_name must be at most 100 characters")

        reply_timeout_seconds = _parse_optional_positive_float(
            cfg.get("reply_timeout_seconds"), key="reply_timeout_seconds"
        )

        intents_value = cfg.get("intents", DEFAULT_INTENTS)
        if intents_value is None:
            intents_value = DEFAULT_INTENTS
        if isinstance(intents_value, bool) or not isinstance(intents_value, int):
            raise RelayConfigError("intents must be an integer")
        if intents_value < 0:
            raise RelayConfigError("intents must be >= 0")

        log_level = str(cfg.get("log_level") or DEFAULT_LOG_LEVEL).strip().upper()
        if log_level not in _LOG_LEVELS:
            raise RelayConfigError(
                f"log_level must be one of {', '.join(sorted(_LOG_LEVELS))}"
            )
        log_file_raw = cfg.get("log_file")
        log_file = Path(str(log_file_raw)).expanduser() if log_file_raw else None

        return cls(
            bot_token=bot_token,
            channel_id=channel_id,
            user_id=user_id,
            enable_conversation_log=enable_conversation_log,
            log_channel_id=log_channel_id,
            log_thread_name=log_thread_name,
            reply_timeout_seconds=reply_timeout_seconds,
            intents=intents_value,
            log_level=log_level,
            log_file=log_file,
        )


def load_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML mapping of config keys; a missing file is an error."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RelayConfigError(f"Unable to read config file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RelayConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RelayConfigError(f"Config file {path} must contain a mapping")
    return {str(key).replace("-", "_"): value for key, value in data.items()}


def merge_raw(*layers: Mapping[str, Any]) -> dict[str, Any]:
    """Merge config layers left to right; ``None`` never overrides a value."""
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            if value is not None:
                merged[key] = value
    return merged


def _parse_snowflake(value: Any, *, key: str) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    token = str(value).strip()
    if not token:
        return None
    if not token.isdigit():
        raise RelayConfigError(f"{key} must be a numeric Discord id, got {token!r}")
    return token


def _parse_bool(value: Any, *, default: bool, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    token = str(value).strip().lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    raise RelayConfigError(f"{key} must be a boolean")


def _parse_optional_positive_float(value: Any, *, key: str) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise RelayConfigError(f"{key} must be a number")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise RelayConfigError(f"{key} must be a number") from exc
    if parsed <= 0:
        return None
    return parsed

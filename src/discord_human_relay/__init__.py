"""Relay MCP tool calls to a human on Discord."""

from .config import RelayConfig, RelayConfigError
from .relay import (
    DiscordHumanRelay,
    LoggingMisconfiguredError,
    NoReplyError,
    NotReadyError,
    ReadinessGate,
    RelayError,
    SendError,
    ThreadCache,
    ThreadCreationError,
)
from .version import __version__

__all__ = [
    "__version__",
    "RelayConfig",
    "RelayConfigError",
    "DiscordHumanRelay",
    "ReadinessGate",
    "ThreadCache",
    "RelayError",
    "NotReadyError",
    "ThreadCreationError",
    "SendError",
    "NoReplyError",
    "LoggingMisconfiguredError",
]

from .errors import (
    LoggingMisconfiguredError,
    NoReplyError,
    NotReadyError,
    RelayError,
    SendError,
    ThreadCreationError,
)
from .human import (
    DEFAULT_LOG_THREAD_NAME,
    LOG_ACKNOWLEDGEMENT,
    DiscordHumanRelay,
    Human,
)
from .readiness import ReadinessGate
from .thread_cache import ThreadCache

__all__ = [
    "DEFAULT_LOG_THREAD_NAME",
    "LOG_ACKNOWLEDGEMENT",
    "DiscordHumanRelay",
    "Human",
    "ReadinessGate",
    "ThreadCache",
    "RelayError",
    "NotReadyError",
    "ThreadCreationError",
    "SendError",
    "NoReplyError",
    "LoggingMisconfiguredError",
]

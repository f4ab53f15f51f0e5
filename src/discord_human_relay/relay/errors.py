from __future__ import annotations

from ..core.exceptions import RelayBaseError


class RelayError(RelayBaseError):
    """Base class for failures of a Human Relay operation."""


class NotReadyError(RelayError):
    """The Discord gateway has not completed its handshake yet."""

    def __init__(self, message: str = "The connection with Discord is not ready") -> None:
        super().__init__(message)


class ThreadCreationError(RelayError):
    """Creating the question or log thread failed."""


class SendError(RelayError):
    """Posting a message into a thread failed."""


class NoReplyError(RelayError):
    """The reply-await ended without a message from the respondent."""


class LoggingMisconfiguredError(RelayError):
    """Conversation logging is enabled but no log channel is configured."""

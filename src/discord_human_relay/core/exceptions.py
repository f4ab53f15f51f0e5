from __future__ import annotations


class RelayBaseError(Exception):
    """Base class for errors raised by discord-human-relay."""

    recoverable: bool = False
    severity: str = "error"


class TransientError(RelayBaseError):
    """Error that may succeed when retried (rate limits, network blips)."""

    recoverable = True
    severity = "warning"


class PermanentError(RelayBaseError):
    """Error that will not succeed on retry (bad credentials, bad request)."""

    recoverable = False
    severity = "error"

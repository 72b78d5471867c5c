"""Exception hierarchy for ably-cli.

Only ConfigError, ConnectionFailedError and ChannelFailedError end the
process. DecodeError and RenderError are always contained to the single
event that raised them.
"""

from __future__ import annotations


class AblyCliError(Exception):
    """Base exception for all ably-cli errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message} ({self.suggestion})"
        return self.message


class ConfigError(AblyCliError):
    """Command-line input is missing or invalid."""

    def __init__(self, message: str, flag: str | None = None) -> None:
        super().__init__(message, suggestion="run with --help for usage")
        self.flag = flag


class ConnectionFailedError(AblyCliError):
    """The connection to the messaging service entered the failed state."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(f"Connection failed: {reason or 'unknown reason'}")
        self.reason = reason


class ChannelFailedError(AblyCliError):
    """The subscribed channel entered the failed state."""

    def __init__(self, channel: str, reason: str | None = None) -> None:
        super().__init__(
            f"Channel '{channel}' failed: {reason or 'unknown reason'}"
        )
        self.channel = channel
        self.reason = reason


class DecodeError(AblyCliError):
    """A payload could not be decoded under its declared encoding."""

    def __init__(self, encoding: str, detail: str) -> None:
        super().__init__(f"Error decoding {encoding} data: {detail}")
        self.encoding = encoding
        self.detail = detail


class RenderError(AblyCliError):
    """Formatting a single event failed."""

    pass


class SessionStateError(AblyCliError):
    """A lifecycle transition was attempted from a state that does not allow it."""

    pass

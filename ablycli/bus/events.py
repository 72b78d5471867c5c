"""Event and state types passed from the messaging client to the session."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


WILDCARD = "*"


class ConnectionState(str, Enum):
    """Lifecycle states of the link to the messaging service."""

    INITIALIZED = "initialized"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    SUSPENDED = "suspended"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


class ChannelState(str, Enum):
    """Lifecycle states of a channel subscription."""

    INITIALIZED = "initialized"
    ATTACHING = "attaching"
    ATTACHED = "attached"
    DETACHING = "detaching"
    DETACHED = "detached"
    SUSPENDED = "suspended"
    FAILED = "failed"


@dataclass(frozen=True)
class StateChange:
    """A connection or channel state transition reported by the client."""

    current: ConnectionState | ChannelState
    previous: ConnectionState | ChannelState | None = None
    reason: str | None = None

    @property
    def failed(self) -> bool:
        return self.current.value == "failed"


@dataclass
class ChannelMessage:
    """A message delivered on the subscribed channel."""

    name: str | None = None
    data: Any = None
    timestamp: int | None = None  # epoch milliseconds
    client_id: str | None = None
    connection_id: str | None = None
    encoding: str | None = None
    extras: Any = None
    id: str | None = None
    raw: Any = None  # SDK object, kept for debug dumps

    def matches(self, event_filter: str) -> bool:
        """True if this message passes the event-name filter."""
        return event_filter == WILDCARD or self.name == event_filter


@dataclass
class PresenceEvent:
    """A presence update (enter, leave, update, ...) on the channel."""

    action: str | None = None
    client_id: str | None = None
    connection_id: str | None = None
    data: Any = None
    timestamp: int | None = None
    encoding: str | None = None
    raw: Any = None

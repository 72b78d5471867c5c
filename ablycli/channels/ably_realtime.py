"""Messaging client backed by the Ably realtime SDK."""

from __future__ import annotations

import inspect
from enum import Enum
from typing import Any, TypeVar

from ably import AblyRealtime
from loguru import logger

from ..bus.events import (
    ChannelMessage,
    ChannelState,
    ConnectionState,
    PresenceEvent,
    StateChange,
)
from .base import (
    MessageListener,
    MessagingClient,
    PresenceListener,
    RemoteChannel,
    StateListener,
)


S = TypeVar("S", ConnectionState, ChannelState)


def _state(enum_cls: type[S], value: Any) -> S | None:
    """Map an SDK state (enum or string) onto our state enum."""
    if value is None:
        return None
    raw = value.value if isinstance(value, Enum) else value
    try:
        return enum_cls(str(raw).lower())
    except ValueError:
        return None


def to_state_change(change: Any, enum_cls: type[S]) -> StateChange | None:
    """Convert an SDK state-change object. None if the state is unknown."""
    current = _state(enum_cls, getattr(change, "current", None))
    if current is None:
        return None
    reason = getattr(change, "reason", None)
    return StateChange(
        current=current,
        previous=_state(enum_cls, getattr(change, "previous", None)),
        reason=str(reason) if reason is not None else None,
    )


def to_message(message: Any) -> ChannelMessage:
    """Convert an SDK message into a ChannelMessage."""
    return ChannelMessage(
        name=getattr(message, "name", None),
        data=getattr(message, "data", None),
        timestamp=getattr(message, "timestamp", None),
        client_id=getattr(message, "client_id", None),
        connection_id=getattr(message, "connection_id", None),
        encoding=getattr(message, "encoding", None),
        extras=getattr(message, "extras", None),
        id=getattr(message, "id", None),
        raw=message,
    )


def to_presence(message: Any) -> PresenceEvent:
    """Convert an SDK presence message into a PresenceEvent."""
    action = getattr(message, "action", None)
    if isinstance(action, Enum):
        action = action.name.lower()
    return PresenceEvent(
        action=str(action) if action is not None else None,
        client_id=getattr(message, "client_id", None),
        connection_id=getattr(message, "connection_id", None),
        data=getattr(message, "data", None),
        timestamp=getattr(message, "timestamp", None),
        encoding=getattr(message, "encoding", None),
        raw=message,
    )


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


class AblyChannel(RemoteChannel):
    """Wraps an Ably RealtimeChannel."""

    def __init__(self, channel: Any) -> None:
        self._channel = channel

    @property
    def name(self) -> str:
        return self._channel.name

    def on_state(self, listener: StateListener) -> None:
        def _on_change(change: Any) -> None:
            converted = to_state_change(change, ChannelState)
            if converted is None:
                logger.debug(f"Ignoring unknown channel state: {change}")
                return
            listener(converted)

        self._channel.on(_on_change)

    async def subscribe(self, listener: MessageListener) -> None:
        await _maybe_await(self._channel.subscribe(lambda m: listener(to_message(m))))

    async def subscribe_presence(self, listener: PresenceListener) -> bool:
        presence = getattr(self._channel, "presence", None)
        if presence is None:
            return False
        await _maybe_await(presence.subscribe(lambda m: listener(to_presence(m))))
        return True


class AblyRealtimeClient(MessagingClient):
    """MessagingClient over ``ably.AblyRealtime``."""

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key
        self._realtime: AblyRealtime | None = None
        self._state_listeners: list[StateListener] = []

    def on_connection_state(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)
        if self._realtime is not None:
            self._watch(listener)

    async def connect(self) -> None:
        """Create the realtime client, which connects on its own."""
        if self._realtime is not None:
            return
        self._realtime = AblyRealtime(key=self._api_key)
        for listener in self._state_listeners:
            self._watch(listener)
        logger.debug("Ably realtime client created")

    def get_channel(self, name: str) -> AblyChannel:
        if self._realtime is None:
            raise RuntimeError("connect() must be called before get_channel()")
        return AblyChannel(self._realtime.channels.get(name))

    async def close(self) -> None:
        if self._realtime is None:
            return
        await self._realtime.close()

    def _watch(self, listener: StateListener) -> None:
        def _on_change(change: Any) -> None:
            converted = to_state_change(change, ConnectionState)
            if converted is None:
                logger.debug(f"Ignoring unknown connection state: {change}")
                return
            listener(converted)

        self._realtime.connection.on(_on_change)

"""Abstract interface to the external messaging client."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from ..bus.events import ChannelMessage, PresenceEvent, StateChange


StateListener = Callable[[StateChange], None]
MessageListener = Callable[[ChannelMessage], None]
PresenceListener = Callable[[PresenceEvent], None]


class RemoteChannel(ABC):
    """A named channel on the messaging service."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def on_state(self, listener: StateListener) -> None:
        """Observe every channel state change."""
        ...

    @abstractmethod
    async def subscribe(self, listener: MessageListener) -> None:
        """Receive every message published on the channel."""
        ...

    @abstractmethod
    async def subscribe_presence(self, listener: PresenceListener) -> bool:
        """Receive every presence update. Returns False if unsupported."""
        ...


class MessagingClient(ABC):
    """Connection to the hosted pub/sub service.

    Listeners are plain callables invoked from the client's own delivery
    machinery; they must not block.
    """

    @abstractmethod
    def on_connection_state(self, listener: StateListener) -> None:
        """Observe every connection state change for the client's lifetime."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Begin connecting. Completion is reported through state changes."""
        ...

    @abstractmethod
    def get_channel(self, name: str) -> RemoteChannel:
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection gracefully."""
        ...

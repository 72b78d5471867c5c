"""Shared fixtures: an in-memory messaging client standing in for the SDK."""

from __future__ import annotations

import asyncio
import io

import pytest
from rich.console import Console

from ablycli.bus.events import (
    ChannelMessage,
    ChannelState,
    ConnectionState,
    PresenceEvent,
    StateChange,
)
from ablycli.channels.base import MessagingClient, RemoteChannel
from ablycli.config.schema import SessionConfig


class FakeChannel(RemoteChannel):
    """Channel whose deliveries and state changes are driven by the test."""

    def __init__(self, name: str, presence: bool = True) -> None:
        self._name = name
        self._presence = presence
        self.subscribe_error: Exception | None = None
        self.hang_subscribe = False
        self.subscribe_cancelled = False
        self.state_listeners: list = []
        self.message_listeners: list = []
        self.presence_listeners: list = []

    @property
    def name(self) -> str:
        return self._name

    def on_state(self, listener) -> None:
        self.state_listeners.append(listener)

    async def subscribe(self, listener) -> None:
        if self.subscribe_error is not None:
            raise self.subscribe_error
        if self.hang_subscribe:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.subscribe_cancelled = True
                raise
        self.message_listeners.append(listener)
        self.set_state(ChannelState.ATTACHED)

    async def subscribe_presence(self, listener) -> bool:
        if not self._presence:
            return False
        self.presence_listeners.append(listener)
        return True

    def deliver(self, message: ChannelMessage) -> None:
        for listener in self.message_listeners:
            listener(message)

    def deliver_presence(self, event: PresenceEvent) -> None:
        for listener in self.presence_listeners:
            listener(event)

    def set_state(self, state: ChannelState, reason: str | None = None) -> None:
        for listener in self.state_listeners:
            listener(StateChange(current=state, reason=reason))


class FakeClient(MessagingClient):
    """MessagingClient that connects instantly unless told otherwise."""

    def __init__(self, auto_connect: bool = True, presence: bool = True) -> None:
        self.auto_connect = auto_connect
        self.presence = presence
        self.connect_error: Exception | None = None
        self.hang_connect = False
        self.close_delay = 0.0
        self.connect_calls = 0
        self.closed = False
        self.listeners: list = []
        self.channels: dict[str, FakeChannel] = {}

    def on_connection_state(self, listener) -> None:
        self.listeners.append(listener)

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        if self.hang_connect:
            await asyncio.Event().wait()
        self.set_state(ConnectionState.CONNECTING)
        if self.auto_connect:
            self.set_state(ConnectionState.CONNECTED)

    def get_channel(self, name: str) -> FakeChannel:
        if name not in self.channels:
            self.channels[name] = FakeChannel(name, presence=self.presence)
        return self.channels[name]

    async def close(self) -> None:
        if self.close_delay:
            await asyncio.sleep(self.close_delay)
        self.closed = True

    def set_state(self, state: ConnectionState, reason: str | None = None) -> None:
        for listener in self.listeners:
            listener(StateChange(current=state, reason=reason))


def make_config(**overrides) -> SessionConfig:
    values = {"api_key": "k", "channel_name": "room1"}
    values.update(overrides)
    return SessionConfig(**values)


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def console(output: io.StringIO) -> Console:
    return Console(file=output, width=200, color_system=None)

"""Tests for the Ably SDK adapter, with the SDK mocked out."""

from __future__ import annotations

from enum import Enum, IntEnum
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ablycli.bus.events import ChannelMessage, ChannelState, ConnectionState, PresenceEvent
from ablycli.channels.ably_realtime import (
    AblyChannel,
    AblyRealtimeClient,
    to_message,
    to_presence,
    to_state_change,
)


class SdkConnectionState(str, Enum):
    CONNECTED = "connected"
    FAILED = "failed"


class SdkPresenceAction(IntEnum):
    ENTER = 2
    LEAVE = 3


class TestConversions:
    """Test SDK object -> event conversions."""

    def test_state_change_from_enum(self) -> None:
        change = SimpleNamespace(
            current=SdkConnectionState.FAILED,
            previous=SdkConnectionState.CONNECTED,
            reason=Exception("40101 invalid credentials"),
        )
        converted = to_state_change(change, ConnectionState)
        assert converted.current is ConnectionState.FAILED
        assert converted.previous is ConnectionState.CONNECTED
        assert converted.reason == "40101 invalid credentials"
        assert converted.failed is True

    def test_state_change_from_string(self) -> None:
        converted = to_state_change(SimpleNamespace(current="ATTACHED"), ChannelState)
        assert converted.current is ChannelState.ATTACHED
        assert converted.previous is None
        assert converted.reason is None

    def test_unknown_state(self) -> None:
        assert to_state_change(SimpleNamespace(current="update"), ChannelState) is None
        assert to_state_change(SimpleNamespace(), ConnectionState) is None

    def test_message(self) -> None:
        raw = SimpleNamespace(
            name="ping",
            data="aGVsbG8=",
            timestamp=1_700_000_000_000,
            client_id="alice",
            connection_id="conn-1",
            encoding="base64",
            extras={"headers": {}},
            id="msg-1",
        )
        message = to_message(raw)
        assert message == ChannelMessage(
            name="ping",
            data="aGVsbG8=",
            timestamp=1_700_000_000_000,
            client_id="alice",
            connection_id="conn-1",
            encoding="base64",
            extras={"headers": {}},
            id="msg-1",
            raw=raw,
        )

    def test_sparse_message(self) -> None:
        message = to_message(SimpleNamespace(data="x"))
        assert message.name is None
        assert message.data == "x"

    def test_presence_action_enum(self) -> None:
        raw = SimpleNamespace(action=SdkPresenceAction.ENTER, client_id="alice")
        event = to_presence(raw)
        assert isinstance(event, PresenceEvent)
        assert event.action == "enter"
        assert event.client_id == "alice"
        assert event.raw is raw

    def test_presence_action_string(self) -> None:
        assert to_presence(SimpleNamespace(action="leave")).action == "leave"


class TestAblyChannel:
    """Test the channel wrapper."""

    @pytest.mark.asyncio
    async def test_subscribe_converts_messages(self) -> None:
        sdk_channel = MagicMock()
        sdk_channel.subscribe = AsyncMock()
        received: list[ChannelMessage] = []

        await AblyChannel(sdk_channel).subscribe(received.append)

        callback = sdk_channel.subscribe.call_args.args[0]
        callback(SimpleNamespace(name="ping", data="a"))
        assert [m.name for m in received] == ["ping"]

    @pytest.mark.asyncio
    async def test_presence_unsupported(self) -> None:
        sdk_channel = MagicMock(spec=["name", "on", "subscribe"])
        assert await AblyChannel(sdk_channel).subscribe_presence(lambda e: None) is False

    @pytest.mark.asyncio
    async def test_presence_subscribe(self) -> None:
        sdk_channel = MagicMock()
        sdk_channel.presence.subscribe = AsyncMock()
        received: list[PresenceEvent] = []

        assert await AblyChannel(sdk_channel).subscribe_presence(received.append) is True

        callback = sdk_channel.presence.subscribe.call_args.args[0]
        callback(SimpleNamespace(action="enter", client_id="bob"))
        assert received[0].client_id == "bob"

    def test_state_listener_skips_unknown_states(self) -> None:
        sdk_channel = MagicMock()
        changes = []
        AblyChannel(sdk_channel).on_state(changes.append)

        on_change = sdk_channel.on.call_args.args[0]
        on_change(SimpleNamespace(current="attached"))
        on_change(SimpleNamespace(current="update"))
        assert [c.current for c in changes] == [ChannelState.ATTACHED]


class TestAblyRealtimeClient:
    """Test the client wrapper."""

    @pytest.mark.asyncio
    async def test_connect_registers_listeners(self) -> None:
        with patch("ablycli.channels.ably_realtime.AblyRealtime") as realtime_cls:
            client = AblyRealtimeClient("app.key:secret")
            changes = []
            client.on_connection_state(changes.append)
            await client.connect()

            realtime_cls.assert_called_once_with(key="app.key:secret")
            connection = realtime_cls.return_value.connection
            on_change = connection.on.call_args.args[0]
            on_change(SimpleNamespace(current=SdkConnectionState.CONNECTED))
            on_change(SimpleNamespace(current="update"))

        assert [c.current for c in changes] == [ConnectionState.CONNECTED]

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self) -> None:
        with patch("ablycli.channels.ably_realtime.AblyRealtime") as realtime_cls:
            client = AblyRealtimeClient("key")
            await client.connect()
            await client.connect()
        realtime_cls.assert_called_once()

    @pytest.mark.asyncio
    async def test_listener_added_after_connect(self) -> None:
        with patch("ablycli.channels.ably_realtime.AblyRealtime") as realtime_cls:
            client = AblyRealtimeClient("key")
            await client.connect()
            client.on_connection_state(lambda change: None)
        assert realtime_cls.return_value.connection.on.call_count == 1

    @pytest.mark.asyncio
    async def test_get_channel_and_close(self) -> None:
        with patch("ablycli.channels.ably_realtime.AblyRealtime") as realtime_cls:
            realtime = realtime_cls.return_value
            realtime.close = AsyncMock()
            realtime.channels.get.return_value.name = "room1"

            client = AblyRealtimeClient("key")
            await client.connect()
            channel = client.get_channel("room1")
            await client.close()

        realtime.channels.get.assert_called_once_with("room1")
        assert channel.name == "room1"
        realtime.close.assert_awaited_once()

    def test_get_channel_before_connect(self) -> None:
        with pytest.raises(RuntimeError):
            AblyRealtimeClient("key").get_channel("room1")

    @pytest.mark.asyncio
    async def test_close_before_connect_is_noop(self) -> None:
        await AblyRealtimeClient("key").close()

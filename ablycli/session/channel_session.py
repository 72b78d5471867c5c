"""Channel session: one subscription for the lifetime of the process."""

from __future__ import annotations

import asyncio
import traceback
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger as default_logger
from rich.console import Console

from ..bus.events import (
    ChannelMessage,
    ConnectionState,
    PresenceEvent,
    StateChange,
)
from ..bus.queue import EventQueue
from ..channels.base import MessagingClient, RemoteChannel
from ..codec.payload import decode
from ..config.schema import SessionConfig
from ..errors import (
    AblyCliError,
    ChannelFailedError,
    ConnectionFailedError,
    DecodeError,
    RenderError,
)
from ..render.overrides import OverrideRegistry
from ..render.renderer import UNNAMED, MessageRenderer
from .state import SessionState, check_transition

T = TypeVar("T")


def _discard_result(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


class ChannelSession:
    """Connects, subscribes to one channel and prints what arrives.

    The session is reactive: after subscribing it waits passively until
    ``request_stop()`` is called or the connection or channel fails.
    Message and presence events are delivered by the client's callbacks
    into an EventQueue and handled one at a time per stream.
    """

    def __init__(
        self,
        config: SessionConfig,
        client: MessagingClient,
        *,
        renderer: MessageRenderer | None = None,
        overrides: OverrideRegistry | None = None,
        console: Console | None = None,
        logger: Any = None,
        queue_size: int = EventQueue.MAX_QUEUE_SIZE,
        close_timeout: float = 2.0,
        on_stopping: Callable[[], None] | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._renderer = renderer or MessageRenderer()
        self._overrides = overrides or OverrideRegistry()
        self._console = console or Console()
        self._log = logger or default_logger.bind(channel=config.channel_name)
        self._queue = EventQueue(queue_size)
        self._close_timeout = close_timeout
        self._on_stopping = on_stopping
        self._stopping_notified = False

        self._state = SessionState.START
        self._channel: RemoteChannel | None = None
        self._opened = False
        self._connected = asyncio.Event()
        self._stop = asyncio.Event()
        self._fatal: AblyCliError | None = None
        self.rendered = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def fatal(self) -> AblyCliError | None:
        """The error that ended the session, if it failed."""
        return self._fatal

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    # -- lifecycle -----------------------------------------------------------

    async def run(self) -> None:
        """Run until stopped.

        Returns normally after ``request_stop()``. Raises
        ConnectionFailedError or ChannelFailedError if either enters the
        failed state, after a best-effort close.
        """
        try:
            await self._connect()
            if not self.stopping:
                await self._subscribe()
            if not self.stopping:
                await self._listen()
        finally:
            await self._shutdown()

        if self._fatal is not None:
            raise self._fatal

    async def drain(self) -> None:
        """Wait until every event delivered so far has been handled."""
        await self._queue.join()

    def request_stop(self) -> None:
        """Ask the session to shut down. Safe to call repeatedly."""
        if not self._stop.is_set():
            self._log.info("Stop requested, shutting down")
            self._signal_stop()

    async def _connect(self) -> None:
        self._transition(SessionState.CONNECTING)
        self._client.on_connection_state(self._on_connection_state)
        try:
            await self._until_stopped(self._client.connect())
        except Exception as e:
            self._fail(ConnectionFailedError(str(e)))
            return
        # Set even when interrupted: a half-open client still needs closing
        self._opened = True
        if self.stopping:
            return

        await self._until_stopped(self._connected.wait())
        if self._connected.is_set() and not self.stopping:
            self._transition(SessionState.CONNECTED)

    async def _subscribe(self) -> None:
        self._transition(SessionState.SUBSCRIBING)
        name = self._config.channel_name

        self._queue.on_message(self._dispatch_message)
        self._queue.on_presence(self._dispatch_presence)
        self._queue.start()

        try:
            self._channel = self._client.get_channel(name)
            self._channel.on_state(self._on_channel_state)

            self._log.info("Subscribing to channel messages")
            await self._until_stopped(self._channel.subscribe(self._queue.put_message))
            if self.stopping:
                return

            self._log.info("Subscribing to presence events")
            supported = await self._until_stopped(
                self._channel.subscribe_presence(self._queue.put_presence)
            )
            if self.stopping:
                return
            if not supported:
                self._log.warning("Presence is not supported by this client, skipping")
        except Exception as e:
            self._fail(ChannelFailedError(name, str(e)))

    async def _listen(self) -> None:
        self._transition(SessionState.LISTENING)
        suffix = (
            f" with event '{self._config.event_filter}'"
            if self._config.filtering
            else ""
        )
        self._log.info(
            f"Listening for messages on channel '{self._config.channel_name}'{suffix}..."
        )
        self._log.info("Press Ctrl+C to exit")
        await self._stop.wait()

    async def _shutdown(self) -> None:
        self._notify_stopping()

        if not self._state.terminal:
            self._transition(SessionState.SHUTTING_DOWN)

        await self._queue.stop()

        if self._opened:
            try:
                await asyncio.wait_for(self._client.close(), timeout=self._close_timeout)
                self._log.info("Connection closed")
            except asyncio.TimeoutError:
                self._log.warning(
                    f"Connection close timed out after {self._close_timeout}s"
                )
            except Exception as e:
                self._log.warning(f"Error closing connection: {e}")

        if self._state is SessionState.SHUTTING_DOWN:
            self._transition(SessionState.STOPPED)

    async def _until_stopped(self, awaitable: Awaitable[T]) -> T | None:
        """Await a client call unless a stop request comes first.

        Returns the call's result, or None if the stop won, in which case
        the call is cancelled. Exceptions raised by the call propagate.
        """
        call = asyncio.ensure_future(awaitable)
        stop = asyncio.create_task(self._stop.wait())
        try:
            await asyncio.wait({call, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
            if not call.done():
                call.cancel()
                # A call that ignores cancellation must not hold up shutdown
                await asyncio.wait({call}, timeout=self._close_timeout)
            await asyncio.gather(stop, return_exceptions=True)

        if not call.done() or call.cancelled():
            call.add_done_callback(_discard_result)
            return None
        return call.result()

    def _signal_stop(self) -> None:
        self._stop.set()
        self._notify_stopping()

    def _notify_stopping(self) -> None:
        """Run the ``on_stopping`` hook once, as soon as shutdown begins."""
        if self._stopping_notified:
            return
        self._stopping_notified = True
        if self._on_stopping is not None:
            self._on_stopping()

    def _transition(self, new: SessionState) -> None:
        check_transition(self._state, new)
        self._log.info(f"Session {self._state.value} -> {new.value}")
        self._state = new

    def _fail(self, error: AblyCliError) -> None:
        """Record a fatal error and wake the session so it exits."""
        if self._state.terminal:
            self._log.debug(f"Ignoring failure after session ended: {error}")
            return
        self._log.error(str(error))
        self._fatal = error
        self._transition(SessionState.FAILED)
        self._signal_stop()

    # -- state callbacks ----------------------------------------------------

    def _on_connection_state(self, change: StateChange) -> None:
        self._log.info(f"Connection state changed to: {change.current.value}")
        if change.current is ConnectionState.CONNECTED:
            self._connected.set()
        elif change.failed:
            self._fail(ConnectionFailedError(change.reason))

    def _on_channel_state(self, change: StateChange) -> None:
        self._log.info(f"Channel state changed to: {change.current.value}")
        if change.failed:
            self._fail(ChannelFailedError(self._config.channel_name, change.reason))

    # -- per-event handling ---------------------------------------------------

    def handle_message(self, event: ChannelMessage) -> str | None:
        """Text to print for a channel message, or None if it is filtered out."""
        self._log.debug(f"Received message with name: {event.name or UNNAMED}")

        if not event.matches(self._config.event_filter):
            self._log.debug(
                f"Skipping message with name {event.name} "
                f"(filter: {self._config.event_filter})"
            )
            return None

        override = self._overrides.get(event.name)
        if override is not None:
            self._log.debug(f"Received {event.name} message")
            return override(event, self._renderer)

        payload = decode(event.data, event.encoding)
        if isinstance(payload, DecodeError):
            self._log.warning(f"{payload} (event: {event.name or UNNAMED})")
        return self._renderer.render_message(event, payload, self._config.debug)

    def handle_presence(self, event: PresenceEvent) -> str | None:
        """Text to print for a presence event. Only printed in debug mode."""
        self._log.debug(
            f"Received presence message: action={event.action}, clientId={event.client_id}"
        )
        if not self._config.debug:
            return None
        return self._renderer.render_presence(event)

    async def _dispatch_message(self, event: ChannelMessage) -> None:
        try:
            text = self.handle_message(event)
        except Exception as e:
            self._report_render_error(e, event)
            return
        if text is not None:
            self._emit(text)
            self.rendered += 1

    async def _dispatch_presence(self, event: PresenceEvent) -> None:
        try:
            text = self.handle_presence(event)
        except Exception as e:
            self._report_render_error(e, event)
            return
        if text is not None:
            self._emit(text)

    def _report_render_error(self, exc: Exception, event: Any) -> None:
        error = RenderError(f"Error displaying message: {exc}")
        self._log.opt(exception=exc).error(str(error))
        if self._config.debug:
            try:
                shown = repr(event)
            except Exception as e:
                shown = f"<unprintable event: {e}>"
            details = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            self._emit(f"ERROR PROCESSING MESSAGE: {exc}\nMessage: {shown}\n{details}")

    def _emit(self, text: str) -> None:
        self._console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)

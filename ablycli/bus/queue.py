"""Bounded queues between the messaging client callbacks and the session."""

from __future__ import annotations

import asyncio
from typing import Callable, Awaitable

from loguru import logger

from .events import ChannelMessage, PresenceEvent


MessageHandler = Callable[[ChannelMessage], Awaitable[None]]
PresenceHandler = Callable[[PresenceEvent], Awaitable[None]]


class EventQueue:
    """Two-queue bus decoupling SDK delivery callbacks from event handling.

    SDK callbacks only enqueue. Each stream is drained by its own
    dispatcher, so ordering holds within a stream but not across them.
    """

    MAX_QUEUE_SIZE = 1000

    def __init__(self, maxsize: int = MAX_QUEUE_SIZE) -> None:
        self._messages: asyncio.Queue[ChannelMessage] = asyncio.Queue(maxsize=maxsize)
        self._presence: asyncio.Queue[PresenceEvent] = asyncio.Queue(maxsize=maxsize)
        self._message_handlers: list[MessageHandler] = []
        self._presence_handlers: list[PresenceHandler] = []
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    def on_message(self, handler: MessageHandler) -> None:
        """Register a handler for channel messages."""
        self._message_handlers.append(handler)

    def on_presence(self, handler: PresenceHandler) -> None:
        """Register a handler for presence events."""
        self._presence_handlers.append(handler)

    def put_message(self, message: ChannelMessage) -> bool:
        """Enqueue a channel message. Returns False if the queue is full."""
        try:
            self._messages.put_nowait(message)
        except asyncio.QueueFull:
            logger.error(f"Message queue full! Dropping message {message.name or 'unnamed'}")
            return False
        return True

    def put_presence(self, event: PresenceEvent) -> bool:
        """Enqueue a presence event. Returns False if the queue is full."""
        try:
            self._presence.put_nowait(event)
        except asyncio.QueueFull:
            logger.error(f"Presence queue full! Dropping {event.action} from {event.client_id}")
            return False
        return True

    def start(self) -> asyncio.Task:
        """Start both dispatchers as a background task."""
        self._running = True
        self._task = asyncio.create_task(
            self._run(), name="ablycli-dispatch"
        )
        return self._task

    async def stop(self) -> None:
        """Stop dispatching. Events still queued are discarded."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await self._messages.join()
        await self._presence.join()

    async def _run(self) -> None:
        await asyncio.gather(
            self._dispatch(self._messages, self._message_handlers, "Message"),
            self._dispatch(self._presence, self._presence_handlers, "Presence"),
        )

    async def _dispatch(self, queue: asyncio.Queue, handlers: list, label: str) -> None:
        """Drain one queue, invoking every handler per event."""
        while self._running:
            event = await queue.get()
            try:
                for handler in handlers:
                    try:
                        await handler(event)
                    except Exception as e:
                        logger.error(f"{label} handler error: {e}")
            finally:
                queue.task_done()

"""Per-event-name renderer overrides.

Messages whose name has a registered override bypass the standard
decode-then-render path entirely.
"""

from __future__ import annotations

from typing import Callable

from loguru import logger

from ..bus.events import ChannelMessage
from ..codec.payload import BASE64, decode, payload_text
from ..errors import DecodeError
from .renderer import MessageRenderer, format_extras, format_timestamp


RenderOverride = Callable[[ChannelMessage, MessageRenderer], str]

GQL_RESULT = "gql-result"


class OverrideRegistry:
    """Registry mapping event names to custom renderers."""

    def __init__(self) -> None:
        self._overrides: dict[str, RenderOverride] = {}

    def register(self, event_name: str, override: RenderOverride) -> None:
        """Register an override for an event name."""
        self._overrides[event_name] = override
        logger.debug(f"Registered renderer override: {event_name}")

    def unregister(self, event_name: str) -> None:
        if event_name in self._overrides:
            del self._overrides[event_name]
            logger.debug(f"Unregistered renderer override: {event_name}")

    def get(self, event_name: str | None) -> RenderOverride | None:
        if event_name is None:
            return None
        return self._overrides.get(event_name)

    def __len__(self) -> int:
        return len(self._overrides)

    def __contains__(self, event_name: str) -> bool:
        return event_name in self._overrides


def render_gql_result(event: ChannelMessage, renderer: MessageRenderer) -> str:
    """Verbose rendering for GraphQL subscription results."""
    lines = [
        renderer.separator,
        "GQL RESULT MESSAGE:",
        f"Timestamp: {format_timestamp(event.timestamp)}",
    ]

    if isinstance(event.data, str) and event.encoding == BASE64:
        payload = decode(event.data, event.encoding)
        if isinstance(payload, DecodeError):
            lines.append(f"Failed to decode base64 data: {payload.detail}")
            lines.append(f"Raw data: {event.data}")
        else:
            lines.append(f"Decoded data: {payload.text}")
    else:
        lines.append(f"Data: {payload_text(event.data)}")

    if event.extras is not None:
        lines.append(f"Extras: {format_extras(event.extras)}")

    lines.append(renderer.separator)
    return "\n".join(lines)


def default_overrides() -> OverrideRegistry:
    """Registry holding the built-in overrides."""
    registry = OverrideRegistry()
    registry.register(GQL_RESULT, render_gql_result)
    return registry

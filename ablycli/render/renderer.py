"""Plain-text rendering of channel messages and presence events."""

from __future__ import annotations

import dataclasses
import json
from datetime import datetime, timedelta
from typing import Any

from ..bus.events import ChannelMessage, PresenceEvent
from ..codec.payload import DecodedPayload, payload_text
from ..errors import DecodeError


SEPARATOR_WIDTH = 80
UNNAMED = "unnamed"
NOT_AVAILABLE = "N/A"


def format_timestamp(epoch_ms: int | None) -> str:
    """Format epoch milliseconds as a local date-time with millisecond precision."""
    if epoch_ms is None:
        return NOT_AVAILABLE
    ms = int(epoch_ms)
    local = datetime.fromtimestamp(ms // 1000) + timedelta(milliseconds=ms % 1000)
    return local.isoformat(timespec="milliseconds")


def format_extras(extras: Any) -> str:
    if isinstance(extras, (dict, list)):
        return json.dumps(extras, ensure_ascii=False, default=str)
    return str(extras)


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception as e:
        return f"Error accessing field: {e}"


def _attributes(obj: Any) -> list[tuple[str, Any]]:
    """Every attribute of an event object, in definition order."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return [
            (f.name, getattr(obj, f.name))
            for f in dataclasses.fields(obj)
            if f.name != "raw"
        ]
    if hasattr(obj, "__dict__"):
        return list(vars(obj).items())
    if hasattr(obj, "__slots__"):
        return [
            (name, getattr(obj, name, None))
            for name in obj.__slots__
        ]
    return []


class MessageRenderer:
    """Formats events into the separator-framed text blocks printed to stdout."""

    def __init__(self, width: int = SEPARATOR_WIDTH) -> None:
        self.separator = "─" * width

    def render_message(
        self,
        event: ChannelMessage,
        payload: DecodedPayload | DecodeError,
        debug: bool = False,
    ) -> str:
        """Render a channel message with its decoded payload."""
        if isinstance(payload, DecodeError):
            data = str(payload)
        else:
            data = payload.text

        lines = [
            self.separator,
            f"Timestamp: {format_timestamp(event.timestamp)}",
            f"Event: {event.name or UNNAMED}",
            f"Client ID: {event.client_id or NOT_AVAILABLE}",
            f"Connection ID: {event.connection_id or NOT_AVAILABLE}",
            f"Data: {data}",
        ]
        if event.extras:
            lines.append(f"Extras: {format_extras(event.extras)}")
        if debug:
            lines.extend(self.debug_lines(event))
        lines.append(self.separator)
        return "\n".join(lines)

    def render_presence(self, event: PresenceEvent) -> str:
        """Render a presence update in full."""
        return "\n".join(
            [
                self.separator,
                "PRESENCE MESSAGE:",
                f"Action: {event.action or NOT_AVAILABLE}",
                f"Client ID: {event.client_id or NOT_AVAILABLE}",
                f"Connection ID: {event.connection_id or NOT_AVAILABLE}",
                f"Data: {payload_text(event.data)}",
                self.separator,
            ]
        )

    def debug_lines(self, event: ChannelMessage) -> list[str]:
        """Diagnostic dump of the raw event.

        Best-effort: an attribute that cannot be stringified is reported
        inline instead of aborting the dump.
        """
        source = event.raw if event.raw is not None else event
        lines = [
            "",
            "DEBUG INFO:",
            f"Raw message: {_safe_str(source)}",
            f"Message class: {type(source).__module__}.{type(source).__qualname__}",
            f"Data class: {type(event.data).__name__ if event.data is not None else 'null'}",
            f"Encoding: {event.encoding or 'none'}",
            "",
            "All fields:",
        ]
        try:
            attributes = _attributes(source)
        except Exception as e:
            return lines + [f"  Error listing fields: {e}"]
        for name, value in attributes:
            lines.append(f"  {name}: {_safe_str(value)}")
        return lines

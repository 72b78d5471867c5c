"""Payload decoding by declared encoding tag."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from ..errors import DecodeError


BASE64 = "base64"


@dataclass(frozen=True)
class DecodedPayload:
    """The result of a successful decode."""

    value: Any
    encoding: str | None = None

    @property
    def text(self) -> str:
        """The payload's textual form, or "null" when there is none."""
        return payload_text(self.value)


def payload_text(value: Any) -> str:
    """Render a payload value as text."""
    if value is None:
        return "null"
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def decode(data: Any, encoding: str | None) -> DecodedPayload | DecodeError:
    """Decode ``data`` according to ``encoding``.

    Absent or unknown encodings pass the data through unchanged. Malformed
    base64 yields a DecodeError value instead of raising, so the caller can
    render it inline.
    """
    if not encoding:
        return DecodedPayload(data)

    if encoding == BASE64 and isinstance(data, str):
        try:
            return DecodedPayload(base64.b64decode(data, validate=True), encoding)
        except (binascii.Error, ValueError) as e:
            return DecodeError(BASE64, str(e))

    return DecodedPayload(data, encoding)

"""
Message Transformer.

Turns a raw inbound message into the envelope broadcast to clients.
Pure: no I/O, no shared state. Only the clock is read.
"""

from __future__ import annotations

import json
import math
from typing import Any

from bridge_shared.utils.exceptions import ParseError
from telemetry_bridge.components.core.constants import DEVICE_ID_SEGMENT, TOPIC_DELIMITER
from telemetry_bridge.components.events.types import OutboundEnvelope, now_ms


def extract_device_id(topic: str) -> str:
    """
    Device identifier from a topic such as "classroom/device42/telemetry".

    Returns "" when the topic has too few segments.
    """
    segments = topic.split(TOPIC_DELIMITER)
    if len(segments) > DEVICE_ID_SEGMENT:
        return segments[DEVICE_ID_SEGMENT]
    return ""


def _reject_constant(name: str) -> Any:
    # json accepts NaN/Infinity by default; strict JSON does not
    raise ValueError(f"non-standard JSON constant {name}")


def _parse_finite_float(text: str) -> float:
    # 1e400 is valid JSON but overflows to inf, which has no JSON form
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number {text} out of range")
    return value


def decode_payload(raw: bytes | bytearray | memoryview | str, max_size: int = 0) -> Any:
    """
    Decode a raw payload as UTF-8 JSON.

    Args:
        raw: Message body.
        max_size: Maximum size in bytes (0 disables the check).

    Returns:
        The decoded JSON value (object, array, string, number, bool or None).

    Raises:
        ParseError: On oversize, invalid UTF-8 or invalid JSON.
    """
    data = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
    size = len(data)
    if max_size and size > max_size:
        raise ParseError(f"payload exceeds {max_size} bytes", size=size)

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"payload is not valid UTF-8: {e.reason} at byte {e.start}", size=size) from e

    try:
        return json.loads(text, parse_float=_parse_finite_float, parse_constant=_reject_constant)
    except ValueError as e:
        # json.JSONDecodeError is a ValueError subclass
        raise ParseError(f"payload is not valid JSON: {e}", size=size) from e


def transform(
    topic: str,
    raw: bytes | bytearray | memoryview | str,
    *,
    timestamp: int | None = None,
    max_size: int = 0,
) -> OutboundEnvelope:
    """
    Build a telemetry envelope from one inbound message.

    Args:
        topic: Topic the message arrived on.
        raw: Raw payload bytes.
        timestamp: Epoch milliseconds to stamp; defaults to now.
        max_size: Maximum payload size in bytes (0 disables the check).

    Returns:
        OutboundEnvelope of kind TELEMETRY.

    Raises:
        ParseError: If the payload cannot be decoded. The caller drops the
            message; nothing else is affected.
    """
    try:
        payload = decode_payload(raw, max_size=max_size)
    except ParseError as e:
        e.topic = topic
        e.context["topic"] = topic
        raise

    return OutboundEnvelope.telemetry(
        device_id=extract_device_id(topic),
        topic=topic,
        payload=payload,
        timestamp=now_ms() if timestamp is None else timestamp,
    )


def build_welcome(message: str, *, timestamp: int | None = None) -> OutboundEnvelope:
    """Welcome envelope sent to a client right after it connects."""
    return OutboundEnvelope.connected(message, timestamp=timestamp)

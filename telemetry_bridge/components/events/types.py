"""
Event Value Objects for the Telemetry Bridge.

InboundEvent is what a subscriber adapter hands to the relay.
OutboundEnvelope is what every WebSocket client receives.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Self

__all__ = [
    "EnvelopeKind",
    "InboundEvent",
    "OutboundEnvelope",
    "now_ms",
]


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class EnvelopeKind(str, Enum):
    """Values of the wire "type" field."""

    TELEMETRY = "telemetry"
    CONNECTED = "connected"


@dataclass(frozen=True, slots=True)
class InboundEvent:
    """
    One message received from the inbound transport.

    Attributes:
        topic: Topic (or channel) the message was published on.
        payload: Raw message bytes, undecoded.
        received_at: Monotonic receive time, used for queue latency.
    """

    topic: str
    payload: bytes
    received_at: float = field(default_factory=time.monotonic)


@dataclass(frozen=True, slots=True)
class OutboundEnvelope:
    """
    Immutable Value Object sent to WebSocket clients.

    Telemetry envelopes carry device_id, topic and payload. Connected
    (welcome) envelopes carry message. Optional fields that do not apply
    to the kind are left out of the wire form.
    """

    kind: EnvelopeKind
    timestamp: int
    device_id: str | None = None
    topic: str | None = None
    payload: Any = None
    message: str | None = None

    @classmethod
    def telemetry(cls, device_id: str, topic: str, payload: Any, timestamp: int | None = None) -> Self:
        return cls(
            kind=EnvelopeKind.TELEMETRY,
            timestamp=now_ms() if timestamp is None else timestamp,
            device_id=device_id,
            topic=topic,
            payload=payload,
        )

    @classmethod
    def connected(cls, message: str, timestamp: int | None = None) -> Self:
        return cls(
            kind=EnvelopeKind.CONNECTED,
            timestamp=now_ms() if timestamp is None else timestamp,
            message=message,
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Wire representation.

        Key order is stable: type, deviceId, topic, payload, message, timestamp.
        A telemetry payload of JSON null is kept as null.
        """
        data: dict[str, Any] = {"type": self.kind.value}
        if self.kind is EnvelopeKind.TELEMETRY:
            data["deviceId"] = self.device_id if self.device_id is not None else ""
            data["topic"] = self.topic
            data["payload"] = self.payload
        if self.message is not None:
            data["message"] = self.message
        data["timestamp"] = self.timestamp
        return data

    def to_json(self) -> str:
        """Compact JSON text, the form written to the socket."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False, allow_nan=False)

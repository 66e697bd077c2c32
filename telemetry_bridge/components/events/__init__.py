"""
Event value objects.
"""

from telemetry_bridge.components.events.types import (
    EnvelopeKind,
    InboundEvent,
    OutboundEnvelope,
    now_ms,
)

__all__ = [
    "EnvelopeKind",
    "InboundEvent",
    "OutboundEnvelope",
    "now_ms",
]

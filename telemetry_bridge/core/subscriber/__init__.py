"""
Inbound message processing: transformation, queueing, relay step.
"""

from telemetry_bridge.core.subscriber.transformer import (
    build_welcome,
    decode_payload,
    extract_device_id,
    transform,
)
from telemetry_bridge.core.subscriber.queue import InboundEventQueue
from telemetry_bridge.core.subscriber.processor import process_inbound_event

__all__ = [
    "build_welcome",
    "decode_payload",
    "extract_device_id",
    "transform",
    "InboundEventQueue",
    "process_inbound_event",
]

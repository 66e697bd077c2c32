"""
Event Processing.

Turns one InboundEvent into a broadcast. Every failure is contained to
the event being processed.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from bridge_shared.config.logging import get_logger
from bridge_shared.utils.exceptions import ParseError
from telemetry_bridge.components.core.constants import BridgeConstants
from telemetry_bridge.core.subscriber.transformer import transform

if TYPE_CHECKING:
    from telemetry_bridge.components.events.types import InboundEvent
    from telemetry_bridge.components.metrics.collector import MetricsCollector
    from telemetry_bridge.connection_manager import ConnectionManager

logger = get_logger(__name__)


def _payload_preview(raw: bytes) -> str:
    return raw[: BridgeConstants.MAX_LOGGED_PAYLOAD].decode("utf-8", errors="replace")


async def process_inbound_event(
    event: "InboundEvent",
    manager: "ConnectionManager",
    metrics: "MetricsCollector",
    max_payload_size: int = 0,
) -> int:
    """
    Transform and broadcast one inbound event.

    Malformed payloads are logged and dropped. Unexpected failures are
    logged with a traceback. Neither propagates.

    Args:
        event: The received message.
        manager: Delivers the envelope to connected clients.
        metrics: Counter sink.
        max_payload_size: Payload size limit in bytes (0 = unlimited).

    Returns:
        Number of clients that received the message.
    """
    metrics.increment_messages_received()
    logger.info("Message received", topic=event.topic, size=len(event.payload))

    try:
        envelope = transform(event.topic, event.payload, max_size=max_payload_size)
    except ParseError as e:
        metrics.increment_messages_invalid()
        logger.warning(
            "Failed to parse message, dropping",
            payload_preview=_payload_preview(event.payload),
            **e.log_context(),
        )
        return 0

    try:
        sent = await manager.broadcast(envelope)
    except Exception as e:
        metrics.increment_relay_errors()
        logger.error(
            "Error broadcasting message",
            topic=event.topic,
            error=str(e),
            exc_info=True,
        )
        return 0

    metrics.increment_messages_relayed()
    latency_ms = (time.monotonic() - event.received_at) * 1000
    logger.debug("Message relayed", topic=event.topic, sent=sent, latency_ms=round(latency_ms, 2))
    return sent

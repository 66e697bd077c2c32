"""
Relay loop: inbound adapter → transformer → broadcaster.

Events are processed strictly one after another in arrival order; each
broadcast completes (or times out per connection) before the next
event is taken.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from bridge_shared.config.logging import get_logger
from telemetry_bridge.core.subscriber.processor import process_inbound_event

if TYPE_CHECKING:
    from telemetry_bridge.components.adapters.base import SubscriberAdapter
    from telemetry_bridge.connection_manager import ConnectionManager

logger = get_logger(__name__)


async def run_relay(
    adapter: "SubscriberAdapter",
    manager: "ConnectionManager",
    max_payload_size: int = 0,
) -> None:
    """
    Consume adapter events until cancelled.

    The adapter must already be connected. Per-event failures are handled
    inside process_inbound_event; the loop itself only ends on cancellation.
    """
    logger.info("Relay started", transport=adapter.name, topic_pattern=adapter.topic_pattern)
    relayed = 0
    try:
        async for event in adapter.listen():
            await process_inbound_event(
                event,
                manager,
                manager.metrics,
                max_payload_size=max_payload_size,
            )
            relayed += 1
    except asyncio.CancelledError:
        logger.info("Relay cancelled", processed=relayed, queued=len(adapter.queue))
        raise

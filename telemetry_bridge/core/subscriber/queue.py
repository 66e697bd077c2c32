"""
Inbound Event Queue.

Bounded FIFO between a subscriber adapter and the relay task. When full,
the oldest event is rotated out (deque maxlen) and counted.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING

from bridge_shared.config.logging import get_logger
from telemetry_bridge.components.core.constants import BridgeConstants

if TYPE_CHECKING:
    from telemetry_bridge.components.events.types import InboundEvent
    from telemetry_bridge.components.metrics.collector import MetricsCollector

logger = get_logger(__name__)


class InboundEventQueue:
    """
    Single-consumer queue of InboundEvent.

    put_nowait() and get() must run on the event loop thread. Transport
    threads use put_threadsafe().
    """

    def __init__(
        self,
        maxsize: int = BridgeConstants.EVENT_QUEUE_SIZE,
        metrics: "MetricsCollector | None" = None,
        drop_log_interval: int = BridgeConstants.DROP_LOG_INTERVAL,
    ) -> None:
        self._events: deque["InboundEvent"] = deque(maxlen=maxsize)
        self._available = asyncio.Event()
        self._metrics = metrics
        self._drop_log_interval = max(1, drop_log_interval)
        self._dropped = 0

    @property
    def maxsize(self) -> int:
        return self._events.maxlen or 0

    @property
    def dropped(self) -> int:
        return self._dropped

    def __len__(self) -> int:
        return len(self._events)

    def put_nowait(self, event: "InboundEvent") -> None:
        if len(self._events) >= self.maxsize:
            self._dropped += 1
            if self._metrics is not None:
                self._metrics.increment_messages_dropped()
            if self._dropped == 1 or self._dropped % self._drop_log_interval == 0:
                logger.warning(
                    "Inbound queue full, dropping oldest event",
                    queue_size=len(self._events),
                    total_dropped=self._dropped,
                )
        # maxlen deque evicts the oldest entry on append
        self._events.append(event)
        self._available.set()

    def put_threadsafe(self, loop: asyncio.AbstractEventLoop, event: "InboundEvent") -> None:
        """Hand an event over from a foreign thread."""
        loop.call_soon_threadsafe(self.put_nowait, event)

    async def get(self) -> "InboundEvent":
        """Wait for and return the oldest queued event."""
        while not self._events:
            self._available.clear()
            await self._available.wait()
        return self._events.popleft()

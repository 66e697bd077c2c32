"""
Subscriber adapter contract shared by the MQTT and Redis implementations.

An adapter owns its transport connection and its retry policy. It hands
received messages to the relay as InboundEvent objects through an
InboundEventQueue, so transport callbacks never run relay code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncIterator

from bridge_shared.config.logging import get_logger
from bridge_shared.utils.exceptions import SubscriptionError
from telemetry_bridge.core.subscriber.queue import InboundEventQueue

if TYPE_CHECKING:
    from telemetry_bridge.components.events.types import InboundEvent
    from telemetry_bridge.components.metrics.collector import MetricsCollector

logger = get_logger(__name__)


class AdapterStatus(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SUBSCRIBED = "subscribed"
    ERROR = "error"
    DISCONNECTED = "disconnected"


class SubscriberAdapter(ABC):
    """Abstract inbound transport."""

    name: str = "subscriber"

    def __init__(
        self,
        topic_pattern: str,
        queue: InboundEventQueue | None = None,
        metrics: "MetricsCollector | None" = None,
    ) -> None:
        self.topic_pattern = topic_pattern
        self.queue = queue or InboundEventQueue(metrics=metrics)
        self.metrics = metrics
        self._status = AdapterStatus.IDLE
        self._last_error: str | None = None

    @property
    def status(self) -> AdapterStatus:
        return self._status

    @property
    def last_error(self) -> str | None:
        return self._last_error

    def _set_status(self, status: AdapterStatus, error: str | None = None) -> None:
        self._status = status
        if error is not None:
            self._last_error = error

    def _report_subscription_error(self, reason: str) -> None:
        error = SubscriptionError(self.topic_pattern, reason)
        self._set_status(AdapterStatus.ERROR, error.detail)
        if self.metrics is not None:
            self.metrics.increment_subscription_failures()
        logger.error("Subscription error", transport=self.name, **error.log_context())

    @abstractmethod
    async def connect(self) -> None:
        """Start connecting and subscribing. Must not block until the broker answers."""

    async def listen(self) -> AsyncIterator["InboundEvent"]:
        """Yield received events in arrival order, forever."""
        while True:
            yield await self.queue.get()

    @abstractmethod
    async def disconnect(self) -> None:
        """Stop the transport and release its resources."""

    def describe(self) -> dict[str, Any]:
        """Status summary for the health endpoint."""
        return {
            "transport": self.name,
            "topic_pattern": self.topic_pattern,
            "status": self._status.value,
            "last_error": self._last_error,
            "queued_events": len(self.queue),
            "dropped_events": self.queue.dropped,
        }

"""
Metrics Collector for the Telemetry Bridge.

Centralizes counters for observability. Increments may come from the
event loop or from the MQTT network thread, so every operation takes a
threading.Lock.
"""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class MessageMetrics:
    """Metrics for inbound messages."""

    received: int = 0
    relayed: int = 0
    invalid: int = 0
    dropped: int = 0  # Rotated out of a full inbound queue
    errors: int = 0  # Unexpected relay failures


@dataclass
class BroadcastMetrics:
    """Metrics for broadcast operations."""

    total: int = 0
    failed: int = 0  # Broadcasts with at least one failed recipient
    deliveries: int = 0
    recipients_failed: int = 0


@dataclass
class ConnectionMetrics:
    """Metrics for client connection management."""

    accepted: int = 0
    closed: int = 0
    pruned: int = 0  # Removed after a failed or timed-out send
    rejected_limit: int = 0
    rejected_error: int = 0


@dataclass
class SubscriberMetrics:
    """Metrics for the inbound transport."""

    connects: int = 0
    disconnects: int = 0
    subscription_failures: int = 0


class MetricsCollector:
    """
    Thread-safe metrics collector.

    Usage:
        metrics = MetricsCollector()
        metrics.increment_messages_received()
        stats = metrics.get_snapshot()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._messages = MessageMetrics()
        self._broadcast = BroadcastMetrics()
        self._connection = ConnectionMetrics()
        self._subscriber = SubscriberMetrics()

    # ==========================================================================
    # Message Metrics
    # ==========================================================================

    def increment_messages_received(self) -> None:
        with self._lock:
            self._messages.received += 1

    def increment_messages_relayed(self) -> None:
        with self._lock:
            self._messages.relayed += 1

    def increment_messages_invalid(self) -> None:
        with self._lock:
            self._messages.invalid += 1

    def increment_messages_dropped(self) -> None:
        with self._lock:
            self._messages.dropped += 1

    def increment_relay_errors(self) -> None:
        with self._lock:
            self._messages.errors += 1

    # ==========================================================================
    # Broadcast Metrics
    # ==========================================================================

    def record_broadcast(self, sent: int, failed: int) -> None:
        """Record one completed broadcast."""
        with self._lock:
            self._broadcast.total += 1
            self._broadcast.deliveries += sent
            if failed > 0:
                self._broadcast.failed += 1
                self._broadcast.recipients_failed += failed

    # ==========================================================================
    # Connection Metrics
    # ==========================================================================

    def increment_connections_accepted(self) -> None:
        with self._lock:
            self._connection.accepted += 1

    def increment_connections_closed(self) -> None:
        with self._lock:
            self._connection.closed += 1

    def increment_connections_pruned(self, count: int = 1) -> None:
        with self._lock:
            self._connection.pruned += count

    def increment_connection_rejected_limit(self) -> None:
        with self._lock:
            self._connection.rejected_limit += 1

    def increment_connection_rejected_error(self) -> None:
        with self._lock:
            self._connection.rejected_error += 1

    # ==========================================================================
    # Subscriber Metrics
    # ==========================================================================

    def increment_subscriber_connects(self) -> None:
        with self._lock:
            self._subscriber.connects += 1

    def increment_subscriber_disconnects(self) -> None:
        with self._lock:
            self._subscriber.disconnects += 1

    def increment_subscription_failures(self) -> None:
        with self._lock:
            self._subscriber.subscription_failures += 1

    # ==========================================================================
    # Snapshot
    # ==========================================================================

    def get_snapshot(self) -> dict[str, Any]:
        """Point-in-time copy of all counters, grouped by area."""
        with self._lock:
            return {
                "messages": asdict(self._messages),
                "broadcast": asdict(self._broadcast),
                "connections": asdict(self._connection),
                "subscriber": asdict(self._subscriber),
            }

    def reset(self) -> None:
        """Reset all counters (tests)."""
        with self._lock:
            self._messages = MessageMetrics()
            self._broadcast = BroadcastMetrics()
            self._connection = ConnectionMetrics()
            self._subscriber = SubscriberMetrics()

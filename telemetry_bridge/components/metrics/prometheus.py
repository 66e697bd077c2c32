"""
Prometheus Metrics Export for the Telemetry Bridge.

Formats collector counters and registry gauges in the Prometheus text
exposition format. No client library needed.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from telemetry_bridge.components.adapters.base import SubscriberAdapter
    from telemetry_bridge.connection_manager import ConnectionManager


class MetricType(str, Enum):
    """Prometheus metric types."""

    COUNTER = "counter"
    GAUGE = "gauge"


@dataclass(frozen=True)
class MetricDefinition:
    """
    One exported series.

    `path` locates the value in the stats dictionary, e.g.
    ("metrics", "messages", "received").
    """

    name: str
    help_text: str
    metric_type: MetricType
    path: tuple[str, ...]


METRIC_DEFINITIONS: tuple[MetricDefinition, ...] = (
    # Connection gauges
    MetricDefinition(
        "connections_active",
        "Current number of connected WebSocket clients",
        MetricType.GAUGE,
        ("total_connections",),
    ),
    MetricDefinition(
        "connections_peak",
        "Highest number of simultaneous clients since start",
        MetricType.GAUGE,
        ("peak_connections",),
    ),
    MetricDefinition(
        "connections_max",
        "Configured client limit (0 = unlimited)",
        MetricType.GAUGE,
        ("max_connections",),
    ),
    MetricDefinition(
        "connections_utilization_percent",
        "Connection utilization percentage",
        MetricType.GAUGE,
        ("utilization_percent",),
    ),
    # Connection counters
    MetricDefinition(
        "connections_accepted_total",
        "Client connections accepted",
        MetricType.COUNTER,
        ("metrics", "connections", "accepted"),
    ),
    MetricDefinition(
        "connections_closed_total",
        "Client connections closed",
        MetricType.COUNTER,
        ("metrics", "connections", "closed"),
    ),
    MetricDefinition(
        "connections_pruned_total",
        "Clients removed after a failed or timed-out send",
        MetricType.COUNTER,
        ("metrics", "connections", "pruned"),
    ),
    # Message counters
    MetricDefinition(
        "messages_received_total",
        "Messages received from the broker",
        MetricType.COUNTER,
        ("metrics", "messages", "received"),
    ),
    MetricDefinition(
        "messages_relayed_total",
        "Messages transformed and broadcast",
        MetricType.COUNTER,
        ("metrics", "messages", "relayed"),
    ),
    MetricDefinition(
        "messages_invalid_total",
        "Messages dropped because the payload was not valid JSON",
        MetricType.COUNTER,
        ("metrics", "messages", "invalid"),
    ),
    MetricDefinition(
        "messages_dropped_total",
        "Messages dropped due to inbound queue overflow",
        MetricType.COUNTER,
        ("metrics", "messages", "dropped"),
    ),
    MetricDefinition(
        "relay_errors_total",
        "Unexpected errors while relaying a message",
        MetricType.COUNTER,
        ("metrics", "messages", "errors"),
    ),
    # Broadcast counters
    MetricDefinition(
        "broadcasts_total",
        "Broadcast operations",
        MetricType.COUNTER,
        ("metrics", "broadcast", "total"),
    ),
    MetricDefinition(
        "broadcasts_failed_total",
        "Broadcasts with at least one failed recipient",
        MetricType.COUNTER,
        ("metrics", "broadcast", "failed"),
    ),
    MetricDefinition(
        "deliveries_total",
        "Frames delivered to clients",
        MetricType.COUNTER,
        ("metrics", "broadcast", "deliveries"),
    ),
    MetricDefinition(
        "deliveries_failed_total",
        "Frames that could not be delivered",
        MetricType.COUNTER,
        ("metrics", "broadcast", "recipients_failed"),
    ),
    # Subscriber counters
    MetricDefinition(
        "subscriber_connects_total",
        "Successful broker connections",
        MetricType.COUNTER,
        ("metrics", "subscriber", "connects"),
    ),
    MetricDefinition(
        "subscriber_disconnects_total",
        "Broker disconnections",
        MetricType.COUNTER,
        ("metrics", "subscriber", "disconnects"),
    ),
    MetricDefinition(
        "subscription_failures_total",
        "Rejected or failed subscriptions",
        MetricType.COUNTER,
        ("metrics", "subscriber", "subscription_failures"),
    ),
)


def _lookup(stats: dict[str, Any], path: tuple[str, ...]) -> float | int:
    value: Any = stats
    for key in path:
        if not isinstance(value, dict):
            return 0
        value = value.get(key, 0)
    return value if isinstance(value, (int, float)) else 0


class PrometheusFormatter:
    """
    Formats metrics in Prometheus text exposition format.

    Reference: https://prometheus.io/docs/instrumenting/exposition_formats/

    Usage:
        formatter = PrometheusFormatter()
        output = formatter.format_all_metrics(manager.get_stats())
    """

    def __init__(self, prefix: str = "telemetry_bridge"):
        self._prefix = prefix

    def _full_name(self, name: str) -> str:
        return f"{self._prefix}_{name}" if self._prefix else name

    def format_metric(
        self,
        name: str,
        value: float | int,
        help_text: str,
        metric_type: MetricType,
        labels: dict[str, str] | None = None,
    ) -> str:
        """
        Format a single metric with its HELP and TYPE lines.

        Args:
            name: Metric name without prefix.
            value: Metric value.
            help_text: Help text description.
            metric_type: Prometheus metric type.
            labels: Optional label key-value pairs.
        """
        full_name = self._full_name(name)
        lines = [
            f"# HELP {full_name} {help_text}",
            f"# TYPE {full_name} {metric_type.value}",
        ]
        if labels:
            label_str = ",".join(f'{k}="{v}"' for k, v in labels.items())
            lines.append(f"{full_name}{{{label_str}}} {value}")
        else:
            lines.append(f"{full_name} {value}")
        return "\n".join(lines)

    def format_all_metrics(
        self,
        stats: dict[str, Any],
        subscriber: dict[str, Any] | None = None,
    ) -> str:
        """
        Format every defined metric from ConnectionManager.get_stats().

        Args:
            stats: Stats dictionary from ConnectionManager.get_stats().
            subscriber: Optional adapter description (SubscriberAdapter.describe()).

        Returns:
            Complete exposition text, newline terminated.
        """
        lines = [
            self.format_metric(d.name, _lookup(stats, d.path), d.help_text, d.metric_type)
            for d in METRIC_DEFINITIONS
        ]

        if subscriber is not None:
            lines.append(self.format_metric(
                "subscriber_up",
                1 if subscriber.get("status") == "subscribed" else 0,
                "Whether the inbound subscription is active",
                MetricType.GAUGE,
                labels={"transport": str(subscriber.get("transport", ""))},
            ))
            lines.append(self.format_metric(
                "inbound_queue_depth",
                subscriber.get("queued_events", 0),
                "Events waiting to be relayed",
                MetricType.GAUGE,
            ))

        lines.append(self.format_metric(
            "scrape_timestamp",
            int(time.time()),
            "Timestamp of metrics scrape",
            MetricType.GAUGE,
        ))
        return "\n".join(lines) + "\n"


_formatter: PrometheusFormatter | None = None


def get_prometheus_formatter() -> PrometheusFormatter:
    """Get singleton Prometheus formatter."""
    global _formatter
    if _formatter is None:
        _formatter = PrometheusFormatter()
    return _formatter


def generate_prometheus_metrics(
    manager: "ConnectionManager",
    adapter: "SubscriberAdapter | None" = None,
) -> str:
    """Render the manager's stats (and the adapter status, if given) as exposition text."""
    subscriber = adapter.describe() if adapter is not None else None
    return get_prometheus_formatter().format_all_metrics(manager.get_stats(), subscriber)

"""
Metrics and observability components.

Internal metrics collection and Prometheus exposition.
"""

from telemetry_bridge.components.metrics.collector import (
    BroadcastMetrics,
    ConnectionMetrics,
    MessageMetrics,
    MetricsCollector,
    SubscriberMetrics,
)
from telemetry_bridge.components.metrics.prometheus import (
    PrometheusFormatter,
    generate_prometheus_metrics,
)

__all__ = [
    # Metrics collector
    "MetricsCollector",
    "MessageMetrics",
    "BroadcastMetrics",
    "ConnectionMetrics",
    "SubscriberMetrics",
    # Prometheus
    "PrometheusFormatter",
    "generate_prometheus_metrics",
]

"""
Connection Statistics.

Aggregates registry and metrics data for the health and metrics
endpoints.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from telemetry_bridge.components.metrics.collector import MetricsCollector
    from telemetry_bridge.core.connection.registry import ConnectionRegistry


class ConnectionStats:
    """Read-only view over registry size and collected metrics."""

    def __init__(
        self,
        registry: "ConnectionRegistry",
        metrics: "MetricsCollector",
    ) -> None:
        self._registry = registry
        self._metrics = metrics

    def get_stats(self) -> dict[str, Any]:
        """
        Connection statistics.

        Returns:
            Dictionary with connection counts, utilization and counters.
        """
        return {
            **self._registry.get_stats(),
            "metrics": self._metrics.get_snapshot(),
        }

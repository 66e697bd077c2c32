"""
Connection management: handle, registry, broadcasting, lifecycle, stats.
"""

from telemetry_bridge.core.connection.connection import (
    Connection,
    ConnectionState,
    is_ws_connected,
)
from telemetry_bridge.core.connection.registry import ConnectionRegistry
from telemetry_bridge.core.connection.broadcaster import ConnectionBroadcaster
from telemetry_bridge.core.connection.lifecycle import ConnectionLifecycle
from telemetry_bridge.core.connection.stats import ConnectionStats

__all__ = [
    "Connection",
    "ConnectionState",
    "is_ws_connected",
    "ConnectionRegistry",
    "ConnectionBroadcaster",
    "ConnectionLifecycle",
    "ConnectionStats",
]

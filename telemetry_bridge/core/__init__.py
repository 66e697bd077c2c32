"""
Telemetry Bridge Core Module.

- connection/: Connection handle, registry, broadcasting, lifecycle, stats
- subscriber/: Inbound message transformation, queueing and relay step
"""

from telemetry_bridge.core.connection import (
    Connection,
    ConnectionState,
    ConnectionRegistry,
    ConnectionBroadcaster,
    ConnectionLifecycle,
    ConnectionStats,
    is_ws_connected,
)

from telemetry_bridge.core.subscriber import (
    InboundEventQueue,
    build_welcome,
    extract_device_id,
    process_inbound_event,
    transform,
)

__all__ = [
    # Connection module
    "Connection",
    "ConnectionState",
    "ConnectionRegistry",
    "ConnectionBroadcaster",
    "ConnectionLifecycle",
    "ConnectionStats",
    "is_ws_connected",
    # Subscriber module
    "InboundEventQueue",
    "build_welcome",
    "extract_device_id",
    "process_inbound_event",
    "transform",
]

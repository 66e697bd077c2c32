"""
Connection Registry.

The single shared mutable structure of the bridge: the set of open
client connections.

Every operation is a short synchronous critical section under a
threading.Lock with no await inside. Close/error callbacks that call
remove() while a broadcast is iterating therefore never wait on the
broadcast, and the broadcast iterates a copy (snapshot) that removals
cannot mutate.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

from bridge_shared.config.logging import get_logger

if TYPE_CHECKING:
    from telemetry_bridge.core.connection.connection import Connection

logger = get_logger(__name__)


class ConnectionRegistry:
    """
    Thread-safe set of active connections.

    Usage:
        registry = ConnectionRegistry(max_connections=1000)
        registry.add(conn)
        for conn in registry.snapshot():
            ...
        registry.remove(conn)
    """

    def __init__(self, max_connections: int = 0) -> None:
        """
        Args:
            max_connections: Capacity limit; 0 means unlimited.
        """
        self._lock = threading.Lock()
        self._connections: set["Connection"] = set()
        self._max_connections = max_connections
        self._peak = 0

    @property
    def max_connections(self) -> int:
        return self._max_connections

    def add(self, conn: "Connection") -> bool:
        """
        Insert a connection. Idempotent.

        Returns:
            True if the connection was added, False if already present.

        Raises:
            ConnectionError: If the registry is at capacity.
        """
        with self._lock:
            if conn in self._connections:
                return False
            if self._max_connections and len(self._connections) >= self._max_connections:
                raise ConnectionError(
                    f"Server at capacity ({self._max_connections} connections)"
                )
            self._connections.add(conn)
            self._peak = max(self._peak, len(self._connections))
            return True

    def remove(self, conn: "Connection") -> bool:
        """
        Remove a connection if present. Idempotent.

        Returns:
            True if this call removed it, False if it was not a member.
        """
        with self._lock:
            if conn not in self._connections:
                return False
            self._connections.discard(conn)
            return True

    def snapshot(self) -> tuple["Connection", ...]:
        """Point-in-time copy of the members, safe to iterate across awaits."""
        with self._lock:
            return tuple(self._connections)

    def clear(self) -> tuple["Connection", ...]:
        """Remove every member and return what was removed."""
        with self._lock:
            removed = tuple(self._connections)
            self._connections.clear()
        if removed:
            logger.debug("Registry cleared", count=len(removed))
        return removed

    def __contains__(self, conn: object) -> bool:
        with self._lock:
            return conn in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            total = len(self._connections)
            peak = self._peak
        utilization = (
            round(total / self._max_connections * 100, 1) if self._max_connections else 0.0
        )
        return {
            "total_connections": total,
            "peak_connections": peak,
            "max_connections": self._max_connections,
            "utilization_percent": utilization,
        }

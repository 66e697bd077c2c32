"""
Connection Manager.

Thin orchestrator that composes the connection components:
- ConnectionRegistry: the set of open connections
- ConnectionBroadcaster: fan-out of envelopes
- ConnectionLifecycle: accept/register/welcome and removal
- ConnectionStats: statistics aggregation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from bridge_shared.config.logging import get_logger
from bridge_shared.config.settings import Settings, settings as default_settings
from telemetry_bridge.components.core.constants import WSCloseCode
from telemetry_bridge.components.metrics.collector import MetricsCollector
from telemetry_bridge.core.connection import (
    Connection,
    ConnectionBroadcaster,
    ConnectionLifecycle,
    ConnectionRegistry,
    ConnectionStats,
)

if TYPE_CHECKING:
    from fastapi import WebSocket
    from telemetry_bridge.components.events.types import OutboundEnvelope

logger = get_logger(__name__)

__all__ = ["ConnectionManager"]


class ConnectionManager:
    """
    Manages client WebSocket connections and broadcasts to them.

    Usage:
        manager = ConnectionManager()
        conn = await manager.connect(websocket)   # registers + welcome
        sent = await manager.broadcast(envelope)
        await manager.disconnect(conn)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        settings = settings or default_settings
        self.metrics = metrics or MetricsCollector()
        self.registry = ConnectionRegistry(max_connections=settings.ws_max_total_connections)
        self._broadcaster = ConnectionBroadcaster(
            self.registry,
            self.metrics,
            batch_size=settings.ws_broadcast_batch_size,
            send_timeout=settings.ws_send_timeout,
        )
        self._lifecycle = ConnectionLifecycle(
            self.registry,
            self._broadcaster,
            self.metrics,
            welcome_message=settings.bridge_welcome_message,
            accept_timeout=settings.ws_accept_timeout,
        )
        self._stats = ConnectionStats(self.registry, self.metrics)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self, websocket: "WebSocket") -> Connection:
        """
        Accept, register and greet a client.

        Raises:
            ConnectionError: Shutting down or at capacity.
            ListenerError: Handshake failed.
        """
        return await self._lifecycle.connect(websocket)

    async def disconnect(self, conn: Connection, reason: str = "client_disconnect") -> bool:
        """Remove a client. Idempotent."""
        return await self._lifecycle.disconnect(conn, reason=reason)

    # =========================================================================
    # Broadcasting
    # =========================================================================

    async def broadcast(self, envelope: "OutboundEnvelope") -> int:
        """Send to all connected clients. Returns delivery count."""
        return await self._broadcaster.broadcast(envelope)

    async def send_to_connection(self, conn: Connection, envelope: "OutboundEnvelope") -> bool:
        return await self._broadcaster.send_to_connection(conn, envelope)

    # =========================================================================
    # Stats
    # =========================================================================

    @property
    def total_connections(self) -> int:
        return len(self.registry)

    def get_stats(self) -> dict[str, Any]:
        return self._stats.get_stats()

    # =========================================================================
    # Shutdown
    # =========================================================================

    def is_shutting_down(self) -> bool:
        return self._lifecycle.is_shutdown

    async def shutdown(self) -> int:
        """Refuse new connections and close the open ones."""
        self._lifecycle.set_shutdown(True)
        logger.info("Connection manager shutting down...")
        closed = await self._lifecycle.close_all(code=WSCloseCode.GOING_AWAY, reason="Server shutdown")
        logger.info("WebSocket shutdown complete. Closed %d connections.", closed)
        return closed

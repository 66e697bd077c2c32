"""
Connection Lifecycle Management.

Handles WebSocket acceptance, registration, the welcome message and
disconnection.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from bridge_shared.config.logging import get_logger
from bridge_shared.utils.exceptions import ListenerError
from telemetry_bridge.components.core.constants import BridgeConstants, WSCloseCode
from telemetry_bridge.core.connection.connection import Connection
from telemetry_bridge.core.subscriber.transformer import build_welcome

if TYPE_CHECKING:
    from fastapi import WebSocket
    from telemetry_bridge.components.metrics.collector import MetricsCollector
    from telemetry_bridge.core.connection.broadcaster import ConnectionBroadcaster
    from telemetry_bridge.core.connection.registry import ConnectionRegistry

logger = get_logger(__name__)


class ConnectionLifecycle:
    """
    Manages the lifecycle of client connections.

    Responsibilities:
    - Accept new connections (refused while shutting down or at capacity)
    - Register them and send the welcome envelope to the newcomer only
    - Remove them exactly once on close or error
    """

    def __init__(
        self,
        registry: "ConnectionRegistry",
        broadcaster: "ConnectionBroadcaster",
        metrics: "MetricsCollector",
        welcome_message: str,
        accept_timeout: float = BridgeConstants.WS_ACCEPT_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._broadcaster = broadcaster
        self._metrics = metrics
        self._welcome_message = welcome_message
        self._accept_timeout = accept_timeout
        self._shutdown = False

    @property
    def is_shutdown(self) -> bool:
        """Whether shutdown has been initiated."""
        return self._shutdown

    def set_shutdown(self, value: bool) -> None:
        self._shutdown = value

    async def connect(self, websocket: "WebSocket") -> Connection:
        """
        Accept a WebSocket, register it and greet it.

        Raises:
            ConnectionError: If the server is shutting down or at capacity.
                The socket is closed with an explanatory code.
            ListenerError: If the handshake fails or times out.
        """
        if self._shutdown:
            await websocket.close(code=WSCloseCode.GOING_AWAY, reason="Server is shutting down")
            raise ConnectionError("Server is shutting down")

        try:
            await asyncio.wait_for(websocket.accept(), timeout=self._accept_timeout)
        except asyncio.TimeoutError:
            self._metrics.increment_connection_rejected_error()
            raise ListenerError("WebSocket accept timed out", timeout=self._accept_timeout)
        except Exception as e:
            self._metrics.increment_connection_rejected_error()
            raise ListenerError(f"WebSocket accept failed: {e}") from e

        conn = Connection(websocket)
        try:
            self._registry.add(conn)
        except ConnectionError:
            self._metrics.increment_connection_rejected_limit()
            await conn.close(code=WSCloseCode.SERVER_OVERLOADED, reason="Server at capacity")
            raise

        self._metrics.increment_connections_accepted()
        logger.info(
            "New client connected",
            connection_id=conn.id,
            client=conn.client,
            total=len(self._registry),
        )

        # Welcome goes to this connection only, never broadcast
        await self._broadcaster.send_to_connection(conn, build_welcome(self._welcome_message))
        return conn

    async def disconnect(self, conn: Connection, reason: str = "client_disconnect") -> bool:
        """
        Remove a connection from the registry.

        Safe to call more than once; only the first call logs.

        Returns:
            True if this call removed the connection.
        """
        removed = self._registry.remove(conn)
        if removed:
            self._metrics.increment_connections_closed()
            logger.info(
                "Client disconnected",
                connection_id=conn.id,
                reason=reason,
                remaining=len(self._registry),
            )
        return removed

    async def close_all(self, code: int = WSCloseCode.GOING_AWAY, reason: str = "Server shutdown") -> int:
        """Close and remove every registered connection."""
        connections = self._registry.clear()
        for _ in connections:
            self._metrics.increment_connections_closed()
        if connections:
            await asyncio.gather(
                *[conn.close(code=code, reason=reason) for conn in connections],
                return_exceptions=True,
            )
        return len(connections)

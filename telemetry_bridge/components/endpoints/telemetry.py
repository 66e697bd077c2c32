"""
WebSocket endpoint for telemetry subscribers.

Clients connect, get one welcome envelope, then receive every broadcast
until they disconnect. They are not expected to send anything; heartbeat
pings are answered and anything else is ignored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import WebSocket, WebSocketDisconnect

from bridge_shared.config.logging import get_logger
from bridge_shared.utils.exceptions import ListenerError
from telemetry_bridge.components.connection.heartbeat import handle_heartbeat

if TYPE_CHECKING:
    from telemetry_bridge.connection_manager import ConnectionManager
    from telemetry_bridge.core.connection.connection import Connection

logger = get_logger(__name__)

# Longest client message echoed into debug logs
_MAX_LOGGED_MESSAGE = 100


class TelemetryEndpoint:
    """
    Runs one client connection from accept to removal.

    Usage:
        endpoint = TelemetryEndpoint(websocket, manager)
        await endpoint.run()
    """

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        endpoint_name: str = "/",
    ) -> None:
        self.websocket = websocket
        self.manager = manager
        self.endpoint_name = endpoint_name
        self.connection: "Connection | None" = None

    async def run(self) -> None:
        """
        Main entry point.

        1. Accept and register (welcome is sent by the manager)
        2. Message loop
        3. Unregister on close or error
        """
        try:
            self.connection = await self.manager.connect(self.websocket)
        except ConnectionError as e:
            logger.warning("Connection rejected", endpoint=self.endpoint_name, reason=str(e))
            return
        except ListenerError as e:
            logger.error("Client handshake failed", endpoint=self.endpoint_name, **e.log_context())
            return

        reason = "client_disconnect"
        try:
            await self._message_loop()
        except WebSocketDisconnect as e:
            reason = f"client_disconnect ({e.code})"
        except Exception as e:
            reason = "error"
            logger.error(
                "Client error",
                endpoint=self.endpoint_name,
                connection_id=self.connection.id,
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            await self.manager.disconnect(self.connection, reason=reason)

    async def _message_loop(self) -> None:
        while True:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

            data = message.get("text")
            if data is None:
                # Binary frames carry nothing the bridge understands
                continue

            if await handle_heartbeat(self.connection, data):
                continue

            await self.handle_message(data)

    async def handle_message(self, data: str) -> None:
        """Non-heartbeat client message. Ignored."""
        logger.debug(
            "Unknown message received",
            endpoint=self.endpoint_name,
            connection_id=self.connection.id if self.connection else "unknown",
            message=data[:_MAX_LOGGED_MESSAGE],
        )

"""
Connection Broadcaster.

Delivers envelopes to client connections: one serialized frame, fanned out
concurrently, failures isolated per connection.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Iterable

from bridge_shared.config.logging import get_logger
from bridge_shared.utils.exceptions import DeliveryError
from telemetry_bridge.components.core.constants import BridgeConstants, WSCloseCode
from telemetry_bridge.core.connection.connection import ConnectionState

if TYPE_CHECKING:
    from telemetry_bridge.components.events.types import OutboundEnvelope
    from telemetry_bridge.components.metrics.collector import MetricsCollector
    from telemetry_bridge.core.connection.connection import Connection
    from telemetry_bridge.core.connection.registry import ConnectionRegistry

logger = get_logger(__name__)


class ConnectionBroadcaster:
    """
    Handles broadcasting messages to client connections.

    Responsibilities:
    - Serialize each envelope once
    - Send to every open connection in the registry snapshot
    - Remove connections whose send fails or times out
    - Count deliveries
    """

    def __init__(
        self,
        registry: "ConnectionRegistry",
        metrics: "MetricsCollector",
        batch_size: int = BridgeConstants.BROADCAST_BATCH_SIZE,
        send_timeout: float = BridgeConstants.WS_SEND_TIMEOUT,
    ) -> None:
        """
        Initialize broadcaster with dependencies.

        Args:
            registry: Set of active connections
            metrics: Collects broadcast metrics
            batch_size: Number of connections written concurrently
            send_timeout: Upper bound for one connection's write
        """
        self._registry = registry
        self._metrics = metrics
        self._batch_size = max(1, batch_size)
        self._send_timeout = send_timeout

    async def _drop(self, conn: "Connection", error: DeliveryError) -> None:
        """Remove a connection after a failed delivery and close it if still open."""
        if self._registry.remove(conn):
            self._metrics.increment_connections_pruned()
            logger.info(
                "Client removed after failed delivery",
                connection_id=conn.id,
                remaining=len(self._registry),
            )
        logger.debug("Send failed", **error.log_context())
        if conn.state is ConnectionState.OPEN:
            await conn.close(code=WSCloseCode.POLICY_VIOLATION, reason="Delivery failed")

    async def _send_text(self, conn: "Connection", text: str) -> bool:
        """
        Send pre-serialized text to a single connection.

        Returns:
            True if sent, False otherwise. Never raises for transport errors.
        """
        if conn.state is not ConnectionState.OPEN:
            await self._drop(conn, DeliveryError(conn.id, state=conn.state.value))
            return False
        try:
            await asyncio.wait_for(conn.send_text(text), timeout=self._send_timeout)
            return True
        except asyncio.TimeoutError as e:
            await self._drop(conn, DeliveryError(conn.id, e, timeout=self._send_timeout))
            return False
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._drop(conn, DeliveryError(conn.id, e))
            return False

    async def send_to_connection(self, conn: "Connection", envelope: "OutboundEnvelope") -> bool:
        """
        Send one envelope to a single connection (no broadcast).

        Returns:
            True if sent successfully, False otherwise.
        """
        return await self._send_text(conn, envelope.to_json())

    async def _broadcast_to_connections(
        self,
        connections: Iterable["Connection"],
        text: str,
    ) -> tuple[int, int]:
        """
        Send text to connections in concurrent batches.

        Returns:
            (sent, failed) counts.
        """
        sent = 0
        failed = 0
        targets = []

        for conn in connections:
            state = conn.state
            if state is ConnectionState.OPEN:
                targets.append(conn)
            elif state is ConnectionState.CLOSED:
                # Closed but its close notification has not reached the registry yet
                await self._drop(conn, DeliveryError(conn.id, state=state.value))

        for i in range(0, len(targets), self._batch_size):
            batch = targets[i : i + self._batch_size]
            results = await asyncio.gather(
                *[self._send_text(conn, text) for conn in batch],
                return_exceptions=True,
            )

            for conn, result in zip(batch, results):
                if result is True:
                    sent += 1
                    continue
                failed += 1
                if isinstance(result, BaseException):
                    logger.debug(
                        "Batch send exception",
                        connection_id=conn.id,
                        error=str(result),
                    )
                    self._registry.remove(conn)

        return sent, failed

    async def broadcast(self, envelope: "OutboundEnvelope") -> int:
        """
        Send an envelope to every open connection.

        Returns:
            Number of connections that received it. Informational only.
        """
        text = envelope.to_json()
        connections = self._registry.snapshot()
        if not connections:
            self._metrics.record_broadcast(0, 0)
            logger.info("Sent to 0 client(s)", topic=envelope.topic)
            return 0

        sent, failed = await self._broadcast_to_connections(connections, text)

        self._metrics.record_broadcast(sent, failed)
        logger.info(
            "Sent to %d client(s)",
            sent,
            failed=failed,
            total=len(connections),
            topic=envelope.topic,
        )
        return sent

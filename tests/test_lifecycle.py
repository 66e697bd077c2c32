"""
Tests for client connection lifecycle and the connection manager.
"""

import asyncio
import json

import pytest

from bridge_shared.utils.exceptions import ListenerError
from conftest import FakeWebSocket
from telemetry_bridge.components.core.constants import WSCloseCode
from telemetry_bridge.connection_manager import ConnectionManager
from telemetry_bridge.core.connection.broadcaster import ConnectionBroadcaster
from telemetry_bridge.core.connection.lifecycle import ConnectionLifecycle
from telemetry_bridge.core.connection.registry import ConnectionRegistry
from telemetry_bridge.core.subscriber.transformer import transform


class StallingWebSocket(FakeWebSocket):
    async def accept(self):
        await asyncio.sleep(5)


class BrokenHandshakeWebSocket(FakeWebSocket):
    async def accept(self):
        raise RuntimeError("handshake failed")


@pytest.fixture
def lifecycle(registry, broadcaster, metrics):
    return ConnectionLifecycle(
        registry,
        broadcaster,
        metrics,
        welcome_message="Connected to MQTT -> WebSocket bridge",
        accept_timeout=0.05,
    )


class TestConnect:
    """Accept, register, welcome."""

    @pytest.mark.asyncio
    async def test_connect_registers_and_welcomes(self, lifecycle, registry, metrics):
        ws = FakeWebSocket()

        conn = await lifecycle.connect(ws)

        assert ws.accepted
        assert conn in registry
        assert len(ws.sent) == 1
        welcome = json.loads(ws.sent[0])
        assert welcome["type"] == "connected"
        assert welcome["message"] == "Connected to MQTT -> WebSocket bridge"
        assert isinstance(welcome["timestamp"], int)
        assert metrics.get_snapshot()["connections"]["accepted"] == 1

    @pytest.mark.asyncio
    async def test_welcome_goes_to_newcomer_only(self, lifecycle):
        first = FakeWebSocket()
        await lifecycle.connect(first)

        await lifecycle.connect(FakeWebSocket())

        assert len(first.sent) == 1

    @pytest.mark.asyncio
    async def test_refused_while_shutting_down(self, lifecycle, registry):
        lifecycle.set_shutdown(True)
        ws = FakeWebSocket()

        with pytest.raises(ConnectionError):
            await lifecycle.connect(ws)

        assert ws.close_code == WSCloseCode.GOING_AWAY
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_refused_at_capacity(self, metrics):
        registry = ConnectionRegistry(max_connections=1)
        lifecycle = ConnectionLifecycle(
            registry,
            ConnectionBroadcaster(registry, metrics),
            metrics,
            welcome_message="hi",
        )
        await lifecycle.connect(FakeWebSocket())
        overflow = FakeWebSocket()

        with pytest.raises(ConnectionError):
            await lifecycle.connect(overflow)

        assert overflow.close_code == WSCloseCode.SERVER_OVERLOADED
        assert overflow.sent == []
        assert len(registry) == 1
        assert metrics.get_snapshot()["connections"]["rejected_limit"] == 1

    @pytest.mark.asyncio
    async def test_accept_timeout(self, lifecycle, registry, metrics):
        with pytest.raises(ListenerError, match="timed out"):
            await lifecycle.connect(StallingWebSocket())
        assert len(registry) == 0
        assert metrics.get_snapshot()["connections"]["rejected_error"] == 1

    @pytest.mark.asyncio
    async def test_accept_failure(self, lifecycle, registry):
        with pytest.raises(ListenerError, match="handshake failed"):
            await lifecycle.connect(BrokenHandshakeWebSocket())
        assert len(registry) == 0


class TestDisconnect:
    """Removal happens exactly once."""

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self, lifecycle, registry, metrics):
        conn = await lifecycle.connect(FakeWebSocket())

        assert await lifecycle.disconnect(conn) is True
        assert await lifecycle.disconnect(conn, reason="error") is False

        assert conn not in registry
        assert metrics.get_snapshot()["connections"]["closed"] == 1

    @pytest.mark.asyncio
    async def test_close_all(self, lifecycle, registry):
        sockets = [FakeWebSocket() for _ in range(3)]
        for ws in sockets:
            await lifecycle.connect(ws)

        closed = await lifecycle.close_all()

        assert closed == 3
        assert len(registry) == 0
        assert {ws.close_code for ws in sockets} == {WSCloseCode.GOING_AWAY}


class TestConnectionManager:
    """The manager wires settings into its components."""

    @pytest.mark.asyncio
    async def test_connect_broadcast_disconnect(self, bridge_settings):
        manager = ConnectionManager(bridge_settings)
        ws_a, ws_b = FakeWebSocket(), FakeWebSocket()
        conn_a = await manager.connect(ws_a)
        await manager.connect(ws_b)

        sent = await manager.broadcast(transform("classroom/device42/telemetry", b'{"temp":21.5}'))

        assert sent == 2
        assert ws_a.sent[1] == ws_b.sent[1]
        await manager.disconnect(conn_a)
        assert manager.total_connections == 1

    @pytest.mark.asyncio
    async def test_shutdown_refuses_new_clients(self, bridge_settings):
        manager = ConnectionManager(bridge_settings)
        open_ws = FakeWebSocket()
        await manager.connect(open_ws)

        assert await manager.shutdown() == 1
        assert manager.is_shutting_down()
        assert open_ws.close_code == WSCloseCode.GOING_AWAY

        with pytest.raises(ConnectionError):
            await manager.connect(FakeWebSocket())

    def test_stats_include_metrics(self, bridge_settings):
        stats = ConnectionManager(bridge_settings).get_stats()

        assert stats["total_connections"] == 0
        assert stats["max_connections"] == bridge_settings.ws_max_total_connections
        assert set(stats["metrics"]) == {"messages", "broadcast", "connections", "subscriber"}

"""
Pytest configuration and fixtures for bridge tests.
"""

import asyncio
import queue
from types import SimpleNamespace

import pytest
from starlette.websockets import WebSocketState

from bridge_shared.config.settings import Settings
from telemetry_bridge.components.adapters.base import AdapterStatus, SubscriberAdapter
from telemetry_bridge.components.events.types import InboundEvent
from telemetry_bridge.components.metrics.collector import MetricsCollector
from telemetry_bridge.core.connection.broadcaster import ConnectionBroadcaster
from telemetry_bridge.core.connection.connection import Connection
from telemetry_bridge.core.connection.registry import ConnectionRegistry


class FakeWebSocket:
    """
    Stand-in for a Starlette WebSocket.

    Records every frame sent and the close code. Sends can be made to fail
    or stall to exercise the broadcaster's isolation.
    """

    _next_port = 40000

    def __init__(self, fail_with: BaseException | None = None, send_delay: float = 0.0):
        FakeWebSocket._next_port += 1
        self.client = SimpleNamespace(host="127.0.0.1", port=FakeWebSocket._next_port)
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.accepted = False
        self.sent: list[str] = []
        self.close_code: int | None = None
        self.fail_with = fail_with
        self.send_delay = send_delay
        self.on_send = None

    async def accept(self):
        self.accepted = True

    async def send_text(self, data: str):
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.fail_with is not None:
            raise self.fail_with
        if self.on_send is not None:
            self.on_send()
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None):
        self.close_code = code
        self.drop()

    def drop(self):
        """Peer went away without the server noticing yet."""
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED


class FakeAdapter(SubscriberAdapter):
    """
    In-process inbound transport.

    Tests publish from any thread; listen() polls a thread-safe queue so the
    adapter is not bound to the event loop it was created on.
    """

    name = "fake"

    def __init__(self, topic_pattern: str = "classroom/+/telemetry"):
        super().__init__(topic_pattern)
        self.inbox: queue.Queue[InboundEvent] = queue.Queue()
        self.connect_calls = 0
        self.disconnect_calls = 0

    def publish(self, topic: str, payload: bytes) -> None:
        self.inbox.put(InboundEvent(topic=topic, payload=payload))

    async def connect(self) -> None:
        self.connect_calls += 1
        self._set_status(AdapterStatus.SUBSCRIBED)

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._set_status(AdapterStatus.DISCONNECTED)

    async def listen(self):
        while True:
            try:
                yield self.inbox.get_nowait()
            except queue.Empty:
                await asyncio.sleep(0.01)


@pytest.fixture
def bridge_settings():
    """Valid settings independent of the environment and any .env file."""
    return Settings(
        _env_file=None,
        mqtt_broker_url="mqtt://localhost:1883",
        mqtt_topic_pattern="classroom/+/telemetry",
        ws_port=8080,
        environment="test",
    )


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def broadcaster(registry, metrics):
    return ConnectionBroadcaster(registry, metrics, batch_size=50, send_timeout=0.2)


@pytest.fixture
def make_connection(registry):
    """Create a registered Connection around a FakeWebSocket."""

    def _make(**kwargs) -> Connection:
        conn = Connection(FakeWebSocket(**kwargs))
        registry.add(conn)
        return conn

    return _make


@pytest.fixture
def fake_adapter():
    return FakeAdapter()

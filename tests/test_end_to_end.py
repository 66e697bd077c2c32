"""
End-to-end tests: inbound adapter -> relay -> WebSocket clients.

The FastAPI app runs under TestClient with an in-process adapter in place
of the broker.
"""

import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import FakeAdapter
from telemetry_bridge import main
from telemetry_bridge.connection_manager import ConnectionManager
from telemetry_bridge.main import create_app

TOPIC = "classroom/device42/telemetry"


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def client(bridge_settings, adapter):
    app = create_app(
        settings=bridge_settings,
        adapter=adapter,
        manager=ConnectionManager(bridge_settings),
    )
    with TestClient(app) as test_client:
        yield test_client


class TestWelcome:
    """Each client is greeted on connect."""

    def test_welcome_on_root_path(self, client):
        with client.websocket_connect("/") as ws:
            welcome = ws.receive_json()

        assert welcome["type"] == "connected"
        assert welcome["message"] == "Connected to MQTT -> WebSocket bridge"
        assert isinstance(welcome["timestamp"], int)
        assert set(welcome) == {"type", "message", "timestamp"}

    def test_ws_path_alias(self, client):
        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json()["type"] == "connected"


class TestTelemetryFanOut:
    """Broker messages reach every connected client."""

    def test_two_clients_receive_identical_envelope(self, client, adapter):
        with client.websocket_connect("/") as ws1, client.websocket_connect("/ws") as ws2:
            ws1.receive_json()
            ws2.receive_json()

            adapter.publish(TOPIC, b'{"temp":21.5}')
            frame1 = ws1.receive_text()
            frame2 = ws2.receive_text()

        assert frame1 == frame2
        envelope = json.loads(frame1)
        assert envelope["type"] == "telemetry"
        assert envelope["deviceId"] == "device42"
        assert envelope["topic"] == TOPIC
        assert envelope["payload"] == {"temp": 21.5}
        assert isinstance(envelope["timestamp"], int)

    def test_malformed_message_skipped(self, client, adapter):
        """A bad payload delivers nothing and later messages still flow."""
        with client.websocket_connect("/") as ws:
            ws.receive_json()

            adapter.publish(TOPIC, b"not json")
            adapter.publish("classroom/device7/telemetry", b"[1,2,3]")

            envelope = ws.receive_json()

        assert envelope["deviceId"] == "device7"
        assert envelope["payload"] == [1, 2, 3]

    def test_invalid_encoding_skipped(self, client, adapter):
        with client.websocket_connect("/") as ws:
            ws.receive_json()

            adapter.publish(TOPIC, b'{"temp":"\xff"}')
            adapter.publish(TOPIC, b'{"temp":20}')

            assert ws.receive_json()["payload"] == {"temp": 20}

    def test_messages_arrive_in_publish_order(self, client, adapter):
        with client.websocket_connect("/") as ws:
            ws.receive_json()
            for seq in range(5):
                adapter.publish(TOPIC, json.dumps({"seq": seq}).encode())

            received = [ws.receive_json()["payload"]["seq"] for _ in range(5)]

        assert received == [0, 1, 2, 3, 4]

    def test_client_sends_are_ignored(self, client, adapter):
        with client.websocket_connect("/") as ws:
            ws.receive_json()
            ws.send_text("hello bridge")
            adapter.publish(TOPIC, b"1")

            assert ws.receive_json()["payload"] == 1


class TestHeartbeat:
    """Ping frames are answered."""

    @pytest.mark.parametrize("ping", ["ping", '{"type":"ping"}'])
    def test_ping_gets_pong(self, client, ping):
        with client.websocket_connect("/") as ws:
            ws.receive_json()
            ws.send_text(ping)

            assert ws.receive_json() == {"type": "pong"}


class TestHttpEndpoints:
    """Health and metrics."""

    def test_health(self, client, adapter):
        with client.websocket_connect("/") as ws:
            ws.receive_json()
            response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "telemetry-bridge"
        assert data["subscriber"]["transport"] == "fake"
        assert data["subscriber"]["status"] == "subscribed"
        assert data["total_connections"] == 1

    def test_metrics(self, client, adapter):
        with client.websocket_connect("/") as ws:
            ws.receive_json()
            adapter.publish(TOPIC, b'{"temp":21.5}')
            ws.receive_json()
            response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        body = response.text
        assert "# TYPE telemetry_bridge_messages_received_total counter" in body
        assert "telemetry_bridge_messages_received_total 1" in body
        assert "telemetry_bridge_connections_active 1" in body
        assert 'telemetry_bridge_subscriber_up{transport="fake"} 1' in body


class TestLifespan:
    """Adapter start and stop follow the application lifespan."""

    def test_adapter_connected_and_disconnected(self, bridge_settings):
        adapter = FakeAdapter()
        manager = ConnectionManager(bridge_settings)
        app = create_app(settings=bridge_settings, adapter=adapter, manager=manager)

        with TestClient(app):
            assert adapter.connect_calls == 1

        assert adapter.disconnect_calls == 1
        assert manager.is_shutting_down()

    def test_startup_log_lines(self, bridge_settings, monkeypatch):
        """The listener line does not claim a bind; uvicorn reports that itself."""
        log = MagicMock()
        monkeypatch.setattr(main, "logger", log)
        app = create_app(settings=bridge_settings, adapter=FakeAdapter(), manager=ConnectionManager(bridge_settings))

        with TestClient(app):
            pass

        messages = [c.args[0] for c in log.info.call_args_list]
        assert messages.index("Loaded configuration") < messages.index("WebSocket routes ready")
        assert messages.index("WebSocket routes ready") < messages.index("Telemetry bridge operational")
        assert not any("listener ready" in m for m in messages)

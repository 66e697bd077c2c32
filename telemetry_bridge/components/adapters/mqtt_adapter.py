"""MQTT subscriber adapter built on paho-mqtt."""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING, Any, Optional

import paho.mqtt.client as mqtt

from bridge_shared.config.logging import get_logger
from bridge_shared.utils.exceptions import TransportError
from telemetry_bridge.components.adapters.base import AdapterStatus, SubscriberAdapter
from telemetry_bridge.components.events.types import InboundEvent

if TYPE_CHECKING:
    from bridge_shared.utils.validators import BrokerAddress
    from telemetry_bridge.components.metrics.collector import MetricsCollector
    from telemetry_bridge.core.subscriber.queue import InboundEventQueue

logger = get_logger(__name__)


def _code(reason_code: Any) -> int:
    return getattr(reason_code, "value", reason_code)


def _is_success(reason_code: Any) -> bool:
    """Paho/MQTT result code helper (0 is success)."""
    return _code(reason_code) == 0


def _is_failure(reason_code: Any) -> bool:
    """SUBACK codes >= 0x80 are failures; 0-2 are the granted QoS."""
    return _code(reason_code) >= 0x80


def generate_client_id() -> str:
    return f"telemetry-bridge-{uuid.uuid4().hex[:8]}"


class MQTTSubscriberAdapter(SubscriberAdapter):
    """
    Subscribes to one topic filter on one broker.

    Paho runs its network loop on a background thread (loop_start). Its
    callbacks only update status, log, and hand messages to the event loop
    through the inbound queue. Reconnection is paho's own: connect_async()
    plus reconnect_delay_set() makes the network thread retry with
    exponential backoff, and on_connect re-subscribes after each reconnect.
    """

    name = "mqtt"

    def __init__(
        self,
        broker: "BrokerAddress",
        topic_pattern: str,
        *,
        client_id: str = "",
        qos: int = 0,
        keepalive: int = 60,
        reconnect_min_delay: int = 1,
        reconnect_max_delay: int = 30,
        queue: "InboundEventQueue | None" = None,
        metrics: "MetricsCollector | None" = None,
        client: Optional[mqtt.Client] = None,
    ) -> None:
        super().__init__(topic_pattern, queue=queue, metrics=metrics)
        self._broker = broker
        self._client_id = client_id or generate_client_id()
        self._qos = qos
        self._keepalive = keepalive
        self._reconnect_min_delay = reconnect_min_delay
        self._reconnect_max_delay = reconnect_max_delay
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_running = False
        self._stop_requested = False
        self._subscribe_mid: Optional[int] = None
        self._subscribed_once = False
        self._client = client or self._create_client()
        self._bind_callbacks(self._client)

    @property
    def client_id(self) -> str:
        return self._client_id

    def _create_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv311,
            transport=self._broker.transport,
        )
        if self._broker.username:
            client.username_pw_set(self._broker.username, self._broker.password or None)
        if self._broker.use_tls:
            client.tls_set()
        if self._broker.transport == "websockets" and self._broker.path:
            client.ws_set_options(path=self._broker.path)
        client.reconnect_delay_set(
            min_delay=self._reconnect_min_delay,
            max_delay=self._reconnect_max_delay,
        )
        return client

    def _bind_callbacks(self, client: mqtt.Client) -> None:
        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_disconnect = self._on_disconnect
        client.on_subscribe = self._on_subscribe
        client.on_message = self._on_message

    # =========================================================================
    # Paho callbacks (network thread)
    # =========================================================================

    def _on_connect(self, client: mqtt.Client, userdata, flags, reason_code, properties=None, *extra) -> None:  # type: ignore[override]
        if not _is_success(reason_code):
            self._set_status(AdapterStatus.ERROR, f"connect refused: {reason_code}")
            logger.warning(
                "Broker refused connection",
                broker=self._broker.redacted(),
                reason_code=str(reason_code),
            )
            return

        self._set_status(AdapterStatus.CONNECTED)
        if self.metrics is not None:
            self.metrics.increment_subscriber_connects()
        logger.info("Connected to broker", broker=self._broker.redacted(), client_id=self._client_id)

        # Clean sessions drop subscriptions, so subscribe on every (re)connect
        logger.info("Subscribing to topic", topic_pattern=self.topic_pattern, qos=self._qos)
        result, mid = client.subscribe(self.topic_pattern, qos=self._qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            self._report_subscription_error(f"subscribe request failed ({mqtt.error_string(result)})")
            return
        self._subscribe_mid = mid

    def _on_connect_fail(self, client: mqtt.Client, userdata) -> None:
        self._set_status(AdapterStatus.ERROR, "connection attempt failed")
        logger.warning(
            "Broker connection attempt failed, retrying",
            broker=self._broker.redacted(),
            max_delay=self._reconnect_max_delay,
        )

    def _on_disconnect(self, client: mqtt.Client, userdata, disconnect_flags, reason_code, properties=None, *extra) -> None:  # type: ignore[override]
        self._set_status(AdapterStatus.DISCONNECTED)
        if self._stop_requested:
            logger.info("Disconnected from broker")
            return
        if self.metrics is not None:
            self.metrics.increment_subscriber_disconnects()
        logger.warning(
            "Lost connection to broker, reconnecting",
            broker=self._broker.redacted(),
            reason_code=str(reason_code),
        )

    def _on_subscribe(self, client: mqtt.Client, userdata, mid, reason_code_list, properties=None) -> None:  # type: ignore[override]
        if self._subscribe_mid is not None and mid != self._subscribe_mid:
            return
        codes = list(reason_code_list) if isinstance(reason_code_list, (list, tuple)) else [reason_code_list]
        failed = [code for code in codes if _is_failure(code)]
        if failed:
            self._report_subscription_error(f"broker rejected subscription ({failed[0]})")
            return

        self._set_status(AdapterStatus.SUBSCRIBED)
        if self._subscribed_once:
            logger.info("Resubscribed after reconnect", topic_pattern=self.topic_pattern)
        else:
            self._subscribed_once = True
            logger.info(
                "Subscription successful",
                topic_pattern=self.topic_pattern,
                granted_qos=[_code(code) for code in codes],
            )

    def _on_message(self, client: mqtt.Client, userdata, msg: mqtt.MQTTMessage) -> None:
        if self._loop is None:
            return
        event = InboundEvent(topic=msg.topic, payload=bytes(msg.payload))
        try:
            self.queue.put_threadsafe(self._loop, event)
        except RuntimeError:
            # Event loop already closed during shutdown
            logger.debug("Message discarded after shutdown", topic=msg.topic)

    # =========================================================================
    # Lifecycle (event loop)
    # =========================================================================

    async def connect(self) -> None:
        """
        Start the paho network thread.

        Returns immediately; connection and subscription outcomes are
        reported through logs and status.

        Raises:
            TransportError: If paho rejects the connection parameters.
        """
        self._loop = asyncio.get_running_loop()
        self._stop_requested = False
        self._set_status(AdapterStatus.CONNECTING)
        logger.info(
            "Connecting to broker...",
            broker=self._broker.redacted(),
            client_id=self._client_id,
            transport=self._broker.transport,
        )
        try:
            self._client.connect_async(self._broker.host, self._broker.port, self._keepalive)
        except (ValueError, OSError) as e:
            self._set_status(AdapterStatus.ERROR, str(e))
            raise TransportError(f"Invalid broker connection parameters: {e}") from e

        if not self._loop_running:
            self._client.loop_start()
            self._loop_running = True

    async def disconnect(self) -> None:
        self._stop_requested = True
        try:
            self._client.disconnect()
        except (OSError, RuntimeError) as e:
            logger.debug("Error sending MQTT disconnect", error=str(e))
        if self._loop_running:
            # loop_stop() joins the network thread
            loop = self._loop or asyncio.get_running_loop()
            await loop.run_in_executor(None, self._client.loop_stop)
            self._loop_running = False
        self._set_status(AdapterStatus.DISCONNECTED)

    def describe(self) -> dict[str, Any]:
        return {
            **super().describe(),
            "broker": self._broker.redacted(),
            "client_id": self._client_id,
        }

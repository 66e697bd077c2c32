"""
Inbound subscriber adapters.

- base.py: SubscriberAdapter contract and AdapterStatus
- mqtt_adapter.py: paho-mqtt implementation (default)
- redis_adapter.py: Redis pub/sub implementation
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from telemetry_bridge.components.adapters.base import AdapterStatus, SubscriberAdapter
from telemetry_bridge.components.adapters.mqtt_adapter import MQTTSubscriberAdapter
from telemetry_bridge.components.adapters.redis_adapter import (
    RedisSubscriberAdapter,
    mqtt_filter_to_glob,
)
from telemetry_bridge.components.resilience.retry import create_subscriber_retry_config

if TYPE_CHECKING:
    from bridge_shared.config.settings import Settings
    from telemetry_bridge.components.metrics.collector import MetricsCollector
    from telemetry_bridge.core.subscriber.queue import InboundEventQueue


def create_adapter(
    settings: "Settings",
    queue: "InboundEventQueue",
    metrics: "MetricsCollector",
) -> SubscriberAdapter:
    """
    Build the adapter selected by settings.bridge_transport.

    Raises:
        ValueError: If the broker URL is invalid (MQTT transport).
    """
    if settings.bridge_transport == "redis":
        return RedisSubscriberAdapter(
            settings.redis_url,
            settings.mqtt_topic_pattern,
            retry_config=create_subscriber_retry_config(
                max_delay=settings.redis_max_reconnect_delay,
                max_attempts=settings.redis_max_reconnect_attempts,
            ),
            cleanup_timeout=settings.redis_pubsub_cleanup_timeout,
            queue=queue,
            metrics=metrics,
        )

    return MQTTSubscriberAdapter(
        settings.broker_address,
        settings.mqtt_topic_pattern,
        client_id=settings.mqtt_client_id,
        qos=settings.mqtt_qos,
        keepalive=settings.mqtt_keepalive,
        reconnect_min_delay=settings.mqtt_reconnect_min_delay,
        reconnect_max_delay=settings.mqtt_reconnect_max_delay,
        queue=queue,
        metrics=metrics,
    )


__all__ = [
    "AdapterStatus",
    "SubscriberAdapter",
    "MQTTSubscriberAdapter",
    "RedisSubscriberAdapter",
    "mqtt_filter_to_glob",
    "create_adapter",
]

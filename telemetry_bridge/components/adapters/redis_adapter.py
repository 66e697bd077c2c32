"""
Redis pub/sub subscriber adapter.

Alternative inbound transport for deployments where telemetry is
republished on Redis channels named like MQTT topics
("classroom/device42/telemetry"). The MQTT topic filter is translated to
a PSUBSCRIBE glob and every channel is re-checked with MQTT matching
rules, since '*' in a glob also spans '/'.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import TYPE_CHECKING, Any

import redis.asyncio as aioredis
import redis.exceptions
from paho.mqtt.client import topic_matches_sub

from bridge_shared.config.logging import get_logger
from bridge_shared.utils.validators import redact_url
from telemetry_bridge.components.adapters.base import AdapterStatus, SubscriberAdapter
from telemetry_bridge.components.core.constants import BridgeConstants
from telemetry_bridge.components.events.types import InboundEvent
from telemetry_bridge.components.resilience.retry import (
    RetryConfig,
    calculate_delay_with_jitter,
    create_subscriber_retry_config,
)

if TYPE_CHECKING:
    from telemetry_bridge.components.metrics.collector import MetricsCollector
    from telemetry_bridge.core.subscriber.queue import InboundEventQueue

logger = get_logger(__name__)

_GLOB_SPECIAL = set("*?[]\\")


def mqtt_filter_to_glob(pattern: str) -> str:
    """
    Translate an MQTT topic filter into a Redis PSUBSCRIBE pattern.

    '+' and '#' become '*'; glob metacharacters in literal levels are escaped.
    """
    levels = []
    for level in pattern.split("/"):
        if level in ("+", "#"):
            levels.append("*")
        else:
            levels.append("".join(f"\\{ch}" if ch in _GLOB_SPECIAL else ch for ch in level))
    return "/".join(levels)


def _as_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    return str(value).encode("utf-8")


class RedisSubscriberAdapter(SubscriberAdapter):
    """
    Pattern-subscribes to Redis channels and feeds the inbound queue.

    The subscriber loop runs as its own task and reconnects with
    exponential backoff and jitter. After max_attempts consecutive failures
    it gives up, leaving the adapter in ERROR status while the rest of the
    service keeps serving. The failure count restarts only once a
    subscription has proven healthy (a message read, or stable_period
    elapsed), so a server that accepts PSUBSCRIBE and then drops every
    connection still exhausts the budget. Any other Redis error (for
    example an ACL NOPERM on PSUBSCRIBE) is reported as a subscription
    error and not retried.
    """

    name = "redis"

    def __init__(
        self,
        redis_url: str,
        topic_pattern: str,
        *,
        retry_config: RetryConfig | None = None,
        cleanup_timeout: float = 5.0,
        poll_timeout: float = BridgeConstants.SUBSCRIBER_POLL_TIMEOUT,
        stable_period: float = BridgeConstants.SUBSCRIBER_STABLE_PERIOD,
        queue: "InboundEventQueue | None" = None,
        metrics: "MetricsCollector | None" = None,
        client: Any = None,
    ) -> None:
        super().__init__(topic_pattern, queue=queue, metrics=metrics)
        self._redis_url = redis_url
        self._glob = mqtt_filter_to_glob(topic_pattern)
        self._retry_config = retry_config or create_subscriber_retry_config()
        self._cleanup_timeout = cleanup_timeout
        self._poll_timeout = poll_timeout
        self._stable_period = stable_period
        self._messages_read = 0
        self._client = client
        self._owns_client = client is None
        self._task: asyncio.Task | None = None

    @property
    def channel_pattern(self) -> str:
        return self._glob

    async def connect(self) -> None:
        if self._task is not None and not self._task.done():
            return
        if self._client is None:
            self._client = aioredis.from_url(self._redis_url)
        self._set_status(AdapterStatus.CONNECTING)
        logger.info("Connecting to Redis...", redis_url=redact_url(self._redis_url), pattern=self._glob)
        self._task = asyncio.create_task(self._run(), name="redis_subscriber")

    async def disconnect(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self._client is not None and self._owns_client:
            try:
                await self._client.aclose()
            except (redis.exceptions.RedisError, OSError) as e:
                logger.warning("Error closing Redis client", error=str(e))
            self._client = None
        self._set_status(AdapterStatus.DISCONNECTED)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        attempt = 0
        while True:
            pubsub = self._client.pubsub()
            subscribed_at: float | None = None
            self._messages_read = 0
            try:
                await pubsub.psubscribe(self._glob)
                subscribed_at = loop.time()
                self._set_status(AdapterStatus.SUBSCRIBED)
                if self.metrics is not None:
                    self.metrics.increment_subscriber_connects()
                logger.info("Subscription successful", topic_pattern=self.topic_pattern, pattern=self._glob)
                await self._read_messages(pubsub)
            except asyncio.CancelledError:
                logger.info("Redis subscriber cancelled", queued_events=len(self.queue))
                raise
            except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError, OSError) as e:
                if self._was_healthy(subscribed_at, loop.time()):
                    attempt = 0
                attempt += 1
                self._set_status(AdapterStatus.ERROR, str(e))
                if self.metrics is not None:
                    self.metrics.increment_subscriber_disconnects()
                if not self._retry_config.should_retry(attempt):
                    logger.error(
                        "Max reconnection attempts exceeded, subscriber giving up",
                        attempts=attempt,
                        max_attempts=self._retry_config.max_attempts,
                    )
                    return
                delay = calculate_delay_with_jitter(attempt - 1, self._retry_config)
                logger.warning(
                    "Redis connection error, reconnecting with jitter...",
                    error=str(e),
                    attempt=attempt,
                    max_attempts=self._retry_config.max_attempts,
                    delay_with_jitter=round(delay, 2),
                )
                await asyncio.sleep(delay)
            except redis.exceptions.RedisError as e:
                # NOPERM, unknown command and similar server replies
                self._report_subscription_error(str(e))
                return
            finally:
                await self._close_pubsub(pubsub)

    def _was_healthy(self, subscribed_at: float | None, now: float) -> bool:
        if subscribed_at is None:
            return False
        return self._messages_read > 0 or now - subscribed_at >= self._stable_period

    async def _read_messages(self, pubsub: Any) -> None:
        while True:
            try:
                msg = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=self._poll_timeout
                )
            except redis.exceptions.TimeoutError:
                # Normal for pubsub - continue listening
                continue

            if msg is None or msg.get("type") != "pmessage":
                continue
            self._messages_read += 1

            channel = _as_text(msg.get("channel"))
            if not topic_matches_sub(self.topic_pattern, channel):
                continue

            self.queue.put_nowait(InboundEvent(topic=channel, payload=_as_bytes(msg.get("data"))))

    async def _close_pubsub(self, pubsub: Any) -> None:
        try:
            await asyncio.wait_for(pubsub.punsubscribe(self._glob), timeout=self._cleanup_timeout)
        except asyncio.TimeoutError:
            logger.warning("Pubsub unsubscribe timed out", timeout=self._cleanup_timeout)
        except (redis.exceptions.RedisError, OSError) as e:
            logger.debug("Error during pubsub cleanup", error=str(e))
        try:
            await asyncio.wait_for(pubsub.aclose(), timeout=self._cleanup_timeout)
        except asyncio.TimeoutError:
            logger.warning("Pubsub close timed out", timeout=self._cleanup_timeout)
        except (redis.exceptions.RedisError, OSError) as e:
            logger.debug("Error closing pubsub", error=str(e))

    def describe(self) -> dict[str, Any]:
        return {**super().describe(), "channel_pattern": self._glob}

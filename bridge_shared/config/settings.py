"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.

Values are read from the process environment and from a `.env` file in
the working directory (e.g. MQTT_BROKER_URL=mqtt://broker.local:1883).
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings

from bridge_shared.utils.exceptions import ConfigError
from bridge_shared.utils.validators import (
    BrokerAddress,
    validate_broker_url,
    validate_port,
    validate_topic_filter,
)


class Settings(BaseSettings):
    """Application settings with defaults for development."""

    # MQTT subscriber
    # Required when bridge_transport == "mqtt"; empty fails validate_startup()
    mqtt_broker_url: str = ""
    # '+' matches exactly one topic level
    mqtt_topic_pattern: str = "classroom/+/telemetry"
    mqtt_client_id: str = ""  # Empty = generated "telemetry-bridge-<random>"
    mqtt_keepalive: int = 60
    mqtt_qos: int = 0
    mqtt_reconnect_min_delay: int = 1  # Seconds, paho doubles up to max
    mqtt_reconnect_max_delay: int = 30

    # Inbound transport: "mqtt" (default) or "redis" pub/sub
    bridge_transport: Literal["mqtt", "redis"] = "mqtt"

    # Redis subscriber (only used when bridge_transport == "redis")
    redis_url: str = "redis://localhost:6379"
    redis_max_reconnect_attempts: int = 20
    redis_max_reconnect_delay: float = 30.0
    redis_pubsub_cleanup_timeout: float = 5.0

    # WebSocket listener
    ws_host: str = "0.0.0.0"
    ws_port: int = 8080
    ws_max_total_connections: int = 1000  # 0 = unlimited
    ws_broadcast_batch_size: int = 50  # Connections sent to in parallel
    ws_send_timeout: float = 5.0  # Per-connection send bound in seconds
    ws_accept_timeout: float = 5.0
    bridge_welcome_message: str = "Connected to MQTT -> WebSocket bridge"

    # Relay pipeline
    bridge_event_queue_size: int = 5000  # Oldest event dropped when full
    bridge_max_payload_size: int = 1024 * 1024  # 1 MiB, 0 = unlimited

    # Comma-separated list of allowed origins for the HTTP endpoints (empty = "*")
    allowed_origins: str = ""

    # Environment
    environment: str = "development"
    debug: bool = False
    log_level: str = ""  # Empty = DEBUG when debug else INFO

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def broker_address(self) -> BrokerAddress:
        """Parsed broker URL. Raises ValueError when invalid."""
        return validate_broker_url(self.mqtt_broker_url)

    @property
    def cors_origins(self) -> list[str]:
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return origins or ["*"]

    def validate_startup(self) -> list[str]:
        """
        Validate that the configuration can be served.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        errors = []

        if self.bridge_transport == "mqtt":
            try:
                validate_broker_url(self.mqtt_broker_url)
            except ValueError as e:
                errors.append(f"MQTT_BROKER_URL: {e}")

            if self.mqtt_qos not in (0, 1, 2):
                errors.append("MQTT_QOS must be 0, 1 or 2")
            if self.mqtt_keepalive <= 0:
                errors.append("MQTT_KEEPALIVE must be positive")
            if self.mqtt_reconnect_max_delay < self.mqtt_reconnect_min_delay:
                errors.append("MQTT_RECONNECT_MAX_DELAY must be >= MQTT_RECONNECT_MIN_DELAY")
        elif not self.redis_url:
            errors.append("REDIS_URL is required when BRIDGE_TRANSPORT=redis")

        try:
            validate_topic_filter(self.mqtt_topic_pattern)
        except ValueError as e:
            errors.append(f"MQTT_TOPIC_PATTERN: {e}")

        try:
            validate_port(self.ws_port)
        except ValueError as e:
            errors.append(f"WS_PORT: {e}")

        if self.ws_max_total_connections < 0:
            errors.append("WS_MAX_TOTAL_CONNECTIONS must be >= 0")
        if self.ws_broadcast_batch_size < 1:
            errors.append("WS_BROADCAST_BATCH_SIZE must be >= 1")
        if self.ws_send_timeout <= 0:
            errors.append("WS_SEND_TIMEOUT must be positive")
        if self.bridge_event_queue_size < 1:
            errors.append("BRIDGE_EVENT_QUEUE_SIZE must be >= 1")

        if self.environment == "production" and self.debug:
            errors.append("DEBUG must be False in production")

        return errors

    def require_valid(self) -> "Settings":
        """Raise ConfigError if validate_startup() reports any problem."""
        errors = self.validate_startup()
        if errors:
            raise ConfigError(errors)
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()

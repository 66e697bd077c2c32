"""
Bridge error taxonomy.

Usage:
    from bridge_shared.utils.exceptions import ParseError, ConfigError

    raise ParseError("payload is not valid JSON", topic=topic)
    raise ConfigError(["MQTT_BROKER_URL is required"])

Only ConfigError is allowed to stop the process. Every other error is
handled where it happens (logged, counted, dropped).
"""

from typing import Any


class BridgeError(Exception):
    """
    Base exception for the telemetry bridge.

    Carries a human-readable detail and free-form context for
    structured logging.
    """

    def __init__(self, detail: str, **context: Any):
        self.detail = detail
        self.context = context
        super().__init__(detail)

    def log_context(self) -> dict[str, Any]:
        """Keyword arguments suitable for the structured logger."""
        return {"error": self.detail, "error_type": type(self).__name__, **self.context}


# =============================================================================
# Startup Errors
# =============================================================================


class ConfigError(BridgeError):
    """
    Invalid or missing configuration.

    Usage:
        raise ConfigError(["MQTT_BROKER_URL is required", "WS_PORT out of range"])
    """

    def __init__(self, problems: list[str] | str, **context: Any):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        detail = "Invalid configuration: " + "; ".join(self.problems)
        super().__init__(detail, **context)


# =============================================================================
# Runtime Errors (never fatal)
# =============================================================================


class SubscriptionError(BridgeError):
    """Broker rejected or failed the topic subscription."""

    def __init__(self, pattern: str, reason: str, **context: Any):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Subscription to {pattern!r} failed: {reason}", pattern=pattern, **context)


class ParseError(BridgeError, ValueError):
    """Inbound payload could not be decoded. Isolated to one message."""

    def __init__(self, detail: str, topic: str | None = None, **context: Any):
        self.topic = topic
        super().__init__(detail, topic=topic, **context)


class DeliveryError(BridgeError):
    """Write to a single client connection failed."""

    def __init__(self, connection_id: str, cause: BaseException | None = None, **context: Any):
        self.connection_id = connection_id
        self.cause = cause
        reason = f"{type(cause).__name__}: {cause}" if cause is not None else "connection not open"
        super().__init__(
            f"Delivery to {connection_id} failed ({reason})",
            connection_id=connection_id,
            **context,
        )


class ListenerError(BridgeError):
    """Accepting or handshaking a client connection failed."""


class TransportError(BridgeError):
    """Inbound transport (broker/pubsub) failure."""

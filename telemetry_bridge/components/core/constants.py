"""
Telemetry Bridge Constants.

Centralized constants with documentation explaining the chosen values.
"""

from enum import IntEnum
from typing import Final

__all__ = [
    "WSCloseCode",
    "BridgeConstants",
    "MSG_PING_PLAIN",
    "MSG_PING_JSON",
    "MSG_PONG_JSON",
    "TOPIC_DELIMITER",
    "DEVICE_ID_SEGMENT",
]


class WSCloseCode(IntEnum):
    """
    WebSocket close codes used by the bridge.

    Standard codes (1000-1999) from RFC 6455.
    """

    NORMAL = 1000  # Normal closure
    GOING_AWAY = 1001  # Server shutting down
    POLICY_VIOLATION = 1008  # Generic policy violation
    SERVER_ERROR = 1011  # Unexpected server error
    SERVER_OVERLOADED = 1013  # Connection limit reached, try again later


class BridgeConstants:
    """
    Operational constants.

    These are defaults used when a value is not read from settings. At
    runtime the ConnectionManager and the adapters read
    `bridge_shared.config.settings.settings`, which takes precedence.
    """

    # ==========================================================================
    # Timeout Constants
    # ==========================================================================

    # WS_ACCEPT_TIMEOUT: 5 seconds
    # Handshake should complete within TCP timeout; rejects stuck handshakes.
    WS_ACCEPT_TIMEOUT: Final[float] = 5.0

    # WS_SEND_TIMEOUT: 5 seconds
    # Upper bound for a single client write. A client that cannot take a
    # frame within this window is treated as dead and removed.
    WS_SEND_TIMEOUT: Final[float] = 5.0

    # WS_CLOSE_TIMEOUT: 2 seconds
    # Bound for sending a close frame during shutdown.
    WS_CLOSE_TIMEOUT: Final[float] = 2.0

    # ==========================================================================
    # Broadcast Constants
    # ==========================================================================

    # BROADCAST_BATCH_SIZE: 50
    # Connections written concurrently per gather() batch.
    BROADCAST_BATCH_SIZE: Final[int] = 50

    # ==========================================================================
    # Inbound Pipeline Constants
    # ==========================================================================

    # EVENT_QUEUE_SIZE: 5000
    # Inbound events waiting for the relay. When full the oldest is dropped.
    EVENT_QUEUE_SIZE: Final[int] = 5000

    # DROP_LOG_INTERVAL: 100
    # Log a queue-overflow warning every N dropped events.
    DROP_LOG_INTERVAL: Final[int] = 100

    # SUBSCRIBER_POLL_TIMEOUT: 1 second
    # Redis get_message() wait, keeps the loop responsive to cancellation.
    SUBSCRIBER_POLL_TIMEOUT: Final[float] = 1.0

    # SUBSCRIBER_STABLE_PERIOD: 30 seconds
    # A subscription that lasted this long (or delivered a message) counts
    # as healthy, so the next drop starts a fresh reconnect budget.
    SUBSCRIBER_STABLE_PERIOD: Final[float] = 30.0

    # ==========================================================================
    # Logging Constants
    # ==========================================================================

    # MAX_LOGGED_PAYLOAD: 200 characters
    # Truncation length for payload snippets in parse-failure logs.
    MAX_LOGGED_PAYLOAD: Final[int] = 200


# =============================================================================
# Topic layout
# =============================================================================

# Topics look like "<namespace>/<deviceId>/<channel>"
TOPIC_DELIMITER: Final[str] = "/"
DEVICE_ID_SEGMENT: Final[int] = 1


# =============================================================================
# Heartbeat Message Constants
# =============================================================================

MSG_PING_PLAIN: Final[str] = "ping"
MSG_PING_JSON: Final[str] = '{"type":"ping"}'
MSG_PONG_JSON: Final[str] = '{"type":"pong"}'

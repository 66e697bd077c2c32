"""
Core components: constants shared across the bridge.
"""

from telemetry_bridge.components.core.constants import (
    BridgeConstants,
    MSG_PING_JSON,
    MSG_PING_PLAIN,
    MSG_PONG_JSON,
    WSCloseCode,
)

__all__ = [
    "BridgeConstants",
    "MSG_PING_JSON",
    "MSG_PING_PLAIN",
    "MSG_PONG_JSON",
    "WSCloseCode",
]

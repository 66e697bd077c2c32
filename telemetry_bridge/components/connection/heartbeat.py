"""
Client heartbeat handling.

Clients may send "ping" or {"type":"ping"} to keep intermediaries from
idling the socket out; the bridge answers {"type":"pong"}.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bridge_shared.config.logging import get_logger
from telemetry_bridge.components.core.constants import MSG_PING_JSON, MSG_PING_PLAIN, MSG_PONG_JSON

if TYPE_CHECKING:
    from telemetry_bridge.core.connection.connection import Connection

logger = get_logger(__name__)


def is_heartbeat(data: str) -> bool:
    return data.strip() in (MSG_PING_PLAIN, MSG_PING_JSON)


async def handle_heartbeat(conn: "Connection", data: str) -> bool:
    """
    Respond to ping messages with pong.

    Returns:
        True if message was a heartbeat and was handled, False otherwise.
    """
    if not is_heartbeat(data):
        return False
    try:
        await conn.send_text(MSG_PONG_JSON)
    except (ConnectionError, RuntimeError, OSError) as e:
        # Connection may have closed - caller will handle cleanup
        logger.debug("Heartbeat response failed", connection_id=conn.id, error=str(e))
    return True

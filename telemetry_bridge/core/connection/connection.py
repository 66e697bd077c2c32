"""
Client Connection handle.

Wraps a Starlette WebSocket with an id and a lifecycle state so the
registry and broadcaster never touch transport details directly.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from enum import Enum
from typing import TYPE_CHECKING

from starlette.websockets import WebSocketState

from telemetry_bridge.components.core.constants import BridgeConstants, WSCloseCode

if TYPE_CHECKING:
    from fastapi import WebSocket


def is_ws_connected(ws: "WebSocket") -> bool:
    """
    Check if WebSocket is in connected state before sending.

    Starlette WebSockets have limited state visibility:
    - CONNECTING: Initial state (not observable here)
    - CONNECTED: Active connection
    - DISCONNECTED: Closed connection

    Transitional states are not exposed, so connections may appear
    connected briefly after disconnect initiated.
    """
    return (
        ws.client_state == WebSocketState.CONNECTED
        and ws.application_state == WebSocketState.CONNECTED
    )


class ConnectionState(str, Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class Connection:
    """
    Handle for one accepted client socket.

    Identity is the object itself: two handles for the same socket are
    distinct members of the registry. A handle is never reused once removed.
    """

    __slots__ = ("websocket", "id", "connected_at", "client", "_closing")

    def __init__(self, websocket: "WebSocket", connection_id: str | None = None) -> None:
        self.websocket = websocket
        self.id = connection_id or uuid.uuid4().hex[:12]
        self.connected_at = time.time()
        client = getattr(websocket, "client", None)
        self.client = f"{client.host}:{client.port}" if client else "unknown"
        self._closing = False

    def __repr__(self) -> str:
        return f"<Connection {self.id} {self.client} {self.state.value}>"

    @property
    def state(self) -> ConnectionState:
        if not is_ws_connected(self.websocket):
            return ConnectionState.CLOSED
        if self._closing:
            return ConnectionState.CLOSING
        return ConnectionState.OPEN

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    async def send_text(self, data: str) -> None:
        await self.websocket.send_text(data)

    async def close(
        self,
        code: int = WSCloseCode.NORMAL,
        reason: str = "",
        timeout: float = BridgeConstants.WS_CLOSE_TIMEOUT,
    ) -> None:
        """
        Send a close frame if the socket is still connected.

        Errors from an already-broken socket are ignored; the connection is
        considered closed either way.
        """
        if self._closing:
            return
        self._closing = True
        if not is_ws_connected(self.websocket):
            return
        try:
            await asyncio.wait_for(self.websocket.close(code=code, reason=reason), timeout=timeout)
        except (asyncio.TimeoutError, RuntimeError, ConnectionError, OSError):
            pass

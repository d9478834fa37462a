"""
WebSocket connection hub for the question relay.

Tracks open client sockets and broadcasts JSON messages of the form
``{"event": ..., "data": ...}`` to all of them.
"""

import asyncio
import json
import logging
from typing import Any

from aiohttp import web

logger = logging.getLogger(__name__)


def encode_message(event: str, data: Any) -> str:
    """Serialize a relay message."""
    return json.dumps({"event": event, "data": data})


def decode_message(raw: str) -> tuple[str, Any]:
    """
    Parse a client message.

    Raises:
        ValueError: If the text is not a JSON object with a string ``event``
    """
    message = json.loads(raw)
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        raise ValueError("Message must be an object with an 'event' string")
    return message["event"], message.get("data")


class ConnectionHub:
    """Set of live WebSocket connections."""

    def __init__(self) -> None:
        self._connections: set[web.WebSocketResponse] = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    async def connect(self, ws: web.WebSocketResponse) -> None:
        async with self._lock:
            self._connections.add(ws)
        logger.info(f"Client connected ({len(self._connections)} open)")

    async def disconnect(self, ws: web.WebSocketResponse) -> None:
        async with self._lock:
            self._connections.discard(ws)
        logger.info(f"Client disconnected ({len(self._connections)} open)")

    async def send(self, ws: web.WebSocketResponse, event: str, data: Any) -> bool:
        """Send to one connection. Returns False if the send failed."""
        try:
            await ws.send_str(encode_message(event, data))
            return True
        except (ConnectionError, RuntimeError) as e:
            logger.debug(f"Send failed: {e}")
            return False

    async def broadcast(self, event: str, data: Any) -> int:
        """
        Send a message to every open connection.

        Connections that fail or are already closed are dropped.

        Returns:
            Number of connections the message reached
        """
        async with self._lock:
            connections = list(self._connections)

        text = encode_message(event, data)
        delivered = 0
        dead = []
        for ws in connections:
            if ws.closed:
                dead.append(ws)
                continue
            try:
                await ws.send_str(text)
                delivered += 1
            except (ConnectionError, RuntimeError) as e:
                logger.debug(f"Broadcast to client failed: {e}")
                dead.append(ws)

        if dead:
            async with self._lock:
                for ws in dead:
                    self._connections.discard(ws)

        return delivered

    async def close_all(self) -> None:
        """Close every connection (server shutdown)."""
        async with self._lock:
            connections = list(self._connections)
            self._connections.clear()
        for ws in connections:
            await ws.close()

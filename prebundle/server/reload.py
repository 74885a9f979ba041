"""
Live Reload - Tells connected browsers to reload after a rebuild.

Builds finish on a worker thread; notify() hands the broadcast over
to the server's event loop.
"""

from __future__ import annotations
from typing import Any
import asyncio
import logging

logger = logging.getLogger(__name__)

RELOAD_MESSAGE = {"type": "ok", "data": {"reload": True}}


class ReloadHub:
    """
    Tracks live-reload WebSocket connections.

    Usage:
        hub = ReloadHub()
        hub.bind_loop(asyncio.get_running_loop())
        await hub.connect(websocket)
        ...
        hub.notify()   # from any thread
    """

    def __init__(self):
        self._connections: list[Any] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None):
        self._loop = loop

    async def connect(self, websocket):
        await websocket.accept()
        self._connections.append(websocket)

    def disconnect(self, websocket):
        if websocket in self._connections:
            self._connections.remove(websocket)

    async def broadcast(self, message: dict[str, Any]):
        """Send a message to every connection, dropping dead ones."""
        dead_connections = []
        for ws in list(self._connections):
            try:
                await ws.send_json(message)
            except Exception:
                dead_connections.append(ws)
        for ws in dead_connections:
            self.disconnect(ws)

    def notify(self, message: dict[str, Any] | None = None):
        """Thread-safe broadcast; a no-op until a loop is bound."""
        if self._loop is None or self._loop.is_closed():
            logger.debug("no event loop bound, dropping reload notification")
            return
        asyncio.run_coroutine_threadsafe(
            self.broadcast(message or RELOAD_MESSAGE), self._loop
        )

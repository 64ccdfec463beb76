"""Live push of change events to connected WebSocket viewers."""

from __future__ import annotations

import asyncio
import logging
from threading import Lock
from typing import Any, Dict, List, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class LiveBroadcaster:
    """
    Hub of currently attached WebSocket subscribers.

    ``broadcast`` may be called from any thread. Sends are scheduled onto the
    event loop that accepted the sockets and are not awaited; subscribers that
    attach later never see earlier events.
    """

    def __init__(self) -> None:
        self._connections: List[WebSocket] = []
        self._lock = Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        with self._lock:
            self._loop = asyncio.get_running_loop()
            self._connections.append(websocket)
            count = len(self._connections)
        logger.info(f"Live subscriber connected ({count} attached)")

    def disconnect(self, websocket: WebSocket) -> None:
        with self._lock:
            try:
                self._connections.remove(websocket)
            except ValueError:
                return
            count = len(self._connections)
        logger.info(f"Live subscriber disconnected ({count} attached)")

    def broadcast(self, event_name: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            targets = list(self._connections)
            loop = self._loop
        if not targets or loop is None or loop.is_closed():
            return

        message = {"event": event_name, "data": payload}
        asyncio.run_coroutine_threadsafe(self._deliver(targets, message), loop)

    async def _deliver(self, targets: List[WebSocket], message: Dict[str, Any]) -> None:
        for websocket in targets:
            try:
                await websocket.send_json(message)
            except Exception as exc:
                logger.warning(f"Dropping live subscriber after failed {message['event']} send: {exc}")
                self.disconnect(websocket)

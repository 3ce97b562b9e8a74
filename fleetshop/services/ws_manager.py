"""Planning board push channel: one channel per operator session."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

from fleetshop.schemas.ws_messages import WSMessage

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self):
        self._channels: dict[str, set[WebSocket]] = defaultdict(set)

    def subscribers(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    async def connect(self, channel: str, websocket: WebSocket):
        await websocket.accept()
        self._channels[channel].add(websocket)
        logger.debug("Subscribed to %s (%d open)", channel, self.subscribers(channel))

    def disconnect(self, channel: str, websocket: WebSocket):
        sockets = self._channels.get(channel)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._channels[channel]

    async def publish(self, channel: str, message: WSMessage) -> int:
        """Push ``message`` to every socket on ``channel``; returns how many got it.

        Sockets that fail to receive are unsubscribed.
        """
        sockets = list(self._channels.get(channel, ()))
        if not sockets:
            return 0
        payload = message.model_dump_json()
        results = await asyncio.gather(
            *(ws.send_text(payload) for ws in sockets), return_exceptions=True,
        )
        delivered = 0
        for ws, result in zip(sockets, results):
            if isinstance(result, Exception):
                logger.debug("Dropping websocket on %s: %s", channel, result)
                self.disconnect(channel, ws)
            else:
                delivered += 1
        return delivered


ws_manager = ConnectionManager()

"""
WebSocket Subscriber

Adapts a FastAPI WebSocket to BaseConnection. Frames queued before the
handshake completes wait for it, so a terminal can be subscribed before it
is accepted and never misses an event published in between.
"""

import asyncio
import logging
import uuid

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from lan_relay.services.broadcast.base import BaseConnection, Payload

logger = logging.getLogger(__name__)


class WebSocketConnection(BaseConnection):
    """A POS terminal connected over /ws."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._id = f"pos-{uuid.uuid4().hex[:8]}"
        self._opened = asyncio.Event()

    @property
    def connection_id(self) -> str:
        return self._id

    async def accept(self) -> None:
        await self.websocket.accept()
        self._opened.set()

    async def send(self, payload: Payload) -> None:
        await self._opened.wait()
        if isinstance(payload, bytes):
            await self.websocket.send_bytes(payload)
        else:
            await self.websocket.send_text(payload)

    async def close(self, code: int = 1000) -> None:
        if self.websocket.application_state == WebSocketState.DISCONNECTED:
            return
        try:
            await self.websocket.close(code=code)
        except RuntimeError as e:
            # Peer already gone
            logger.debug(f"{self._id}: close after disconnect ignored ({e})")

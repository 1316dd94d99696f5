"""ClientHandle backed by a FastAPI / Starlette WebSocket."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from .interface import ClientHandle

logger = logging.getLogger(__name__)


class WebSocketClientHandle(ClientHandle):
    """Wraps one accepted WebSocket connection.

    The transport endpoint owns the socket and calls mark_closed() when the
    receive loop ends. Sends after that, or sends that fail or exceed
    `send_timeout`, return False.
    """

    def __init__(self, websocket: WebSocket, send_timeout: float = 2.0) -> None:
        self._websocket = websocket
        self._send_timeout = send_timeout
        self._client_id = uuid.uuid4().hex
        self._closed = False

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    def mark_closed(self) -> None:
        self._closed = True

    async def send(self, message: dict) -> bool:
        if not self.is_open:
            return False
        try:
            await asyncio.wait_for(
                self._websocket.send_text(json.dumps(message)),
                timeout=self._send_timeout,
            )
        except asyncio.TimeoutError:
            logger.debug("Send to %s timed out", self._client_id)
            return False
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            # Starlette raises RuntimeError once the socket has been closed.
            logger.debug("Send to %s failed: %s", self._client_id, e)
            self._closed = True
            return False
        return True

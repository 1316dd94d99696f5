"""WebSocket endpoint for order book subscriptions."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .client import WebSocketClientHandle
from .coordinator import RelayCoordinator

logger = logging.getLogger(__name__)


def create_relay_router(coordinator: RelayCoordinator, send_timeout: float = 2.0) -> APIRouter:
    """Create the relay router with a reference to the coordinator.

    This factory pattern lets us inject the coordinator without globals.
    """
    router = APIRouter(tags=["relay"])

    @router.websocket("/")
    async def relay_socket(websocket: WebSocket) -> None:
        """Subscription channel.

        Clients send {"action": "subscribe" | "unsubscribe", "symbol": "<instrument>"}
        and receive {"symbol": ..., "orderBook": ...} on every tick of each
        subscribed instrument until they disconnect.
        """
        await websocket.accept()
        client = WebSocketClientHandle(websocket, send_timeout=send_timeout)
        peer = websocket.client.host if websocket.client else "unknown"
        logger.info("WebSocket client connected: %s (%s)", client.client_id, peer)

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes", b"")
                await coordinator.handle_message(client, raw)
        except WebSocketDisconnect:
            pass
        finally:
            client.mark_closed()
            coordinator.disconnect(client)

    @router.get("/api/relay/status")
    async def relay_status() -> dict:
        """Active topics with their subscriber counts and driver state."""
        return coordinator.status()

    return router

"""Tests for WebSocketClientHandle (mocked socket)."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketState

from orderbook_relay.relay.client import WebSocketClientHandle


def _make_socket() -> MagicMock:
    """Create a mock accepted WebSocket."""
    websocket = MagicMock()
    websocket.client_state = WebSocketState.CONNECTED
    websocket.application_state = WebSocketState.CONNECTED
    websocket.send_text = AsyncMock()
    return websocket


@pytest.mark.asyncio
class TestWebSocketClientHandle:
    """Unit tests for the WebSocket-backed client handle."""

    async def test_send_serializes_json(self):
        """Test that messages are sent as JSON text frames."""
        websocket = _make_socket()
        client = WebSocketClientHandle(websocket)

        assert await client.send({"symbol": "BTC-PERPETUAL", "orderBook": {"bids": []}})

        websocket.send_text.assert_awaited_once()
        sent = websocket.send_text.await_args.args[0]
        assert json.loads(sent) == {"symbol": "BTC-PERPETUAL", "orderBook": {"bids": []}}

    async def test_unique_ids(self):
        """Test that every handle gets its own identity."""
        a = WebSocketClientHandle(_make_socket())
        b = WebSocketClientHandle(_make_socket())
        assert a.client_id != b.client_id
        assert a != b

    async def test_mark_closed(self):
        """Test that a closed handle refuses to send."""
        websocket = _make_socket()
        client = WebSocketClientHandle(websocket)

        client.mark_closed()

        assert not client.is_open
        assert await client.send({"x": 1}) is False
        websocket.send_text.assert_not_awaited()

    async def test_disconnected_socket_is_not_open(self):
        """Test that socket state is part of liveness."""
        websocket = _make_socket()
        websocket.client_state = WebSocketState.DISCONNECTED
        client = WebSocketClientHandle(websocket)

        assert not client.is_open
        assert await client.send({"x": 1}) is False

    async def test_send_error_returns_false(self):
        """Test that a failing socket write is reported, not raised."""
        websocket = _make_socket()
        websocket.send_text.side_effect = RuntimeError("Cannot call send once a close message has been sent")
        client = WebSocketClientHandle(websocket)

        assert await client.send({"x": 1}) is False
        assert not client.is_open

    async def test_send_timeout_returns_false(self):
        """Test that a stalled socket write is abandoned after the timeout."""
        websocket = _make_socket()

        async def stall(_text):
            await asyncio.sleep(5.0)

        websocket.send_text.side_effect = stall
        client = WebSocketClientHandle(websocket, send_timeout=0.01)

        assert await client.send({"x": 1}) is False

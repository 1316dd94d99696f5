"""Data models for relay messages."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

SUBSCRIBE = "subscribe"
UNSUBSCRIBE = "unsubscribe"
ACTIONS = frozenset({SUBSCRIBE, UNSUBSCRIBE})

INVALID_FORMAT = "Invalid message format"
INVALID_REQUEST = "Invalid action or missing symbol"


class InvalidRequest(ValueError):
    """Inbound message rejected before it reaches the registry."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    def to_dict(self) -> dict:
        return {"error": self.reason}


@dataclass(frozen=True, slots=True)
class RelayRequest:
    """A validated inbound request from a client."""

    action: str
    symbol: str

    @classmethod
    def parse(cls, raw: str | bytes) -> RelayRequest:
        """Parse a raw text frame. Raises InvalidRequest on any malformed input.

        The symbol is passed through as-is: topics are opaque to the relay.
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            raise InvalidRequest(INVALID_FORMAT) from None

        if not isinstance(data, dict):
            raise InvalidRequest(INVALID_FORMAT)

        action = data.get("action")
        symbol = data.get("symbol")
        if action not in ACTIONS or not isinstance(symbol, str) or not symbol:
            raise InvalidRequest(INVALID_REQUEST)
        return cls(action=action, symbol=symbol)


@dataclass(frozen=True, slots=True)
class SnapshotMessage:
    """One outbound delivery: a topic and its snapshot, unmodified."""

    symbol: str
    order_book: Any

    def to_dict(self) -> dict:
        """Serialize for JSON / WebSocket transmission."""
        return {"symbol": self.symbol, "orderBook": self.order_book}

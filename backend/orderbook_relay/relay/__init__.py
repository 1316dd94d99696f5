"""Subscription registry and broadcast scheduler.

Public API:
    SubscriptionRegistry  - Thread-safe topic -> subscribers map
    BroadcastDriver       - Per-topic fetch-and-broadcast loop
    RelayCoordinator      - Owns the registry and starts/restarts drivers
    SnapshotSource        - Abstract interface for upstream data providers
    ClientHandle          - Abstract interface for one connected subscriber
    create_snapshot_source - Factory that selects simulator or Deribit
    create_relay_router   - FastAPI router factory for the WebSocket endpoint
"""

from .coordinator import RelayCoordinator, RelayInvariantError
from .driver import BroadcastDriver
from .factory import create_snapshot_source
from .interface import ClientHandle, SnapshotSource
from .models import RelayRequest, SnapshotMessage
from .registry import SubscriptionRegistry
from .websocket import create_relay_router

__all__ = [
    "SubscriptionRegistry",
    "BroadcastDriver",
    "RelayCoordinator",
    "RelayInvariantError",
    "SnapshotSource",
    "ClientHandle",
    "RelayRequest",
    "SnapshotMessage",
    "create_snapshot_source",
    "create_relay_router",
]

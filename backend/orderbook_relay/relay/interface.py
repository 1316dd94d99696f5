"""Abstract interfaces for snapshot sources and connected clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class SnapshotSource(ABC):
    """Contract for upstream data providers.

    The relay asks for one snapshot per topic per tick. Sources are stateless
    from the relay's point of view: a fetch may fail independently of any
    other, and failing never changes which topics are subscribed.

    Lifecycle:
        source = create_snapshot_source(settings)
        await source.start()
        book = await source.fetch("BTC-PERPETUAL")
        # ... app shutting down ...
        await source.close()
    """

    async def start(self) -> None:
        """Prepare the source (open sessions, authenticate). Default: no-op."""

    @abstractmethod
    async def fetch(self, topic: str) -> Any:
        """Return the current snapshot for a topic, or raise on failure."""

    @abstractmethod
    async def close(self) -> None:
        """Release resources. Safe to call multiple times."""


class ClientHandle(ABC):
    """The relay's view of one connected subscriber.

    Handles compare and hash by identity, so the same connection is never
    registered twice for one topic. The transport owns the connection;
    the registry only holds references.
    """

    @property
    @abstractmethod
    def client_id(self) -> str:
        """Opaque identity, unique per connection."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the underlying connection can still be written to."""

    @abstractmethod
    async def send(self, message: dict) -> bool:
        """Best-effort send. Returns False instead of raising when delivery fails.

        Implementations must bound the time spent here so one slow client
        cannot stall a broadcast tick.
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.client_id}>"

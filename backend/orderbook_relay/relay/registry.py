"""Thread-safe registry of topic subscriptions."""

from __future__ import annotations

from threading import Lock

from .interface import ClientHandle


class SubscriptionRegistry:
    """Thread-safe mapping of topic -> set of subscribed client handles.

    Writers: connection tasks (subscribe, unsubscribe, disconnect).
    Readers: broadcast drivers (one snapshot per tick), the status endpoint.

    A topic key exists only while it has at least one subscriber. The registry
    never performs I/O and never starts or stops drivers; it only reports the
    first-subscriber and now-empty transitions for the coordinator to act on.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[ClientHandle]] = {}
        self._topics_by_client: dict[ClientHandle, set[str]] = {}
        self._lock = Lock()

    def subscribe(self, topic: str, client: ClientHandle) -> bool:
        """Add a client to a topic. Returns True if it is the topic's first subscriber.

        Re-subscribing an already-subscribed client is a no-op returning False.
        """
        with self._lock:
            clients = self._subscribers.get(topic)
            first = clients is None
            if first:
                clients = self._subscribers[topic] = set()
            elif client in clients:
                return False
            clients.add(client)
            self._topics_by_client.setdefault(client, set()).add(topic)
            return first

    def unsubscribe(self, topic: str, client: ClientHandle) -> bool:
        """Remove a client from a topic. Returns True if the topic is now empty.

        No-op (returns False) if the client was not subscribed.
        """
        with self._lock:
            return self._remove(topic, client)

    def disconnect_all(self, client: ClientHandle) -> list[str]:
        """Remove a client from every topic. Returns the topics left empty."""
        with self._lock:
            topics = self._topics_by_client.get(client, set())
            return [topic for topic in list(topics) if self._remove(topic, client)]

    def snapshot_subscribers(self, topic: str) -> frozenset[ClientHandle]:
        """Current recipients for one broadcast pass. Returns a copy."""
        with self._lock:
            return frozenset(self._subscribers.get(topic, ()))

    def has_subscribers(self, topic: str) -> bool:
        with self._lock:
            return topic in self._subscribers

    def topics_for(self, client: ClientHandle) -> set[str]:
        """Topics a client is subscribed to. Returns a copy."""
        with self._lock:
            return set(self._topics_by_client.get(client, ()))

    def subscriber_counts(self) -> dict[str, int]:
        """Snapshot of topic -> number of subscribers."""
        with self._lock:
            return {topic: len(clients) for topic, clients in self._subscribers.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def __contains__(self, topic: str) -> bool:
        with self._lock:
            return topic in self._subscribers

    def _remove(self, topic: str, client: ClientHandle) -> bool:
        # Caller holds the lock.
        clients = self._subscribers.get(topic)
        if clients is None or client not in clients:
            return False
        clients.discard(client)

        topics = self._topics_by_client.get(client)
        if topics is not None:
            topics.discard(topic)
            if not topics:
                del self._topics_by_client[client]

        if clients:
            return False
        del self._subscribers[topic]
        return True

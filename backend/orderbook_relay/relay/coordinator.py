"""Relay coordinator: subscription events in, broadcast drivers out."""

from __future__ import annotations

import asyncio
import logging

from .driver import BroadcastDriver
from .interface import ClientHandle, SnapshotSource
from .models import SUBSCRIBE, InvalidRequest, RelayRequest
from .registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class RelayInvariantError(RuntimeError):
    """Topic lifecycle bookkeeping is inconsistent. Always a coordinator bug."""


class RelayCoordinator:
    """Owns the subscription registry and one broadcast driver per active topic.

    Per topic the coordinator cycles NoDriver -> DriverRunning -> NoDriver any
    number of times:

      - subscribe starts a driver when the topic has none running;
      - unsubscribe and disconnect only touch the registry, and the driver
        exits by itself once it sees the topic empty;
      - when a driver's task finishes, the coordinator forgets it and, if the
        topic still has subscribers (the driver crashed), starts a fresh one
        whose first tick waits one interval.
    """

    def __init__(
        self,
        source: SnapshotSource,
        interval: float = 5.0,
        send_timeout: float = 2.0,
    ) -> None:
        self._source = source
        self._interval = interval
        self._send_timeout = send_timeout
        self._registry = SubscriptionRegistry()
        self._drivers: dict[str, BroadcastDriver] = {}
        self._closed = False

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    def driver_for(self, topic: str) -> BroadcastDriver | None:
        return self._drivers.get(topic)

    def is_driving(self, topic: str) -> bool:
        driver = self._drivers.get(topic)
        return driver is not None and driver.running

    # --- Transport events ---

    async def handle_message(self, client: ClientHandle, raw: str | bytes) -> None:
        """Validate one inbound frame and apply it. Bad requests get an error reply."""
        try:
            request = RelayRequest.parse(raw)
        except InvalidRequest as e:
            logger.warning("Rejected message from %r: %s", client, e.reason)
            await client.send(e.to_dict())
            return

        if request.action == SUBSCRIBE:
            self.subscribe(request.symbol, client)
        else:
            self.unsubscribe(request.symbol, client)

    def subscribe(self, topic: str, client: ClientHandle) -> None:
        first = self._registry.subscribe(topic, client)
        logger.info("Client %s subscribed to %s%s", client.client_id, topic, " (first)" if first else "")
        if not self.is_driving(topic):
            self._start_driver(topic)

    def unsubscribe(self, topic: str, client: ClientHandle) -> None:
        if self._registry.unsubscribe(topic, client):
            logger.info("Last subscriber left %s; driver will stop on its next check", topic)

    def disconnect(self, client: ClientHandle) -> None:
        emptied = self._registry.disconnect_all(client)
        logger.info("Client %s disconnected", client.client_id)
        for topic in emptied:
            logger.info("Last subscriber left %s; driver will stop on its next check", topic)

    # --- Lifecycle ---

    async def stop(self) -> None:
        """Cancel every driver and refuse to start new ones. Safe to call multiple times."""
        self._closed = True
        drivers = list(self._drivers.values())
        self._drivers.clear()
        await asyncio.gather(*(driver.stop() for driver in drivers))
        if drivers:
            logger.info("Relay stopped %d broadcast drivers", len(drivers))

    def check_invariants(self) -> None:
        """Raise RelayInvariantError if any subscribed topic lacks a running driver."""
        for topic, driver in self._drivers.items():
            if driver.topic != topic:
                raise RelayInvariantError(f"Driver for {driver.topic} registered under {topic}")
        if self._closed:
            return
        for topic in self._registry.subscriber_counts():
            if not self.is_driving(topic):
                raise RelayInvariantError(f"Topic {topic} has subscribers but no running driver")

    def status(self) -> dict:
        topics = {}
        for topic, count in self._registry.subscriber_counts().items():
            driver = self._drivers.get(topic)
            topics[topic] = {
                "subscribers": count,
                "driver_running": driver is not None and driver.running,
                "ticks": driver.ticks if driver else 0,
            }
        return {"topics": topics}

    # --- Internal ---

    def _start_driver(self, topic: str, initial_delay: float = 0.0) -> None:
        if self._closed:
            logger.warning("Relay is stopped; not starting a driver for %s", topic)
            return
        if self.is_driving(topic):
            raise RelayInvariantError(f"A broadcast driver is already running for {topic}")

        driver = BroadcastDriver(
            topic,
            self._source,
            self._registry,
            interval=self._interval,
            send_timeout=self._send_timeout,
            initial_delay=initial_delay,
        )
        self._drivers[topic] = driver
        task = driver.start()
        task.add_done_callback(lambda _task: self._on_driver_done(driver))

    def _on_driver_done(self, driver: BroadcastDriver) -> None:
        task = driver.task
        if task is not None and not task.cancelled() and task.exception() is not None:
            logger.error(
                "Broadcast driver for %s crashed",
                driver.topic,
                exc_info=task.exception(),
            )

        # A newer driver may already own the topic if a subscribe landed
        # between this driver's exit and this callback.
        if self._drivers.get(driver.topic) is driver:
            del self._drivers[driver.topic]

        if self._closed or self.is_driving(driver.topic):
            return
        if self._registry.has_subscribers(driver.topic):
            # Only reached when a driver died with subscribers left.
            logger.warning("Restarting broadcast driver for %s in %.1fs", driver.topic, self._interval)
            self._start_driver(driver.topic, initial_delay=self._interval)

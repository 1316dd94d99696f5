"""Per-topic fetch-and-broadcast loop."""

from __future__ import annotations

import asyncio
import logging

from .interface import ClientHandle, SnapshotSource
from .models import SnapshotMessage
from .registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class BroadcastDriver:
    """Fetches snapshots for one topic and pushes them to its subscribers.

    Each tick: fetch a snapshot, deliver it to whoever is subscribed right
    now, sleep `interval` seconds, then re-check the registry. The driver
    exits on its own once the topic has no subscribers; it never needs to be
    told to stop during normal operation.

    With `initial_delay` set, the first tick waits that long (and re-checks
    the registry) instead of running immediately.

    A driver only references the registry. The coordinator that creates it
    owns both and watches the driver's task to learn when it has stopped.
    """

    def __init__(
        self,
        topic: str,
        source: SnapshotSource,
        registry: SubscriptionRegistry,
        interval: float = 5.0,
        send_timeout: float = 2.0,
        initial_delay: float = 0.0,
    ) -> None:
        self.topic = topic
        self._source = source
        self._registry = registry
        self._interval = interval
        self._send_timeout = send_timeout
        self._initial_delay = initial_delay
        self._task: asyncio.Task | None = None
        self._running = False
        self.ticks = 0
        self.fetch_failures = 0

    @property
    def running(self) -> bool:
        """True from start() until the loop decides to exit (or is cancelled)."""
        return self._running

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def start(self) -> asyncio.Task:
        """Schedule the loop on the running event loop. Must be called once."""
        if self._task is not None:
            raise RuntimeError(f"Driver for {self.topic} already started")
        self._running = True
        self._task = asyncio.create_task(self._run_loop(), name=f"broadcast-{self.topic}")
        logger.info("Broadcast driver started for %s (%.1fs interval)", self.topic, self._interval)
        return self._task

    async def stop(self) -> None:
        """Cancel the loop. Only used on shutdown. Safe to call multiple times."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    # --- Internal ---

    async def _run_loop(self) -> None:
        delay = self._initial_delay
        try:
            while True:
                if delay:
                    await asyncio.sleep(delay)
                    # Live registry state, checked with no await before the exit,
                    # so a subscriber that arrives first is always seen.
                    if not self._registry.has_subscribers(self.topic):
                        self._running = False
                        break
                await self._tick()
                delay = self._interval
        finally:
            self._running = False
        logger.info("Broadcast driver for %s stopped after %d ticks", self.topic, self.ticks)

    async def _tick(self) -> None:
        """One fetch-and-deliver cycle. Never raises for fetch or send failures."""
        self.ticks += 1
        try:
            order_book = await self._source.fetch(self.topic)
        except Exception as e:
            self.fetch_failures += 1
            logger.error("Snapshot fetch failed for %s: %s", self.topic, e)
            # Retried on the next tick after the normal interval.
            return

        recipients = self._registry.snapshot_subscribers(self.topic)
        if not recipients:
            return

        message = SnapshotMessage(symbol=self.topic, order_book=order_book).to_dict()
        results = await asyncio.gather(*(self._deliver(client, message) for client in recipients))
        logger.debug(
            "Tick %d for %s: delivered to %d/%d clients",
            self.ticks,
            self.topic,
            sum(results),
            len(recipients),
        )

    async def _deliver(self, client: ClientHandle, message: dict) -> bool:
        try:
            if not client.is_open:
                return False
            return await asyncio.wait_for(client.send(message), timeout=self._send_timeout)
        except asyncio.TimeoutError:
            logger.debug("Send to %r timed out on %s", client, self.topic)
        except Exception as e:
            logger.debug("Send to %r failed on %s: %s", client, self.topic, e)
        return False

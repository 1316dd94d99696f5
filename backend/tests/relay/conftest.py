"""Fixtures for relay tests.

Provides in-memory stand-ins for the two collaborators the relay core talks
to: a snapshot source that counts fetches, and client handles that record
what they were sent.
"""

import asyncio
import itertools

import pytest

from orderbook_relay.relay.interface import ClientHandle, SnapshotSource


class FakeSource(SnapshotSource):
    """Returns {"topic": ..., "seq": n}; seq increases per fetch across all topics."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.fail = False
        self.closed = False
        self._seq = itertools.count(1)

    async def fetch(self, topic: str) -> dict:
        self.calls.append(topic)
        if self.fail:
            raise ConnectionError("upstream unavailable")
        return {"topic": topic, "seq": next(self._seq)}

    async def close(self) -> None:
        self.closed = True

    def fetches(self, topic: str) -> int:
        return self.calls.count(topic)


class FakeClient(ClientHandle):
    """Records every message it is sent. Can be closed, made to fail, or made slow.

    Setting `liveness_error` makes the is_open check itself raise.
    """

    _ids = itertools.count(1)

    def __init__(self, name: str | None = None) -> None:
        self._client_id = name or f"client-{next(self._ids)}"
        self.open = True
        self.fail = False
        self.delay = 0.0
        self.liveness_error: Exception | None = None
        self.received: list[dict] = []

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def is_open(self) -> bool:
        if self.liveness_error is not None:
            raise self.liveness_error
        return self.open

    async def send(self, message: dict) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.received.append(message)
        return True

    @property
    def books(self) -> list[dict]:
        """Delivered snapshots (error replies excluded)."""
        return [m["orderBook"] for m in self.received if "orderBook" in m]


async def _wait_until(predicate, timeout: float = 1.0, step: float = 0.005) -> None:
    """Poll `predicate` until it is true; fail the test on timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(step)


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def make_client():
    return FakeClient


@pytest.fixture
def wait_until():
    return _wait_until

"""GBM-driven synthetic order books for running the relay offline."""

from __future__ import annotations

import logging
import math
import time
from threading import Lock

import numpy as np

from .interface import SnapshotSource

logger = logging.getLogger(__name__)

# Starting mid prices for common Deribit instruments
SEED_PRICES: dict[str, float] = {
    "BTC-PERPETUAL": 65000.0,
    "ETH-PERPETUAL": 3200.0,
    "SOL-PERPETUAL": 150.0,
}
DEFAULT_SEED_RANGE = (10.0, 1000.0)


class OrderBookSimulator:
    """Geometric Brownian Motion mid price per instrument, plus a synthetic book.

    Math:
        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    dt is one broadcast interval as a fraction of a (24/7) year, since crypto
    perpetuals trade continuously.
    """

    SECONDS_PER_YEAR = 365 * 24 * 3600

    def __init__(
        self,
        interval: float = 5.0,
        sigma: float = 0.6,
        mu: float = 0.0,
        tick_size: float = 0.5,
        seed: int | None = None,
    ) -> None:
        self._dt = interval / self.SECONDS_PER_YEAR
        self._sigma = sigma
        self._mu = mu
        self._tick_size = tick_size
        self._rng = np.random.default_rng(seed)
        self._prices: dict[str, float] = {}
        self._lock = Lock()

    def step(self, instrument: str) -> float:
        """Advance one instrument by one time step. Returns the new mid price."""
        with self._lock:
            price = self._prices.get(instrument)
            if price is None:
                low, high = DEFAULT_SEED_RANGE
                price = SEED_PRICES.get(instrument, float(self._rng.uniform(low, high)))
            else:
                z = self._rng.standard_normal()
                drift = (self._mu - 0.5 * self._sigma**2) * self._dt
                diffusion = self._sigma * math.sqrt(self._dt) * z
                price *= math.exp(drift + diffusion)
            self._prices[instrument] = price
            return price

    def order_book(self, instrument: str, depth: int = 5) -> dict:
        """Build a book shaped like Deribit's public/get_order_book result."""
        mid = self.step(instrument)
        # Tick size scales with price so cheap instruments keep a sane spread.
        tick = max(self._tick_size * mid / 65000.0, 0.0001)
        amounts = np.round(self._rng.uniform(10, 5000, size=(2, depth)), 0)

        bids = [[round(mid - tick * (i + 1), 4), float(amounts[0, i])] for i in range(depth)]
        asks = [[round(mid + tick * (i + 1), 4), float(amounts[1, i])] for i in range(depth)]
        return {
            "instrument_name": instrument,
            "timestamp": int(time.time() * 1000),
            "state": "open",
            "bids": bids,
            "asks": asks,
            "best_bid_price": bids[0][0] if bids else None,
            "best_ask_price": asks[0][0] if asks else None,
            "mark_price": round(mid, 4),
            "last_price": round(mid, 4),
        }


class SimulatedSnapshotSource(SnapshotSource):
    """SnapshotSource backed by OrderBookSimulator. Never fails."""

    def __init__(self, depth: int = 5, interval: float = 5.0, seed: int | None = None) -> None:
        self._depth = depth
        self._sim = OrderBookSimulator(interval=interval, seed=seed)

    async def fetch(self, topic: str) -> dict:
        return self._sim.order_book(topic, depth=self._depth)

    async def close(self) -> None:
        logger.info("Simulated snapshot source closed")

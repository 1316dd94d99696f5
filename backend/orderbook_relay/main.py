"""
FastAPI application for the order book relay.

- WebSocket: /  (subscribe / unsubscribe to instruments)
- API: /api/relay/status
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import RelaySettings, get_settings
from .relay import RelayCoordinator, SnapshotSource, create_relay_router, create_snapshot_source

logger = logging.getLogger(__name__)


def setup_logging(settings: RelaySettings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    settings: RelaySettings | None = None,
    source: SnapshotSource | None = None,
) -> FastAPI:
    """Build the app. Pass `source` to bypass the settings-driven factory (tests)."""
    settings = settings or get_settings()
    source = source or create_snapshot_source(settings)
    coordinator = RelayCoordinator(
        source,
        interval=settings.broadcast_interval,
        send_timeout=settings.send_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await source.start()
        logger.info("Order book relay ready (%.1fs broadcast interval)", settings.broadcast_interval)

        yield

        await coordinator.stop()
        await source.close()

    app = FastAPI(
        title="Order Book Relay",
        description="Relays periodic order book snapshots to WebSocket subscribers",
        lifespan=lifespan,
    )
    app.state.coordinator = coordinator
    app.include_router(create_relay_router(coordinator, send_timeout=settings.send_timeout))
    return app


def run() -> None:
    """Console entry point: serve the relay with uvicorn."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()

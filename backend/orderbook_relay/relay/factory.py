"""Factory for creating snapshot sources."""

from __future__ import annotations

import logging

from ..config import RelaySettings
from .interface import SnapshotSource

logger = logging.getLogger(__name__)


def create_snapshot_source(settings: RelaySettings) -> SnapshotSource:
    """Create the appropriate snapshot source for the given settings.

    - Deribit client id and secret both set → DeribitSnapshotSource (real order books)
    - Otherwise → SimulatedSnapshotSource (GBM simulation)

    Returns an unstarted source. Caller must await source.start().
    """
    if settings.has_credentials:
        from .deribit_client import DeribitClient, DeribitSnapshotSource

        logger.info("Snapshot source: Deribit API at %s", settings.deribit_base_url)
        client = DeribitClient(
            base_url=settings.deribit_base_url,
            client_id=settings.deribit_client_id.strip(),
            client_secret=settings.deribit_client_secret.strip(),
            timeout=settings.http_timeout,
        )
        return DeribitSnapshotSource(client, depth=settings.order_book_depth)
    else:
        from .simulator import SimulatedSnapshotSource

        logger.info("Snapshot source: GBM order book simulator")
        return SimulatedSnapshotSource(
            depth=settings.order_book_depth,
            interval=settings.broadcast_interval,
        )

"""Tests for snapshot source factory and settings."""

import os
from unittest.mock import patch

from orderbook_relay.config import RelaySettings
from orderbook_relay.relay.deribit_client import DeribitSnapshotSource
from orderbook_relay.relay.factory import create_snapshot_source
from orderbook_relay.relay.simulator import SimulatedSnapshotSource


def _settings(**env) -> RelaySettings:
    with patch.dict(os.environ, env, clear=True):
        return RelaySettings(_env_file=None)


class TestFactory:
    """Tests for create_snapshot_source factory."""

    def test_creates_simulator_when_no_credentials(self):
        """Test that simulator is created when no Deribit credentials are set."""
        source = create_snapshot_source(_settings())
        assert isinstance(source, SimulatedSnapshotSource)

    def test_creates_simulator_when_secret_missing(self):
        """Test that a client id alone is not enough for the real source."""
        source = create_snapshot_source(_settings(DERIBIT_CLIENT_ID="abc"))
        assert isinstance(source, SimulatedSnapshotSource)

    def test_creates_simulator_when_credentials_whitespace(self):
        """Test that whitespace-only credentials select the simulator."""
        source = create_snapshot_source(_settings(DERIBIT_CLIENT_ID="  ", DERIBIT_CLIENT_SECRET="  "))
        assert isinstance(source, SimulatedSnapshotSource)

    def test_creates_deribit_when_credentials_set(self):
        """Test that the Deribit source is created when credentials are set."""
        source = create_snapshot_source(
            _settings(DERIBIT_CLIENT_ID="abc", DERIBIT_CLIENT_SECRET="xyz")
        )
        assert isinstance(source, DeribitSnapshotSource)
        assert source.client._client_id == "abc"
        assert source.client._client_secret == "xyz"
        assert source._depth == 5

    def test_depth_is_passed_through(self):
        """Test that the configured depth reaches the source."""
        source = create_snapshot_source(_settings(ORDER_BOOK_DEPTH="10"))
        assert source._depth == 10


class TestRelaySettings:
    """Tests for environment-driven settings."""

    def test_defaults(self):
        """Test defaults match the public testnet and a 5s interval."""
        settings = _settings()
        assert settings.deribit_base_url == "https://test.deribit.com"
        assert settings.broadcast_interval == 5.0
        assert settings.port == 8080
        assert not settings.has_credentials

    def test_env_overrides(self):
        """Test that environment variables override defaults."""
        settings = _settings(BROADCAST_INTERVAL="0.5", PORT="9000", LOG_LEVEL="debug")
        assert settings.broadcast_interval == 0.5
        assert settings.port == 9000
        assert settings.log_level == "debug"

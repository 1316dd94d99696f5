"""Relay settings, read from environment variables (e.g. DERIBIT_CLIENT_ID) or a .env file.

Blank Deribit credentials select the built-in simulator instead of the live
API. get_settings() caches one RelaySettings per process.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RelaySettings(BaseSettings):
    """
    Runtime configuration loaded from environment variables or a .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    deribit_base_url: str = Field("https://test.deribit.com", description="Deribit REST endpoint")
    deribit_client_id: str = Field("", description="API client id; blank selects the simulator")
    deribit_client_secret: str = Field("", description="API client secret")
    order_book_depth: int = Field(5, ge=1, description="Levels per side in each snapshot")

    broadcast_interval: float = Field(5.0, gt=0, description="Seconds between ticks per topic")
    send_timeout: float = Field(2.0, gt=0, description="Upper bound on one client send, in seconds")
    http_timeout: float = Field(10.0, gt=0, description="Upstream HTTP timeout, in seconds")

    host: str = Field("0.0.0.0", description="Bind address")
    port: int = Field(8080, description="Bind port")
    log_level: str = Field("INFO", description="Root log level")

    @property
    def has_credentials(self) -> bool:
        return bool(self.deribit_client_id.strip() and self.deribit_client_secret.strip())


@lru_cache
def get_settings() -> RelaySettings:
    """
    Cached accessor so the app and the CLI entry point share one Settings instance.
    """

    return RelaySettings()

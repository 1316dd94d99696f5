"""Deribit API v2 REST client and the snapshot source built on it.

The relay only calls authenticate() and get_order_book(). The order methods
(buy, modify_order, cancel_order, get_positions) are a library surface for
callers that hold a DeribitClient directly; no relay message reaches them.

Error payloads are read from the response body whatever the HTTP status, so
a rejected auth request surfaces as DeribitAuthError with Deribit's message.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .interface import SnapshotSource

logger = logging.getLogger(__name__)

PUBLIC_API = "/api/v2/public"
PRIVATE_API = "/api/v2/private"


class DeribitError(RuntimeError):
    """Deribit returned no result or an error payload."""


class DeribitAuthError(DeribitError):
    """Authentication failed, or a private call was made before authenticating."""


class DeribitClient:
    """Thin async wrapper over the Deribit REST API.

    All endpoints are called with GET and query parameters. Private endpoints
    require authenticate() to have succeeded first; the bearer token is then
    attached to every request.
    """

    def __init__(
        self,
        base_url: str,
        client_id: str = "",
        client_secret: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )
        self._token = ""

    @property
    def authenticated(self) -> bool:
        return bool(self._token)

    async def close(self) -> None:
        await self._client.aclose()

    async def authenticate(self) -> None:
        """Exchange client credentials for an access token."""
        try:
            result = await self._get(
                f"{PUBLIC_API}/auth",
                {
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "grant_type": "client_credentials",
                },
            )
        except DeribitError as e:
            raise DeribitAuthError(f"Authentication failed: {e}") from e

        token = result.get("access_token") if isinstance(result, dict) else None
        if not token:
            raise DeribitAuthError("Authentication failed: no access token in response")
        self._token = token
        logger.info("Authenticated with Deribit as %s", self._client_id)

    async def get_order_book(self, instrument_name: str, depth: int = 5) -> Any:
        return await self._get(
            f"{PUBLIC_API}/get_order_book",
            {"instrument_name": instrument_name, "depth": str(depth)},
        )

    # --- Order management (pass-through) ---

    async def buy(self, params: dict[str, Any]) -> Any:
        self._ensure_authenticated()
        return await self._get(f"{PRIVATE_API}/buy", params)

    async def modify_order(self, params: dict[str, Any]) -> Any:
        self._ensure_authenticated()
        return await self._get(f"{PRIVATE_API}/edit", params)

    async def cancel_order(self, order_id: str) -> Any:
        self._ensure_authenticated()
        return await self._get(f"{PRIVATE_API}/cancel", {"order_id": order_id})

    async def get_positions(self, params: dict[str, Any]) -> Any:
        self._ensure_authenticated()
        return await self._get(f"{PRIVATE_API}/get_positions", params)

    # --- Internal ---

    def _ensure_authenticated(self) -> None:
        if not self._token:
            raise DeribitAuthError("Not authenticated. Call authenticate() first.")

    async def _get(self, endpoint: str, params: dict[str, Any]) -> Any:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            response = await self._client.get(endpoint, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Deribit request %s failed: %s", endpoint, e)
            raise

        payload = _json_or_none(response)
        error = payload.get("error") if isinstance(payload, dict) else None
        if response.is_error and not error:
            logger.error("Deribit request %s failed with HTTP %d", endpoint, response.status_code)
            response.raise_for_status()
        if error or not isinstance(payload, dict) or "result" not in payload:
            raise DeribitError(f"{endpoint}: {_describe_error(error)}")
        return payload["result"]


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _describe_error(error: Any) -> str:
    """Deribit errors look like {"code": 13004, "message": "invalid_credentials"}."""
    if not error:
        return "no result in response"
    if isinstance(error, dict) and "message" in error:
        code = error.get("code")
        return f"{error['message']} (code {code})" if code is not None else str(error["message"])
    return str(error)


class DeribitSnapshotSource(SnapshotSource):
    """SnapshotSource that returns Deribit's get_order_book result per instrument."""

    def __init__(self, client: DeribitClient, depth: int = 5, authenticate: bool = True) -> None:
        self._client = client
        self._depth = depth
        self._authenticate = authenticate

    @property
    def client(self) -> DeribitClient:
        return self._client

    async def start(self) -> None:
        if self._authenticate and not self._client.authenticated:
            await self._client.authenticate()

    async def fetch(self, topic: str) -> Any:
        return await self._client.get_order_book(topic, depth=self._depth)

    async def close(self) -> None:
        await self._client.close()
        logger.info("Deribit snapshot source closed")

"""
Async client for the exploration-contract REST API.

Every call returns a `FetchResult`; transport errors, timeouts, non-2xx statuses
and undecodable bodies are converted into failures instead of being raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from explorer.config import api_base_url, api_timeout_s
from layers.types import EntityId

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    ok: bool
    status_code: int
    data: Any = None
    error: str | None = None

    @staticmethod
    def success(data: Any, status_code: int = 200) -> "FetchResult":
        return FetchResult(ok=True, status_code=status_code, data=data)

    @staticmethod
    def failure(error: str, status_code: int = 500) -> "FetchResult":
        return FetchResult(ok=False, status_code=status_code, error=error)


class UpstreamClient:
    """
    Thin wrapper over `httpx.AsyncClient`.

    Usage:
        client = UpstreamClient()
        res = await client.contractor_areas(3)
        if res.ok:
            areas = res.data
        await client.close()

    `transport` lets tests plug in `httpx.MockTransport`.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or api_base_url()).rstrip("/")
        self.timeout = api_timeout_s() if timeout is None else float(timeout)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.requests_sent = 0

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def get_json(self, path: str) -> FetchResult:
        url = f"{self.base_url}/{path.lstrip('/')}"
        client = self._get_client()
        self.requests_sent += 1
        try:
            response = await client.get(url)
        except httpx.TimeoutException:
            return FetchResult.failure(f"timeout after {self.timeout}s: {url}", 504)
        except httpx.RequestError as e:
            return FetchResult.failure(f"request error for {url}: {e}", 502)

        if response.status_code >= 400:
            return FetchResult.failure(
                f"HTTP {response.status_code} for {url}: {response.text[:200]}",
                response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            return FetchResult.failure(f"invalid JSON from {url}: {e}", 502)
        return FetchResult.success(data, response.status_code)

    async def contractor_areas(self, contractor_id: EntityId) -> FetchResult:
        return await self.get_json(f"MapFilter/contractor-areas-geojson/{contractor_id}")

    async def contractor_summary(self, contractor_id: EntityId) -> FetchResult:
        return await self.get_json(f"Analytics/contractor/{contractor_id}/summary")

    async def block_analytics(self, block_id: EntityId) -> FetchResult:
        return await self.get_json(f"Analytics/block/{block_id}")

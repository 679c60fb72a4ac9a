from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError

from layers.types import EntityId
from upstream.client import FetchResult, UpstreamClient

log = logging.getLogger(__name__)


class ApiContractorSummary(BaseModel):
    model_config = ConfigDict(extra="allow")

    summary: dict[str, Any]


@dataclass(frozen=True)
class ContractorSummary:
    contractor_id: EntityId
    summary: Mapping[str, Any]

    def as_dict(self) -> dict[str, Any]:
        return {"contractorId": self.contractor_id, "summary": dict(self.summary)}


class SummaryCache:
    """
    Session-lifetime cache of contractor analytics summaries (no TTL).

    Hits never touch the network. Concurrent misses for the same contractor share a
    single in-flight request. Failures are not cached.
    """

    def __init__(self, client: UpstreamClient):
        self._client = client
        self._cache: dict[str, ContractorSummary] = {}
        self._inflight: dict[str, asyncio.Task[FetchResult]] = {}

    @property
    def loading(self) -> bool:
        return bool(self._inflight)

    def peek(self, contractor_id: EntityId) -> ContractorSummary | None:
        return self._cache.get(str(contractor_id))

    async def get(self, contractor_id: EntityId) -> FetchResult:
        key = str(contractor_id)
        cached = self._cache.get(key)
        if cached is not None:
            log.debug("Using cached summary for contractor %s", contractor_id)
            return FetchResult.success(cached)

        task = self._inflight.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(self._fetch(contractor_id))
            self._inflight[key] = task
            task.add_done_callback(self._forget)
        return await asyncio.shield(task)

    def _forget(self, task: asyncio.Task[FetchResult]) -> None:
        for k, t in list(self._inflight.items()):
            if t is task:
                del self._inflight[k]

    async def _fetch(self, contractor_id: EntityId) -> FetchResult:
        log.info("Fetching contractor summary for %s", contractor_id)
        res = await self._client.contractor_summary(contractor_id)
        if not res.ok:
            log.warning("Summary fetch failed for contractor %s: %s", contractor_id, res.error)
            return res
        try:
            parsed = ApiContractorSummary.model_validate(res.data)
        except ValidationError as e:
            log.warning("Malformed summary for contractor %s: %s", contractor_id, e)
            return FetchResult.failure(f"malformed summary payload: {e}", 502)

        value = ContractorSummary(
            contractor_id=contractor_id,
            summary=MappingProxyType(dict(parsed.summary)),
        )
        self._cache[str(contractor_id)] = value
        return FetchResult.success(value, res.status_code)

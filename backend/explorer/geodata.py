from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from layers.ingest import areas_from_payload
from layers.types import AreaLayer, BlockLayer, EntityId, LayerSnapshot
from upstream.client import UpstreamClient

log = logging.getLogger(__name__)


class ContractorLoadError(Exception):
    def __init__(self, contractor_id: EntityId, reason: str):
        super().__init__(f"contractor {contractor_id}: {reason}")
        self.contractor_id = contractor_id
        self.reason = reason


class GeoDataCache:
    """
    Per-contractor cache of area/block geometry.

    - Only contractors that are not resident yet are fetched; fetches run concurrently
      and are joined all-settled.
    - At most one load batch is in flight; overlapping calls are no-ops.
    - The snapshot object is replaced only when the cached area set actually changes,
      so consumers can compare by identity.
    """

    def __init__(self, client: UpstreamClient):
        self._client = client
        self._by_contractor: dict[str, tuple[AreaLayer, ...]] = {}
        self._snapshot = LayerSnapshot()
        self._loading = False
        self.skipped_loads = 0

    @property
    def snapshot(self) -> LayerSnapshot:
        return self._snapshot

    @property
    def loading(self) -> bool:
        return self._loading

    def is_resident(self, contractor_id: EntityId) -> bool:
        return str(contractor_id) in self._by_contractor

    def areas_for(self, contractor_id: EntityId) -> tuple[AreaLayer, ...]:
        return self._by_contractor.get(str(contractor_id), ())

    def find_area(self, area_id: EntityId) -> AreaLayer | None:
        aid = str(area_id)
        for a in self._snapshot.areas:
            if str(a.area_id) == aid:
                return a
        return None

    def find_block(self, block_id: EntityId) -> BlockLayer | None:
        bid = str(block_id)
        for b in self._snapshot.blocks:
            if str(b.block_id) == bid:
                return b
        return None

    async def load_contractors(self, ids: Iterable[EntityId]) -> tuple[AreaLayer, ...]:
        if self._loading:
            self.skipped_loads += 1
            log.debug("Layer load already in flight, skipping redundant load")
            return self._snapshot.areas

        # Dedupe while keeping a stable order for logging and request issue order.
        wanted: dict[str, EntityId] = {}
        for cid in ids:
            if str(cid) not in self._by_contractor:
                wanted.setdefault(str(cid), cid)
        if not wanted:
            return self._snapshot.areas

        self._loading = True
        try:
            log.info("Loading area layers for %d contractors", len(wanted))
            results = await asyncio.gather(
                *(self._fetch(cid) for cid in wanted.values()),
                return_exceptions=True,
            )
            fetched: dict[str, tuple[AreaLayer, ...]] = {}
            for key, res in zip(wanted.keys(), results):
                if isinstance(res, BaseException):
                    if not isinstance(res, Exception):
                        raise res
                    log.warning("Area layer load failed: %s", res)
                    continue
                fetched[key] = tuple(res)
            self._apply(fetched)
        finally:
            self._loading = False
        return self._snapshot.areas

    async def _fetch(self, contractor_id: EntityId) -> list[AreaLayer]:
        res = await self._client.contractor_areas(contractor_id)
        if not res.ok:
            raise ContractorLoadError(contractor_id, res.error or "fetch failed")
        try:
            return areas_from_payload(contractor_id, res.data)
        except ValueError as e:
            raise ContractorLoadError(contractor_id, str(e)) from e

    def _apply(self, fetched: dict[str, tuple[AreaLayer, ...]]) -> None:
        if not fetched:
            return
        merged = {**self._by_contractor, **fetched}
        areas = tuple(
            sorted((a for group in merged.values() for a in group), key=lambda a: a.key)
        )
        self._by_contractor = merged
        if frozenset(a.key for a in areas) == self._snapshot.area_keys:
            return
        self._snapshot = LayerSnapshot(areas=areas)

    def clear(self) -> None:
        self._by_contractor = {}
        self._snapshot = LayerSnapshot()

from __future__ import annotations

import logging
from typing import Any

from explorer.actuator import CameraMove, ViewportActuator
from explorer.camera import MapEngine, QueuedMapEngine
from explorer.export import areas_feature_collection
from explorer.geodata import GeoDataCache
from explorer.selection import SelectionCoordinator, SelectionState
from explorer.stats import MapSummary, summarize
from explorer.summaries import SummaryCache
from explorer.viewport_store import ViewportStore
from geo.aoi import BBox
from geo.viewport import Viewport
from layers.filters import MapFilters, visible_areas, visible_contractor_ids, visible_stations
from layers.types import AreaLayer, EntityId, MapData, Station
from lod.clusters import ClusterEngine, ClusterItem, ClusterOptions
from upstream.client import UpstreamClient

log = logging.getLogger(__name__)


class ExplorerSession:
    """
    One explorer map: camera, cached layers, clusters and the open panel.

    Visible clusters are recomputed synchronously on every viewport change and
    whenever the visible station set changes (data, filters or selected contractor).
    """

    def __init__(
        self,
        *,
        client: UpstreamClient | None = None,
        engine: MapEngine | None = None,
        cluster_options: ClusterOptions | None = None,
        toast_duration: float | None = None,
    ):
        self.client = client or UpstreamClient()
        self.engine = engine if engine is not None else QueuedMapEngine()
        self.store = ViewportStore()
        self.geodata = GeoDataCache(self.client)
        self.summaries = SummaryCache(self.client)
        self.clusters = ClusterEngine(cluster_options)
        self.actuator = ViewportActuator(self.engine, self.store)
        self.selection = SelectionCoordinator(
            client=self.client,
            summaries=self.summaries,
            geodata=self.geodata,
            actuator=self.actuator,
            toast_duration=toast_duration,
        )
        self.data = MapData()
        self.filters = MapFilters()
        self._visible: list[ClusterItem] = []
        self.store.subscribe(self._on_viewport)

    @property
    def selected_contractor_id(self) -> EntityId | None:
        return self.selection.state.selected_contractor_id

    @property
    def visible_clusters(self) -> list[ClusterItem]:
        return self._visible

    def bounds(self) -> BBox | None:
        return self.store.bounds()

    def visible_stations(self) -> list[Station]:
        return visible_stations(self.data, self.filters, self.selected_contractor_id)

    def visible_areas(self) -> list[AreaLayer]:
        return visible_areas(
            self.geodata.snapshot.areas, self.data, self.filters, self.selected_contractor_id
        )

    def _on_viewport(self, viewport: Viewport, bounds: BBox | None) -> None:
        self._visible = self.clusters.compute_clusters(self.visible_stations(), viewport, bounds)

    def _refresh_clusters(self) -> None:
        self._on_viewport(self.store.viewport, self.store.bounds())

    # -- camera ------------------------------------------------------------

    def set_layout(self, width: int, height: int) -> list[ClusterItem]:
        self.store.set_surface(width, height)
        return self._visible

    def set_viewport(self, viewport: Viewport, *, programmatic: bool = False) -> list[ClusterItem]:
        self.store.set_viewport(viewport, programmatic=programmatic)
        return self._visible

    def expand_cluster(self, cluster_id: int) -> CameraMove:
        return self.actuator.zoom_to_cluster(self.clusters.cluster(cluster_id))

    def zoom_to_area(self, area_id: EntityId) -> CameraMove | None:
        area = self.geodata.find_area(area_id)
        if area is None:
            raise KeyError(f"Unknown area {area_id}")
        return self.actuator.zoom_to_area(area)

    # -- data and filters --------------------------------------------------

    def set_data(self, data: MapData) -> None:
        self.data = data
        log.info(
            "Map data set: %d contractors, %d cruises", len(data.contractors), len(data.cruises)
        )
        self._refresh_clusters()

    async def load_layers(self) -> tuple[AreaLayer, ...]:
        """
        Fetch area layers for every visible contractor that is not cached yet, then
        retry a contractor zoom that was waiting on those layers.
        """
        ids = visible_contractor_ids(self.data, self.filters, self.selected_contractor_id)
        by_key = {str(c.contractor_id): c.contractor_id for c in self.data.contractors}
        await self.geodata.load_contractors(by_key.get(k, k) for k in sorted(ids))
        areas = self.geodata.snapshot.areas
        self.actuator.retry_pending(filters=self.filters, areas=areas)
        return areas

    def _auto_fit(self) -> CameraMove | None:
        return self.actuator.auto_fit(
            filters=self.filters,
            selected_contractor_id=self.selected_contractor_id,
            areas=self.geodata.snapshot.areas,
        )

    async def set_filters(self, filters: MapFilters) -> CameraMove | None:
        self.filters = filters
        self._refresh_clusters()
        await self.load_layers()
        return self._auto_fit()

    async def reset_filters(self) -> CameraMove | None:
        self.actuator.reset_filters()
        self.selection.select_contractor(None)
        return await self.set_filters(MapFilters())

    async def select_contractor(self, contractor_id: EntityId | None) -> SelectionState:
        self.selection.select_contractor(contractor_id)
        self._refresh_clusters()
        await self.load_layers()
        self._auto_fit()
        return self.selection.state

    # -- panels ------------------------------------------------------------

    def select_station(self, station_id: EntityId) -> SelectionState:
        station = self.data.station(station_id)
        if station is None:
            raise KeyError(f"Unknown station {station_id}")
        return self.selection.select_station(station)

    async def select_cruise(self, cruise_id: EntityId) -> SelectionState:
        cruise = self.data.cruise(cruise_id)
        if cruise is None:
            raise KeyError(f"Unknown cruise {cruise_id}")
        return await self.selection.select_cruise(cruise)

    async def select_block(self, block_id: EntityId) -> SelectionState:
        return await self.selection.select_block(block_id)

    async def view_contractor_summary(self) -> SelectionState:
        return await self.selection.view_contractor_summary()

    def map_summary(self) -> MapSummary:
        return summarize(self.data, self.visible_areas(), self.selected_contractor_id)

    def areas_geojson(self) -> dict[str, Any]:
        return areas_feature_collection(self.visible_areas())

    async def close(self) -> None:
        await self.client.close()

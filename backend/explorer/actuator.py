from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from geo.aoi import BBox
from layers.filters import MapFilters
from layers.types import AreaLayer, BlockLayer, Cruise, EntityId
from lod.clusters import Cluster
from explorer.camera import CameraCommand, MapEngine
from explorer.viewport_store import ViewportStore

log = logging.getLogger(__name__)


WORLD_BOUNDS = BBox(min_lon=-180.0, min_lat=-60.0, max_lon=180.0, max_lat=85.0)


@dataclass(frozen=True)
class CameraMove:
    command: CameraCommand
    finished: asyncio.Future[None]


def _geometry_bbox(geometry) -> BBox | None:
    if geometry is None or geometry.is_empty:
        return None
    min_lon, min_lat, max_lon, max_lat = geometry.bounds
    return BBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)


def area_command(area: AreaLayer) -> CameraCommand | None:
    bbox = _geometry_bbox(area.geometry)
    if bbox is not None:
        return CameraCommand(
            kind="fit_bounds",
            bounds=bbox.padded(1.0),
            padding_px=60,
            duration_ms=800,
            max_zoom=9,
            reason=f"area:{area.area_id}",
        )
    if area.center is not None:
        return CameraCommand(
            kind="fly_to", center_lonlat=area.center, zoom=7, duration_ms=800,
            reason=f"area:{area.area_id}",
        )
    return None


def block_command(block: BlockLayer) -> CameraCommand | None:
    bbox = _geometry_bbox(block.geometry)
    if bbox is not None:
        return CameraCommand(
            kind="fit_bounds",
            bounds=bbox.padded(0.5),
            padding_px=60,
            duration_ms=800,
            max_zoom=10,
            reason=f"block:{block.block_id}",
        )
    if block.center is not None:
        return CameraCommand(
            kind="fly_to", center_lonlat=block.center, zoom=9, duration_ms=800,
            reason=f"block:{block.block_id}",
        )
    return None


def cruise_command(cruise: Cruise) -> CameraCommand:
    reason = f"cruise:{cruise.cruise_id}"
    if cruise.center_latitude is not None and cruise.center_longitude is not None:
        return CameraCommand(
            kind="fly_to",
            center_lonlat=(cruise.center_longitude, cruise.center_latitude),
            zoom=8,
            duration_ms=1200,
            reason=reason,
        )

    coords = [(s.longitude, s.latitude) for s in cruise.stations]
    if len(coords) == 1:
        return CameraCommand(
            kind="fly_to", center_lonlat=coords[0], zoom=10, duration_ms=1200, reason=reason
        )
    bbox = BBox.from_points(coords)
    if bbox is not None:
        return CameraCommand(
            kind="fit_bounds",
            bounds=bbox.padded(0.5),
            padding_px=50,
            duration_ms=1000,
            max_zoom=10,
            reason=reason,
        )
    log.info("Cruise %s has no coordinates, using default view", cruise.cruise_id)
    return CameraCommand(
        kind="fly_to", center_lonlat=(0.0, 0.0), zoom=2, duration_ms=1000, reason=reason
    )


def contractor_areas_bbox(areas: Sequence[AreaLayer]) -> BBox | None:
    out: BBox | None = None
    for a in areas:
        bbox = _geometry_bbox(a.geometry)
        if bbox is None and a.center is not None:
            bbox = BBox.from_points([a.center])
        if bbox is None:
            continue
        out = bbox if out is None else out.union(bbox)
    return out


class ViewportActuator:
    """
    Issues programmatic camera moves without counting them as user navigation.
    """

    def __init__(self, engine: MapEngine, store: ViewportStore):
        self._engine = engine
        self._store = store
        self._cruise_move: CameraMove | None = None
        self.pending_contractor_id: EntityId | None = None

    def _issue(self, command: CameraCommand) -> CameraMove:
        release = self._store.begin_programmatic_move()
        finished = asyncio.ensure_future(self._engine.execute(command))
        if finished.done():
            release()
        else:
            finished.add_done_callback(lambda _f: release())
        log.debug("Camera %s (%s)", command.kind, command.reason)
        return CameraMove(command=command, finished=finished)

    def zoom_to_area(self, area: AreaLayer) -> CameraMove | None:
        cmd = area_command(area)
        return self._issue(cmd) if cmd is not None else None

    def zoom_to_block(self, block: BlockLayer) -> CameraMove | None:
        cmd = block_command(block)
        return self._issue(cmd) if cmd is not None else None

    def zoom_to_cruise(self, cruise: Cruise) -> CameraMove | None:
        """
        Returns None when another cruise zoom is still running.
        """
        running = self._cruise_move
        if running is not None and not running.finished.done():
            log.info("Zoom already in progress, ignoring cruise %s", cruise.cruise_id)
            return None
        self._cruise_move = self._issue(cruise_command(cruise))
        return self._cruise_move

    def zoom_to_cluster(self, cluster: Cluster) -> CameraMove:
        # Straight to the level where the cluster splits, not one step at a time.
        return self._issue(
            CameraCommand(
                kind="fly_to",
                center_lonlat=(cluster.longitude, cluster.latitude),
                zoom=cluster.expansion_zoom,
                duration_ms=500,
                reason=f"cluster:{cluster.id}",
            )
        )

    def auto_fit(
        self,
        *,
        filters: MapFilters,
        selected_contractor_id: EntityId | None,
        areas: Sequence[AreaLayer],
    ) -> CameraMove | None:
        """
        Fit the camera to the current filter result.

        Priority: selected location region, then the selected contractor's areas,
        then the world view (only when nothing is filtered or the user has not
        moved the map).
        """
        region = filters.region()
        if region is not None:
            return self._issue(
                CameraCommand(
                    kind="fit_bounds",
                    bounds=region.bounds,
                    padding_px=80,
                    duration_ms=1000,
                    reason=f"region:{region.id}",
                )
            )

        if selected_contractor_id is not None:
            mine = [a for a in areas if str(a.contractor_id) == str(selected_contractor_id)]
            bbox = contractor_areas_bbox(mine)
            if bbox is not None and not bbox.is_degenerate():
                if self.pending_contractor_id == selected_contractor_id:
                    self.pending_contractor_id = None
                return self._issue(
                    CameraCommand(
                        kind="fit_bounds",
                        bounds=bbox.padded(2.0),
                        padding_px=80,
                        duration_ms=800,
                        max_zoom=8,
                        reason=f"contractor:{selected_contractor_id}",
                    )
                )
            if not mine and self.pending_contractor_id != selected_contractor_id:
                log.info("Setting pending zoom for contractor %s", selected_contractor_id)
                self.pending_contractor_id = selected_contractor_id

        if (filters.is_empty() and selected_contractor_id is None) or not self._store.user_navigated:
            return self._issue(
                CameraCommand(
                    kind="fit_bounds",
                    bounds=WORLD_BOUNDS,
                    padding_px=20,
                    duration_ms=800,
                    reason="world",
                )
            )
        return None

    def retry_pending(
        self, *, filters: MapFilters, areas: Sequence[AreaLayer]
    ) -> CameraMove | None:
        """
        Re-run `auto_fit` for a contractor whose areas were not loaded at selection time.
        """
        pending = self.pending_contractor_id
        if pending is None or not any(str(a.contractor_id) == str(pending) for a in areas):
            return None
        return self.auto_fit(
            filters=filters,
            selected_contractor_id=self.pending_contractor_id,
            areas=areas,
        )

    def reset_filters(self) -> None:
        # The next data load may fit the view again.
        self._store.reset_user_navigation()

from __future__ import annotations

from typing import Any, Iterable

from explorer.selection import SelectionState, Toast
from geo.aoi import BBox
from layers.types import AreaLayer, Station
from lod.clusters import Cluster, ClusterItem


def bounds_payload(bounds: BBox | None) -> dict[str, float] | None:
    return bounds.as_dict() if bounds is not None else None


def station_payload(s: Station) -> dict[str, Any]:
    return {
        "type": "station",
        "stationId": s.station_id,
        "longitude": s.longitude,
        "latitude": s.latitude,
        "cruiseId": s.cruise_id,
        "stationCode": s.station_code,
        "stationType": s.station_type,
    }


def cluster_item_payload(item: ClusterItem) -> dict[str, Any]:
    if isinstance(item, Station):
        return station_payload(item)
    assert isinstance(item, Cluster)
    return {
        "type": "cluster",
        "clusterId": item.id,
        "longitude": item.longitude,
        "latitude": item.latitude,
        "pointCount": item.count,
        "expansionZoom": item.expansion_zoom,
        "sizeTier": item.size_tier,
    }


def clusters_payload(items: Iterable[ClusterItem]) -> list[dict[str, Any]]:
    return [cluster_item_payload(i) for i in items]


def toast_payload(toast: Toast | None) -> dict[str, Any] | None:
    if toast is None:
        return None
    return {"message": toast.message, "durationS": toast.duration_s}


def selection_payload(state: SelectionState, toast: Toast | None) -> dict[str, Any]:
    """
    Panel state as the UI reads it. `toast` is passed separately so an expired
    toast is never rendered.
    """
    return {
        "kind": state.kind.value,
        "panelVisible": state.panel_visible,
        "summaryPanelVisible": state.summary_panel_visible,
        "showCruises": state.show_cruises,
        "selectedContractorId": state.selected_contractor_id,
        "station": station_payload(state.station) if state.station is not None else None,
        "cruiseId": state.cruise_id,
        "blockAnalytics": (
            {"blockId": state.block_analytics.block_id, "data": dict(state.block_analytics.data)}
            if state.block_analytics is not None
            else None
        ),
        "contractorSummary": (
            state.contractor_summary.as_dict() if state.contractor_summary is not None else None
        ),
        "popup": station_payload(state.popup) if state.popup is not None else None,
        "toast": toast_payload(toast),
    }


def areas_payload(areas: Iterable[AreaLayer]) -> list[dict[str, Any]]:
    return [
        {
            "contractorId": a.contractor_id,
            "areaId": a.area_id,
            "areaName": a.area_name,
            "center": list(a.center) if a.center is not None else None,
            "totalAreaSizeKm2": a.total_area_size_km2,
            "blockCount": len(a.blocks),
        }
        for a in areas
    ]

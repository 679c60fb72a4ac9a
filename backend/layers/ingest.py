from __future__ import annotations

import json
import logging
from typing import Any, Union

from pydantic import BaseModel, Field, ValidationError
from shapely.errors import GEOSException
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from layers.types import (
    AreaLayer,
    BlockLayer,
    BlockStatus,
    Contractor,
    Cruise,
    EntityId,
    MapData,
    Station,
)

log = logging.getLogger(__name__)


# Wire models: only the fields we consume; everything else is ignored.


class ApiBlock(BaseModel):
    blockId: Union[int, str]
    blockName: str = ""
    status: str
    geoJson: Union[str, dict[str, Any], None] = None
    centerLat: float | None = None
    centerLon: float | None = None
    areaSizeKm2: float | None = None


class ApiArea(BaseModel):
    areaId: Union[int, str]
    areaName: str = ""
    geoJson: Union[str, dict[str, Any], None] = None
    centerLat: float | None = None
    centerLon: float | None = None
    totalAreaSizeKm2: float | None = None
    blocks: list[dict[str, Any]] = Field(default_factory=list)


class ApiStation(BaseModel):
    stationId: Union[int, str]
    latitude: float
    longitude: float
    cruiseId: Union[int, str, None] = None
    stationCode: str | None = None
    stationType: str | None = None


class ApiCruise(BaseModel):
    cruiseId: Union[int, str]
    cruiseName: str = ""
    contractorId: Union[int, str]
    centerLatitude: float | None = None
    centerLongitude: float | None = None
    researchVessel: str | None = None
    stations: list[ApiStation] = Field(default_factory=list)


class ApiContractor(BaseModel):
    contractorId: Union[int, str]
    contractorName: str = ""
    contractType: str | None = None
    sponsoringState: str | None = None
    contractualYear: int | None = None


def parse_geometry(raw: Any) -> BaseGeometry:
    """
    Normalize a GeoJSON field into a shapely geometry.

    Accepts serialized text or an already-decoded object, and any of a bare
    geometry, a Feature, or a FeatureCollection. Raises ValueError when nothing
    usable is found.
    """
    if raw is None:
        raise ValueError("geometry is missing")
    data = raw
    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        if not text.strip():
            raise ValueError("geometry is empty")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"geometry is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"geometry must be an object, got {type(data).__name__}")

    gtype = data.get("type")
    if gtype == "Feature":
        return parse_geometry(data.get("geometry"))
    if gtype == "FeatureCollection":
        parts = []
        for f in data.get("features") or []:
            try:
                parts.append(parse_geometry((f or {}).get("geometry")))
            except ValueError:
                continue
        if not parts:
            raise ValueError("feature collection has no usable geometry")
        return parts[0] if len(parts) == 1 else unary_union(parts)

    if not data.get("coordinates") and gtype != "GeometryCollection":
        raise ValueError(f"geometry {gtype!r} has no coordinates")
    try:
        geom = shape(data)
    except (GEOSException, KeyError, TypeError, ValueError, IndexError) as e:
        raise ValueError(f"unparsable geometry: {e}") from e
    if geom.is_empty:
        raise ValueError("geometry is empty")
    if not geom.is_valid and geom.geom_type in {"Polygon", "MultiPolygon"}:
        geom = geom.buffer(0)
        if geom.is_empty:
            raise ValueError("geometry collapses when repaired")
    return geom


def _center(lat: float | None, lon: float | None, geom: BaseGeometry) -> tuple[float, float]:
    if lat is not None and lon is not None:
        return (float(lon), float(lat))
    p = geom.representative_point()
    return (float(p.x), float(p.y))


def block_from_payload(raw: dict[str, Any]) -> BlockLayer:
    b = ApiBlock.model_validate(raw)
    geom = parse_geometry(b.geoJson)
    return BlockLayer(
        block_id=b.blockId,
        block_name=b.blockName,
        status=BlockStatus.parse(b.status),
        geometry=geom,
        center=_center(b.centerLat, b.centerLon, geom),
        area_size_km2=b.areaSizeKm2,
    )


def areas_from_payload(contractor_id: EntityId, payload: Any) -> list[AreaLayer]:
    """
    Convert `/MapFilter/contractor-areas-geojson/{id}` output into area layers.

    Malformed areas and blocks are dropped (and logged); the rest are kept.
    """
    if not isinstance(payload, list):
        raise ValueError(
            f"contractor {contractor_id}: expected a list of areas, got {type(payload).__name__}"
        )

    out: list[AreaLayer] = []
    for i, raw in enumerate(payload):
        try:
            a = ApiArea.model_validate(raw)
            geom = parse_geometry(a.geoJson)
        except (ValidationError, ValueError) as e:
            log.warning("contractor %s: dropping area #%d: %s", contractor_id, i, e)
            continue

        blocks: list[BlockLayer] = []
        for j, raw_block in enumerate(a.blocks):
            try:
                blocks.append(block_from_payload(raw_block))
            except (ValidationError, ValueError) as e:
                log.warning(
                    "contractor %s area %s: dropping block #%d: %s",
                    contractor_id,
                    a.areaId,
                    j,
                    e,
                )

        out.append(
            AreaLayer(
                contractor_id=contractor_id,
                area_id=a.areaId,
                area_name=a.areaName,
                geometry=geom,
                center=_center(a.centerLat, a.centerLon, geom),
                total_area_size_km2=a.totalAreaSizeKm2,
                blocks=tuple(blocks),
            )
        )
    return out


def map_data_from_payload(contractors: list[Any], cruises: list[Any]) -> MapData:
    """
    Build the station/contractor collections; invalid rows are skipped.
    """
    out_contractors: list[Contractor] = []
    for raw in contractors or []:
        try:
            c = ApiContractor.model_validate(raw)
        except ValidationError as e:
            log.warning("dropping contractor row: %s", e)
            continue
        out_contractors.append(
            Contractor(
                contractor_id=c.contractorId,
                contractor_name=c.contractorName,
                contract_type=c.contractType,
                sponsoring_state=c.sponsoringState,
                contractual_year=c.contractualYear,
            )
        )

    out_cruises: list[Cruise] = []
    for raw in cruises or []:
        try:
            c = ApiCruise.model_validate(raw)
        except ValidationError as e:
            log.warning("dropping cruise row: %s", e)
            continue
        stations = tuple(
            Station(
                station_id=s.stationId,
                latitude=s.latitude,
                longitude=s.longitude,
                cruise_id=s.cruiseId if s.cruiseId is not None else c.cruiseId,
                station_code=s.stationCode,
                station_type=s.stationType,
            )
            for s in c.stations
        )
        out_cruises.append(
            Cruise(
                cruise_id=c.cruiseId,
                cruise_name=c.cruiseName,
                contractor_id=c.contractorId,
                center_latitude=c.centerLatitude,
                center_longitude=c.centerLongitude,
                research_vessel=c.researchVessel,
                stations=stations,
            )
        )

    return MapData(contractors=tuple(out_contractors), cruises=tuple(out_cruises))

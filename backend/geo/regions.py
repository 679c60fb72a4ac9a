from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from explorer.config import regions_path
from geo.aoi import BBox


class RegionBounds(BaseModel):
    minLat: float = Field(ge=-90.0, le=90.0)
    maxLat: float = Field(ge=-90.0, le=90.0)
    minLon: float = Field(ge=-180.0, le=180.0)
    maxLon: float = Field(ge=-180.0, le=180.0)


class RegionConfig(BaseModel):
    id: str
    name: str
    bounds: RegionBounds


class RegionTable(BaseModel):
    regions: list[RegionConfig]


@dataclass(frozen=True)
class Region:
    id: str
    name: str
    # min_lon > max_lon marks a region crossing the date line.
    bounds: BBox

    def contains(self, lon: float, lat: float) -> bool:
        return self.bounds.contains(lon, lat)


def _load_yaml(path: Path) -> dict:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid region yaml root: {path}")
    return data


@lru_cache(maxsize=1)
def get_regions() -> dict[str, Region]:
    table = RegionTable.model_validate(_load_yaml(regions_path()))
    out: dict[str, Region] = {}
    for r in table.regions:
        if r.bounds.minLat > r.bounds.maxLat:
            raise ValueError(f"Region {r.id!r} has minLat > maxLat")
        out[r.id] = Region(
            id=r.id,
            name=r.name,
            bounds=BBox(
                min_lon=r.bounds.minLon,
                min_lat=r.bounds.minLat,
                max_lon=r.bounds.maxLon,
                max_lat=r.bounds.maxLat,
            ),
        )
    return out


def get_region(region_id: str | None) -> Region | None:
    rid = (region_id or "").strip()
    if not rid or rid == "all":
        return None
    return get_regions().get(rid)


def is_point_in_region(lat: float, lon: float, region_id: str) -> bool:
    region = get_region(region_id)
    if region is None:
        return False
    return region.contains(lon, lat)


def clear_region_cache() -> None:
    """
    Forget the loaded region table (tests point `EXPLORER_REGIONS_PATH` elsewhere).
    """
    get_regions.cache_clear()

from __future__ import annotations

import math
from functools import lru_cache
from typing import Sequence

from pyproj import Transformer


MAX_MERCATOR_LAT = 85.05112878
# Half the EPSG:3857 world width in meters.
_ORIGIN_SHIFT = 20037508.342789244
# Map engines render the world on 512px tiles at zoom 0.
TILE_SIZE = 512


@lru_cache(maxsize=1)
def transformer_4326_to_3857() -> Transformer:
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


@lru_cache(maxsize=1)
def transformer_3857_to_4326() -> Transformer:
    return Transformer.from_crs("EPSG:3857", "EPSG:4326", always_xy=True)


def clamp_lat(lat: float) -> float:
    return max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, float(lat)))


def project_to_unit(
    lons: Sequence[float], lats: Sequence[float]
) -> tuple[list[float], list[float]]:
    """
    Project lon/lat (EPSG:4326) to the unit Web Mercator square.

    x grows east, y grows south; both are in [0, 1] for the whole world.
    """
    if not lons:
        return [], []
    t = transformer_4326_to_3857()
    xs, ys = t.transform(list(lons), [clamp_lat(v) for v in lats])
    width = 2.0 * _ORIGIN_SHIFT
    ux = [min(1.0, max(0.0, (float(x) + _ORIGIN_SHIFT) / width)) for x in xs]
    uy = [min(1.0, max(0.0, (_ORIGIN_SHIFT - float(y)) / width)) for y in ys]
    return ux, uy


def unproject_from_unit(x: float, y: float) -> tuple[float, float]:
    """
    Inverse of `project_to_unit` for a single coordinate; returns (lon, lat).
    """
    width = 2.0 * _ORIGIN_SHIFT
    t = transformer_3857_to_4326()
    lon, lat = t.transform(x * width - _ORIGIN_SHIFT, _ORIGIN_SHIFT - y * width)
    return float(lon), float(lat)


def lon_to_world_x(lon: float) -> float:
    # Unbounded on purpose: longitudes past +/-180 stay monotonic.
    return float(lon) / 360.0 + 0.5


def world_x_to_lon(x: float) -> float:
    return (float(x) - 0.5) * 360.0


def lat_to_world_y(lat: float) -> float:
    s = math.sin(math.radians(clamp_lat(lat)))
    y = 0.5 - 0.25 * math.log((1.0 + s) / (1.0 - s)) / math.pi
    return min(1.0, max(0.0, y))


def world_y_to_lat(y: float) -> float:
    # https://wiki.openstreetmap.org/wiki/Slippy_map_tilenames
    y = min(1.0, max(0.0, float(y)))
    t = math.pi * (1.0 - 2.0 * y)
    return math.degrees(math.atan(math.sinh(t)))


def world_size_px(zoom: float) -> float:
    return TILE_SIZE * (2.0 ** float(zoom))

from __future__ import annotations

import math
from dataclasses import dataclass

from geo.aoi import BBox
from geo.mercator import (
    lat_to_world_y,
    lon_to_world_x,
    world_size_px,
    world_x_to_lon,
    world_y_to_lat,
)


@dataclass(frozen=True)
class Viewport:
    """
    Camera state of the map: center, zoom and orientation.
    """

    longitude: float
    latitude: float
    zoom: float
    bearing: float = 0.0
    pitch: float = 0.0

    def __post_init__(self) -> None:
        for name in ("longitude", "latitude", "zoom", "bearing", "pitch"):
            v = getattr(self, name)
            if not math.isfinite(float(v)):
                raise ValueError(f"Viewport.{name} must be finite, got {v!r}")
        if self.zoom < 0:
            raise ValueError(f"Viewport.zoom must be >= 0, got {self.zoom!r}")


WORLD_VIEW = Viewport(longitude=0.0, latitude=20.0, zoom=1.8, bearing=0.0, pitch=0.0)


def viewport_bounds(viewport: Viewport, *, width: int, height: int) -> BBox:
    """
    Geographic envelope of the visible map surface.

    Pitch is ignored (the envelope of a top-down view); bearing widens the envelope
    to contain the rotated screen rectangle.
    """
    ws = world_size_px(viewport.zoom)
    cx = lon_to_world_x(viewport.longitude)
    cy = lat_to_world_y(viewport.latitude)

    b = math.radians(viewport.bearing)
    cos_b = abs(math.cos(b))
    sin_b = abs(math.sin(b))
    half_w = (width / 2.0 * cos_b + height / 2.0 * sin_b) / ws
    half_h = (width / 2.0 * sin_b + height / 2.0 * cos_b) / ws

    if half_w * 2.0 >= 1.0:
        min_lon, max_lon = -180.0, 180.0
    else:
        min_lon = world_x_to_lon(cx - half_w)
        max_lon = world_x_to_lon(cx + half_w)

    # Screen y grows south, so the top edge is the northern bound.
    max_lat = world_y_to_lat(cy - half_h)
    min_lat = world_y_to_lat(cy + half_h)

    return BBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)

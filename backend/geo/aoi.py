from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class BBox:
    """
    WGS84 bounding box in lon/lat degrees.

    Convention used throughout this repo:
    - minLon, minLat, maxLon, maxLat

    Longitudes are not wrapped: a view straddling the antimeridian is represented as
    e.g. 170..190 so that min_lon <= max_lon always holds.
    """

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def normalized(self) -> "BBox":
        min_lon = min(self.min_lon, self.max_lon)
        max_lon = max(self.min_lon, self.max_lon)
        min_lat = min(self.min_lat, self.max_lat)
        max_lat = max(self.min_lat, self.max_lat)
        return BBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)

    @staticmethod
    def from_points(points: Iterable[tuple[float, float]]) -> "BBox | None":
        """
        Envelope of (lon, lat) pairs, or None for an empty iterable.
        """
        it = iter(points)
        first = next(it, None)
        if first is None:
            return None
        min_lon = max_lon = float(first[0])
        min_lat = max_lat = float(first[1])
        for lon, lat in it:
            min_lon = min(min_lon, float(lon))
            max_lon = max(max_lon, float(lon))
            min_lat = min(min_lat, float(lat))
            max_lat = max(max_lat, float(lat))
        return BBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)

    def padded(self, degrees: float) -> "BBox":
        b = self.normalized()
        return BBox(
            min_lon=b.min_lon - degrees,
            min_lat=b.min_lat - degrees,
            max_lon=b.max_lon + degrees,
            max_lat=b.max_lat + degrees,
        )

    def union(self, other: "BBox") -> "BBox":
        return BBox(
            min_lon=min(self.min_lon, other.min_lon),
            min_lat=min(self.min_lat, other.min_lat),
            max_lon=max(self.max_lon, other.max_lon),
            max_lat=max(self.max_lat, other.max_lat),
        )

    @property
    def center(self) -> tuple[float, float]:
        # (lon, lat)
        return ((self.min_lon + self.max_lon) / 2.0, (self.min_lat + self.max_lat) / 2.0)

    def is_degenerate(self) -> bool:
        return not (self.min_lon < self.max_lon and self.min_lat < self.max_lat)

    def contains(self, lon: float, lat: float) -> bool:
        if not (self.min_lat <= lat <= self.max_lat):
            return False
        # Regions crossing the date line are stored with min_lon > max_lon.
        if self.min_lon > self.max_lon:
            return lon >= self.min_lon or lon <= self.max_lon
        return self.min_lon <= lon <= self.max_lon

    def as_dict(self) -> dict[str, float]:
        return {
            "minLon": self.min_lon,
            "minLat": self.min_lat,
            "maxLon": self.max_lon,
            "maxLat": self.max_lat,
        }

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TypeAlias, Union

from shapely.geometry.base import BaseGeometry


EntityId: TypeAlias = Union[int, str]
LonLat: TypeAlias = tuple[float, float]


class BlockStatus(str, Enum):
    active = "active"
    pending = "pending"
    inactive = "inactive"
    reserved = "reserved"

    @classmethod
    def parse(cls, value: object) -> "BlockStatus":
        """
        Case-insensitive lookup; unknown statuses are rejected, never defaulted.
        """
        key = str(value or "").strip().lower()
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown block status: {value!r}") from None

    @property
    def color(self) -> str:
        return _STATUS_COLORS[self]


_STATUS_COLORS: dict[BlockStatus, str] = {
    BlockStatus.active: "#059669",
    BlockStatus.pending: "#d97706",
    BlockStatus.inactive: "#6b7280",
    BlockStatus.reserved: "#3b82f6",
}


@dataclass(frozen=True)
class BlockLayer:
    block_id: EntityId
    block_name: str
    status: BlockStatus
    geometry: BaseGeometry
    center: LonLat | None
    area_size_km2: float | None


@dataclass(frozen=True)
class AreaLayer:
    """
    One license area of a contractor, with its blocks. Immutable once fetched.
    """

    contractor_id: EntityId
    area_id: EntityId
    area_name: str
    geometry: BaseGeometry
    center: LonLat | None
    total_area_size_km2: float | None
    blocks: tuple[BlockLayer, ...] = ()

    @property
    def key(self) -> tuple[str, str]:
        # area ids are only unique within a contractor
        return (str(self.contractor_id), str(self.area_id))


@dataclass(frozen=True)
class LayerSnapshot:
    """
    Read-only view of every cached area layer, ordered by (contractor, area).
    """

    areas: tuple[AreaLayer, ...] = ()

    @property
    def blocks(self) -> tuple[BlockLayer, ...]:
        return tuple(b for a in self.areas for b in a.blocks)

    @property
    def area_keys(self) -> frozenset[tuple[str, str]]:
        return frozenset(a.key for a in self.areas)

    def __len__(self) -> int:
        return len(self.areas)


@dataclass(frozen=True)
class Station:
    station_id: EntityId
    latitude: float
    longitude: float
    cruise_id: EntityId | None = None
    station_code: str | None = None
    station_type: str | None = None


@dataclass(frozen=True)
class Cruise:
    cruise_id: EntityId
    cruise_name: str
    contractor_id: EntityId
    center_latitude: float | None = None
    center_longitude: float | None = None
    research_vessel: str | None = None
    stations: tuple[Station, ...] = ()


@dataclass(frozen=True)
class Contractor:
    contractor_id: EntityId
    contractor_name: str
    contract_type: str | None = None
    sponsoring_state: str | None = None
    contractual_year: int | None = None


@dataclass(frozen=True)
class MapData:
    """
    Contractor/cruise/station collections supplied by the external data source.
    """

    contractors: tuple[Contractor, ...] = ()
    cruises: tuple[Cruise, ...] = ()
    _cruise_by_id: dict[str, Cruise] = field(
        default_factory=dict, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self._cruise_by_id.update({str(c.cruise_id): c for c in self.cruises})

    def cruise(self, cruise_id: EntityId) -> Cruise | None:
        return self._cruise_by_id.get(str(cruise_id))

    def station(self, station_id: EntityId) -> Station | None:
        sid = str(station_id)
        for c in self.cruises:
            for s in c.stations:
                if str(s.station_id) == sid:
                    return s
        return None

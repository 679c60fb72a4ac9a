from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from geo.regions import Region, get_region
from layers.types import AreaLayer, Contractor, EntityId, MapData, Station


_ANY = {"", "all"}


def _is_set(v: object) -> bool:
    return v is not None and str(v).strip().lower() not in _ANY


@dataclass(frozen=True)
class MapFilters:
    """
    Contractor-level filters chosen in the filter panel. "all" means unset.
    """

    contract_type: str | None = None
    sponsoring_state: str | None = None
    contractual_year: int | None = None
    location_id: str | None = None

    def is_empty(self) -> bool:
        return not any(
            _is_set(v)
            for v in (
                self.contract_type,
                self.sponsoring_state,
                self.contractual_year,
                self.location_id,
            )
        )

    def region(self) -> Region | None:
        if not _is_set(self.location_id):
            return None
        return get_region(self.location_id)

    def matches(self, contractor: Contractor) -> bool:
        if _is_set(self.contract_type) and contractor.contract_type != self.contract_type:
            return False
        if (
            _is_set(self.sponsoring_state)
            and contractor.sponsoring_state != self.sponsoring_state
        ):
            return False
        if (
            _is_set(self.contractual_year)
            and contractor.contractual_year != int(self.contractual_year)  # type: ignore[arg-type]
        ):
            return False
        return True


def filter_contractors(
    contractors: Iterable[Contractor], filters: MapFilters
) -> list[Contractor]:
    return [c for c in contractors if filters.matches(c)]


def visible_contractor_ids(
    data: MapData, filters: MapFilters, selected_contractor_id: EntityId | None = None
) -> frozenset[str]:
    """
    Contractors whose layers and stations are shown.

    A selected contractor wins over every other filter.
    """
    if selected_contractor_id is not None:
        return frozenset({str(selected_contractor_id)})
    return frozenset(str(c.contractor_id) for c in filter_contractors(data.contractors, filters))


def visible_stations(
    data: MapData, filters: MapFilters, selected_contractor_id: EntityId | None = None
) -> list[Station]:
    """
    Stations belonging to any contractor currently present in the filtered set.
    """
    if filters.is_empty() and selected_contractor_id is None:
        return [s for c in data.cruises for s in c.stations]

    ids = visible_contractor_ids(data, filters, selected_contractor_id)
    region = filters.region()
    out: list[Station] = []
    for cruise in data.cruises:
        if str(cruise.contractor_id) not in ids:
            continue
        for s in cruise.stations:
            if region is not None and not region.contains(s.longitude, s.latitude):
                continue
            out.append(s)
    return out


def visible_areas(
    areas: Iterable[AreaLayer],
    data: MapData,
    filters: MapFilters,
    selected_contractor_id: EntityId | None = None,
) -> list[AreaLayer]:
    if filters.is_empty() and selected_contractor_id is None:
        return list(areas)

    ids = visible_contractor_ids(data, filters, selected_contractor_id)
    region = filters.region()
    out: list[AreaLayer] = []
    for a in areas:
        if str(a.contractor_id) not in ids:
            continue
        if region is not None and a.center is not None:
            if not region.contains(a.center[0], a.center[1]):
                continue
        out.append(a)
    return out

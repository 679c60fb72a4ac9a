from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from layers.types import AreaLayer, EntityId, MapData


@dataclass(frozen=True)
class MapSummary:
    contractor_count: int
    area_count: int
    block_count: int
    cruise_count: int
    station_count: int
    total_area_size_km2: float
    contract_types: dict[str, int] = field(default_factory=dict)
    sponsoring_states: dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "contractorCount": self.contractor_count,
            "areaCount": self.area_count,
            "blockCount": self.block_count,
            "cruiseCount": self.cruise_count,
            "stationCount": self.station_count,
            "totalAreaSizeKm2": self.total_area_size_km2,
            "contractTypes": dict(self.contract_types),
            "sponsoringStates": dict(self.sponsoring_states),
        }


def summarize(
    data: MapData,
    visible_areas: Sequence[AreaLayer],
    selected_contractor_id: EntityId | None = None,
) -> MapSummary:
    """
    Aggregate counts for the summary panel.

    Area and block figures come from the loaded (visible) layers; contract types and
    sponsoring states are counted over the selected contractor, or all of them.
    """
    total_km2 = 0.0
    for a in visible_areas:
        v = a.total_area_size_km2
        if v is not None and not math.isnan(v):
            total_km2 += v

    contract_types: dict[str, int] = {}
    states: dict[str, int] = {}
    for c in data.contractors:
        if selected_contractor_id is not None and str(c.contractor_id) != str(selected_contractor_id):
            continue
        if c.contract_type:
            contract_types[c.contract_type] = contract_types.get(c.contract_type, 0) + 1
        if c.sponsoring_state:
            states[c.sponsoring_state] = states.get(c.sponsoring_state, 0) + 1

    return MapSummary(
        contractor_count=len(data.contractors),
        area_count=len(visible_areas),
        block_count=sum(len(a.blocks) for a in visible_areas),
        cruise_count=len(data.cruises),
        station_count=sum(len(c.stations) for c in data.cruises),
        total_area_size_km2=total_km2,
        contract_types=contract_types,
        sponsoring_states=states,
    )

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping

from explorer.actuator import ViewportActuator
from explorer.config import toast_duration_s
from explorer.geodata import GeoDataCache
from explorer.summaries import ContractorSummary, SummaryCache
from layers.types import Cruise, EntityId, Station
from upstream.client import UpstreamClient

log = logging.getLogger(__name__)


class SelectionKind(str, Enum):
    none = "none"
    station = "station"
    cruise = "cruise"
    block_analytics = "blockAnalytics"
    contractor_summary = "contractorSummary"


@dataclass(frozen=True)
class Toast:
    message: str
    created_at: float
    duration_s: float

    def expired(self, now: float) -> bool:
        return self.duration_s > 0 and now - self.created_at >= self.duration_s


@dataclass(frozen=True)
class BlockAnalytics:
    block_id: EntityId
    data: Mapping[str, Any]


@dataclass(frozen=True)
class SelectionState:
    kind: SelectionKind = SelectionKind.none
    station: Station | None = None
    cruise_id: EntityId | None = None
    block_analytics: BlockAnalytics | None = None
    # Summary of the selected contractor, kept across `close_panel`.
    contractor_summary: ContractorSummary | None = None
    selected_contractor_id: EntityId | None = None
    panel_visible: bool = False
    summary_panel_visible: bool = False
    show_cruises: bool = False
    popup: Station | None = None
    toast: Toast | None = None


class SelectionCoordinator:
    """
    Decides which detail panel is open and what it shows.

    Each command swaps in a new `SelectionState`; the previous object is never
    modified, so renderers can hold on to the one they drew.
    """

    def __init__(
        self,
        *,
        client: UpstreamClient,
        summaries: SummaryCache,
        geodata: GeoDataCache,
        actuator: ViewportActuator,
        clock: Callable[[], float] = time.monotonic,
        toast_duration: float | None = None,
    ):
        self._client = client
        self._summaries = summaries
        self._geodata = geodata
        self._actuator = actuator
        self._clock = clock
        self._toast_duration = toast_duration_s() if toast_duration is None else toast_duration
        self._state = SelectionState()
        self._block_request = 0

    @property
    def state(self) -> SelectionState:
        return self._state

    def _set(self, **changes: Any) -> SelectionState:
        self._state = replace(self._state, **changes)
        return self._state

    def _open(self, kind: SelectionKind, **data: Any) -> SelectionState:
        # Switching the panel drops the transient data of the previous one.
        changes: dict[str, Any] = {
            "kind": kind,
            "station": None,
            "cruise_id": None,
            "block_analytics": None,
            "panel_visible": True,
            "summary_panel_visible": False,
            "popup": None,
        }
        changes.update(data)
        return self._set(**changes)

    def select_station(self, station: Station) -> SelectionState:
        return self._open(SelectionKind.station, station=station)

    async def select_cruise(self, cruise: Cruise) -> SelectionState:
        self._set(show_cruises=True)
        move = self._actuator.zoom_to_cruise(cruise)
        if move is not None:
            await move.finished
        return self._open(SelectionKind.cruise, cruise_id=cruise.cruise_id)

    async def select_block(self, block_id: EntityId) -> SelectionState:
        self._block_request += 1
        request = self._block_request
        res = await self._client.block_analytics(block_id)
        if request != self._block_request:
            log.debug("Block %s analytics superseded by a newer selection", block_id)
            return self._state
        if not res.ok:
            log.warning("Block analytics fetch failed for %s: %s", block_id, res.error)
            self.show_toast("Error fetching block data")
            return self._state

        data = res.data if isinstance(res.data, dict) else {"value": res.data}
        state = self._open(
            SelectionKind.block_analytics,
            block_analytics=BlockAnalytics(block_id=block_id, data=MappingProxyType(data)),
        )
        block = self._geodata.find_block(block_id)
        if block is not None:
            self._actuator.zoom_to_block(block)
        return state

    async def view_contractor_summary(self) -> SelectionState:
        cid = self._state.selected_contractor_id
        if cid is None:
            return self._state

        cached = self._state.contractor_summary or self._summaries.peek(cid)
        if cached is not None:
            return self._open(SelectionKind.contractor_summary, contractor_summary=cached)

        res = await self._summaries.get(cid)
        if self._state.selected_contractor_id != cid:
            # contractor changed while the summary was loading
            return self._state
        if not res.ok:
            self.show_toast("Error fetching contractor summary")
            return self._state
        return self._open(SelectionKind.contractor_summary, contractor_summary=res.data)

    def select_contractor(self, contractor_id: EntityId | None) -> SelectionState:
        changes: dict[str, Any] = {
            "selected_contractor_id": contractor_id,
            "station": None,
            "block_analytics": None,
            "contractor_summary": (
                self._summaries.peek(contractor_id) if contractor_id is not None else None
            ),
        }
        if self._state.kind in (
            SelectionKind.station,
            SelectionKind.block_analytics,
            SelectionKind.contractor_summary,
        ):
            changes.update(kind=SelectionKind.none, panel_visible=False)
        return self._set(**changes)

    def close_panel(self) -> SelectionState:
        # Keeps the selected contractor and its summary.
        return self._set(
            kind=SelectionKind.none,
            panel_visible=False,
            station=None,
            cruise_id=None,
            block_analytics=None,
        )

    def close_all(self) -> SelectionState:
        return self._set(
            kind=SelectionKind.none,
            panel_visible=False,
            summary_panel_visible=False,
            station=None,
            cruise_id=None,
            block_analytics=None,
            contractor_summary=None,
        )

    def hover_station(self, station: Station | None, show: bool) -> SelectionState:
        return self._set(popup=station if show else None)

    def toggle_summary_panel(self, show: bool) -> SelectionState:
        if show:
            return self._set(summary_panel_visible=True, panel_visible=False)
        return self._set(summary_panel_visible=False)

    def show_toast(self, message: str) -> SelectionState:
        return self._set(
            toast=Toast(message=message, created_at=self._clock(), duration_s=self._toast_duration)
        )

    def dismiss_toast(self) -> SelectionState:
        return self._set(toast=None)

    def active_toast(self) -> Toast | None:
        toast = self._state.toast
        if toast is not None and toast.expired(self._clock()):
            self._set(toast=None)
            return None
        return toast

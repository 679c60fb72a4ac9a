from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Literal, Protocol

from geo.aoi import BBox


CameraKind = Literal["fit_bounds", "fly_to"]


@dataclass(frozen=True)
class CameraCommand:
    """
    One programmatic camera transition for the map engine.
    """

    kind: CameraKind
    duration_ms: int
    bounds: BBox | None = None
    center_lonlat: tuple[float, float] | None = None
    zoom: float | None = None
    padding_px: int = 0
    max_zoom: float | None = None
    reason: str = ""

    @property
    def center(self) -> tuple[float, float]:
        # (lon, lat) the camera will be centered on.
        if self.center_lonlat is not None:
            return self.center_lonlat
        assert self.bounds is not None
        return self.bounds.center

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "kind": self.kind,
            "durationMs": self.duration_ms,
            "reason": self.reason,
        }
        if self.bounds is not None:
            out["bounds"] = self.bounds.as_dict()
            out["padding"] = self.padding_px
        if self.center_lonlat is not None:
            out["center"] = {"lon": self.center_lonlat[0], "lat": self.center_lonlat[1]}
        if self.zoom is not None:
            out["zoom"] = self.zoom
        if self.max_zoom is not None:
            out["maxZoom"] = self.max_zoom
        return out


class MapEngine(Protocol):
    """
    The rendering engine, seen from the orchestration layer.

    `execute` starts the transition and returns an awaitable that resolves when the
    engine reports the move as finished.
    """

    def execute(self, command: CameraCommand) -> Awaitable[None]: ...


@dataclass
class QueuedMapEngine:
    """
    Map engine adapter for a remote renderer: commands are queued for the client to
    drain. With `auto_complete` the move counts as finished once queued; otherwise
    the client acknowledges each command with `complete`.
    """

    auto_complete: bool = True
    _queue: list[tuple[int, CameraCommand]] = field(default_factory=list)
    _pending: dict[int, asyncio.Future[None]] = field(default_factory=dict)
    _seq: int = 0
    history: list[CameraCommand] = field(default_factory=list)

    def execute(self, command: CameraCommand) -> Awaitable[None]:
        self._seq += 1
        self._queue.append((self._seq, command))
        self.history.append(command)
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        if self.auto_complete:
            fut.set_result(None)
        else:
            self._pending[self._seq] = fut
        return fut

    def drain(self) -> list[tuple[int, CameraCommand]]:
        out, self._queue = self._queue, []
        return out

    def complete(self, seq: int) -> bool:
        fut = self._pending.pop(int(seq), None)
        if fut is None:
            return False
        if not fut.done():
            fut.set_result(None)
        return True

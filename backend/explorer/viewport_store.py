from __future__ import annotations

import logging
from typing import Callable

from geo.aoi import BBox
from geo.viewport import WORLD_VIEW, Viewport, viewport_bounds

log = logging.getLogger(__name__)

ViewportListener = Callable[[Viewport, "BBox | None"], None]


class ViewportStore:
    """
    Owner of the camera state.

    Every viewport write notifies listeners synchronously, in subscription order,
    before `set_viewport` returns. Writes are user navigation unless flagged as
    programmatic or made while a programmatic move is running.
    """

    def __init__(self, initial: Viewport = WORLD_VIEW):
        self._viewport = initial
        self._surface: tuple[int, int] | None = None
        self._bounds: BBox | None = None
        self._user_navigated = False
        self._programmatic_depth = 0
        self._listeners: list[ViewportListener] = []

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    @property
    def surface(self) -> tuple[int, int] | None:
        return self._surface

    @property
    def user_navigated(self) -> bool:
        return self._user_navigated

    @property
    def programmatic_move_active(self) -> bool:
        return self._programmatic_depth > 0

    def bounds(self) -> BBox | None:
        # None until the surface has been laid out once.
        return self._bounds

    def subscribe(self, listener: ViewportListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_surface(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"surface size must be positive, got {width}x{height}")
        self._surface = (int(width), int(height))
        log.debug("Map surface laid out at %dx%d", width, height)
        self._bounds = self._compute_bounds()
        self._notify()

    def set_viewport(self, viewport: Viewport, *, programmatic: bool = False) -> None:
        self._viewport = viewport
        if not programmatic and self._programmatic_depth == 0:
            self._user_navigated = True
        self._bounds = self._compute_bounds()
        self._notify()

    def reset_user_navigation(self) -> None:
        self._user_navigated = False

    def begin_programmatic_move(self) -> Callable[[], None]:
        """
        Mark a camera animation as running; viewport writes until the returned
        release function is called are programmatic. Release is idempotent.
        """
        self._programmatic_depth += 1
        released = False

        def release() -> None:
            nonlocal released
            if not released:
                released = True
                self._programmatic_depth -= 1

        return release

    def _compute_bounds(self) -> BBox | None:
        if self._surface is None:
            return None
        width, height = self._surface
        return viewport_bounds(self._viewport, width=width, height=height)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._viewport, self._bounds)

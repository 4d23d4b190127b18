from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from maps.types import TOTAL_REGION, MapMetadata, RegionSelector
from scene.graph import Scene
from scene.tween import TransitionScheduler
from topology.types import Feature

logger = logging.getLogger(__name__)


class ZoomState(str, Enum):
    ready = "READY"
    loading = "LOADING"
    transitioning = "TRANSITIONING"


class TouchState(str, Enum):
    idle = "IDLE"
    touch_pending = "TOUCH-PENDING"


class ZoomCoordinator:
    """
    Drill-down state machine for one map view.

    READY -> LOADING -> READY around geometry fetches, and
    READY -> TRANSITIONING -> READY around a drill-down. Pointer events on the
    scene stay disabled for the whole transition.

    A touch-start followed by a click on the same feature (without a leave in
    between) is an "inspect" gesture and does not drill down.
    """

    def __init__(
        self,
        scene: Scene,
        *,
        request_map_switch: Callable[[str], None] | None = None,
        scheduler: TransitionScheduler | None = None,
    ):
        self.scene = scene
        self.request_map_switch = request_map_switch
        self.scheduler = scheduler
        self.state = ZoomState.ready
        self.touch_target: str | None = None
        self._from_map: str | None = None

    @property
    def touch_state(self) -> TouchState:
        return TouchState.idle if self.touch_target is None else TouchState.touch_pending

    # --- touch disambiguation

    def touch_start(self, feature_id: str) -> None:
        if self.touch_target == feature_id:
            self.touch_target = None
        else:
            self.touch_target = feature_id

    def pointer_leave(self, feature_id: str) -> None:
        if self.touch_target == feature_id:
            self.touch_target = None

    # --- drill-down

    def click(self, feature: Feature, meta: MapMetadata) -> bool:
        """
        Handle a region click; returns True when a map switch was requested.
        """
        if meta.map_type == "state":
            return False
        if self.touch_target == feature.id:
            return False
        if self.state == ZoomState.transitioning:
            return False

        self.state = ZoomState.transitioning
        self._from_map = meta.name
        self._set_pointer_events(False)
        logger.debug("Drill-down %s -> %s", meta.name, feature.state)
        if self.request_map_switch is not None:
            self.request_map_switch(feature.state)
        return True

    def click_outside(self, meta: MapMetadata) -> RegionSelector | None:
        # A state map has no country total to fall back to.
        if meta.map_type == "state":
            return None
        return RegionSelector(state=TOTAL_REGION)

    # --- render lifecycle

    def begin_fetch(self) -> None:
        if self.state == ZoomState.ready:
            self.state = ZoomState.loading

    def painted(self, meta: MapMetadata | None) -> None:
        """
        Called after a render pass (meta is None when geometry failed to load).
        """
        if self.state == ZoomState.transitioning:
            if meta is not None and meta.name == self._from_map:
                # Still the old map: keep waiting for the drilled-in one.
                return
            self._from_map = None
            self.state = ZoomState.ready
            if self.scheduler is not None:
                # Stay locked until the drilled-in map has finished animating.
                self.scheduler.on_idle(self._unlock)
                return
        self.state = ZoomState.ready
        self._set_pointer_events(True)

    @property
    def locked(self) -> bool:
        return self.state == ZoomState.transitioning

    def _unlock(self) -> None:
        if self.state != ZoomState.transitioning:
            self._set_pointer_events(True)

    def _set_pointer_events(self, enabled: bool) -> None:
        self.scene.pointer_events = enabled
        for shape in self.scene.regions:
            shape.pointer_events = enabled

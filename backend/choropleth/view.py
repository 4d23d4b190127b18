from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping

from choropleth.plot import build_choropleth_plot
from geo.projection import ProjectionBuilder, Projected
from interaction.highlight import HighlightController
from interaction.zoom import ZoomCoordinator
from maps.types import (
    MapMetadata,
    MapStatistic,
    RegionSelector,
    StatisticAggregate,
    StatisticMapping,
)
from scene.borders import BorderRenderer
from scene.colors import ColorScale, ColorScaleEngine
from scene.graph import Scene, SceneDelta, Shape
from scene.regions import RegionRenderer
from scene.tween import TransitionScheduler
from topology.decode import feature_collection
from topology.loader import TopologyLoader

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT: tuple[float, float] = (900.0, 1000.0)
UNKNOWN_DISTRICT = "Unknown"


class ChoroplethMap:
    """
    Interactive choropleth view over a retained scene.

    Callers push map identity + statistics through `render()` and pointer
    events through `dispatch()` / `click_outside()`; the view reports back via
    `on_region_highlighted` and `request_map_switch`.
    """

    def __init__(
        self,
        *,
        loader: TopologyLoader | None = None,
        scheduler: TransitionScheduler | None = None,
        viewport: tuple[float, float] = DEFAULT_VIEWPORT,
        on_region_highlighted: Callable[[RegionSelector], None] | None = None,
        request_map_switch: Callable[[str], None] | None = None,
    ):
        self.scene = Scene()
        self.loader = loader or TopologyLoader()
        self.scheduler = scheduler or TransitionScheduler()
        self.viewport = viewport
        self.on_region_highlighted = on_region_highlighted
        self.request_map_switch = request_map_switch

        self.meta: MapMetadata | None = None
        self.mapping: StatisticMapping = {}
        self.aggregates: Mapping[str, StatisticAggregate] = {}
        self.metric = "confirmed"
        self.scale: ColorScale | None = None
        self.projected: Projected | None = None
        self.last_delta = SceneDelta()
        self.last_render_ms: float | None = None
        self._render_seq = 0

        self.projections = ProjectionBuilder()
        self.colors = ColorScaleEngine()
        self.regions = RegionRenderer(
            self.scene,
            self.scheduler,
            handlers={
                "mouseenter": self._on_mouseenter,
                "mouseleave": self._on_mouseleave,
                "touchstart": self._on_touchstart,
                "click": self._on_click,
            },
        )
        self.borders = BorderRenderer(self.scene, self.scheduler)
        self.highlight = HighlightController(
            self.scene, self.scheduler, stat=self._current_stat, metric=lambda: self.metric
        )
        self.zoom = ZoomCoordinator(
            self.scene, request_map_switch=self._emit_map_switch, scheduler=self.scheduler
        )

    # --- accessors read at event time

    def _current_stat(self) -> MapStatistic:
        return self.meta.stat if self.meta is not None else "total"

    # --- rendering

    async def render(
        self,
        meta: MapMetadata,
        mapping: StatisticMapping,
        aggregates: Mapping[str, StatisticAggregate],
        metric: str,
        *,
        viewport: tuple[float, float] | None = None,
        is_top_level: bool | None = None,
    ) -> SceneDelta | None:
        """
        One reconciliation pass. Returns None when nothing was painted.

        The previous scene stays untouched while geometry is being fetched.
        If a newer render starts meanwhile, this one is dropped.
        """
        self._render_seq += 1
        seq = self._render_seq
        started = time.perf_counter()
        if viewport is not None:
            self.viewport = viewport

        self.zoom.begin_fetch()
        topology = await self.loader.load(meta.geo_data_file)
        if seq != self._render_seq:
            return None

        if topology is None or not topology.has_object(meta.fill_object):
            if topology is not None:
                logger.warning(
                    "Map %s: object %s missing from %s",
                    meta.name,
                    meta.fill_object,
                    meta.geo_data_file,
                )
            self.meta = meta
            self.projected = None
            self.last_delta = self._clear_scene()
            self.zoom.painted(None)
            return None

        self.meta = meta
        self.mapping = mapping
        self.aggregates = aggregates
        self.metric = metric

        collection = feature_collection(topology, meta.fill_object, map_name=meta.name)
        top_level = meta.is_top_level if is_top_level is None else is_top_level
        projected = self.projections.project(self.viewport, collection, top_level, meta.name)
        if projected is None:
            logger.warning("Map %s has no polygon features", meta.name)
            self.projected = None
            self.last_delta = self._clear_scene()
            self.zoom.painted(None)
            return None
        self.projected = projected

        self.scale = self.colors.build(meta.stat, metric, aggregates)
        delta = self.regions.reconcile(
            collection.features,
            mapping,
            self.scale,
            metric,
            stat=meta.stat,
            aggregate=aggregates.get(metric),
            path=projected.path,
        )
        delta = delta.merge(
            self.borders.reconcile(
                topology,
                meta,
                metric,
                width=projected.viewbox.width,
                path=projected.path,
            )
        )
        self.highlight.reapply()
        self.scene.classes = {"zone"} if meta.stat == "zone" else set()
        self.zoom.painted(meta)

        self.last_delta = delta
        self.last_render_ms = (time.perf_counter() - started) * 1000.0
        return delta

    def _clear_scene(self) -> SceneDelta:
        self.scheduler.finish()
        return self.scene.clear()

    def tick(self, now_ms: float | None = None) -> int:
        return self.scheduler.tick(now_ms)

    # --- selection

    def set_region_highlighted(self, region: RegionSelector | None) -> Shape | None:
        """External setter; applies without emitting."""
        return self.highlight.set_highlighted(region)

    @property
    def region_highlighted(self) -> RegionSelector | None:
        return self.highlight.region

    def _select(self, region: RegionSelector) -> None:
        self.highlight.set_highlighted(region)
        if self.on_region_highlighted is not None:
            self.on_region_highlighted(region)

    def _emit_map_switch(self, state: str) -> None:
        if self.request_map_switch is not None:
            self.request_map_switch(state)

    # --- pointer events

    def dispatch(self, key: str, event: str) -> bool:
        """
        Deliver a pointer event to a region shape; False when ignored.
        """
        if not self.scene.pointer_events:
            return False
        shape = self.scene.regions.get(key)
        if shape is None or not shape.pointer_events:
            return False
        handler = shape.handlers.get(event)
        if handler is None:
            return False
        handler(shape)
        return True

    def click_outside(self) -> RegionSelector | None:
        if self.meta is None or not self.scene.pointer_events:
            return None
        region = self.zoom.click_outside(self.meta)
        if region is not None:
            self._select(region)
        return region

    def _on_mouseenter(self, shape: Shape) -> None:
        feature = shape.datum
        self._select(RegionSelector(state=feature.state, district=feature.district))

    def _on_mouseleave(self, shape: Shape) -> None:
        self.zoom.pointer_leave(shape.key)

    def _on_touchstart(self, shape: Shape) -> None:
        self.zoom.touch_start(shape.key)

    def _on_click(self, shape: Shape) -> None:
        if self.meta is not None:
            self.zoom.click(shape.datum, self.meta)

    # --- extras

    def disclaimer(self) -> str | None:
        """
        Notice shown on a state map when part of its numbers is not yet
        assigned to a district.
        """
        meta = self.meta
        if meta is None or meta.map_type != "state":
            return None
        unknown: Any = (self.mapping.get(meta.name) or {}).get(UNKNOWN_DISTRICT)
        if isinstance(unknown, Mapping) and unknown.get(self.metric):
            return f"District-wise {self.metric} numbers are under reconciliation"
        return None

    def plot(self) -> dict[str, Any]:
        return build_choropleth_plot(self)

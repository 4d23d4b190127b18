from __future__ import annotations

from typing import Callable

from maps.types import MapStatistic, RegionSelector
from scene.graph import Scene, Shape
from scene.regions import HOVER_CLASS, highlight_stroke
from scene.tween import TransitionScheduler


def matches_region(shape: Shape, region: RegionSelector) -> bool:
    props = getattr(shape.datum, "props", None) or {}
    return (
        region.state == props.get("st_nm")
        and (region.district or None) == (props.get("district") or None)
    )


class HighlightController:
    """
    Single authority for the highlighted region shape.

    It only applies selections; it never emits them, so hover-driven and
    externally-driven selections can share it without feedback loops.
    """

    def __init__(
        self,
        scene: Scene,
        scheduler: TransitionScheduler,
        *,
        stat: Callable[[], MapStatistic],
        metric: Callable[[], str],
    ):
        self.scene = scene
        self.scheduler = scheduler
        self._stat = stat
        self._metric = metric
        self.region: RegionSelector | None = None

    def set_highlighted(self, region: RegionSelector | None) -> Shape | None:
        self.region = region
        found: Shape | None = None
        for shape in self.scene.regions:
            self.scheduler.set_now(shape, "stroke", None)
            hit = region is not None and found is None and matches_region(shape, region)
            shape.set_classed(HOVER_CLASS, hit)
            if hit:
                found = shape

        if found is not None:
            self.scene.regions.append(found)
            self.scheduler.set_now(
                found, "stroke", highlight_stroke(self._stat(), self._metric())
            )
        return found

    def reapply(self) -> Shape | None:
        return self.set_highlighted(self.region)

    def highlighted(self) -> list[Shape]:
        return [s for s in self.scene.regions if s.classed(HOVER_CLASS)]

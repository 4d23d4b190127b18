from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable

from maps.types import MapStatistic, StatisticAggregate, StatisticMapping
from scene.colors import TRANSPARENT, ZONE_STROKE, ColorScale, case_color
from scene.graph import Handler, Scene, SceneDelta, Shape
from scene.tween import TransitionScheduler
from topology.types import Feature

REGION_CLASS = "path-region"
HOVER_CLASS = "map-hover"
REGION_EVENTS: tuple[str, ...] = ("mouseenter", "mouseleave", "touchstart", "click")

PathFn = Callable[[Any], tuple[list[float | None], list[float | None]]]


def region_value(
    feature: Feature, mapping: StatisticMapping, metric: str, stat: MapStatistic
) -> Any:
    """
    The statistic for one region; missing data is 0.

    Zone maps hold a category label per district instead of metric numbers.
    """
    state_data = mapping.get(feature.state) or {}
    district = feature.district
    if stat == "zone":
        return state_data.get(district) or 0
    if district:
        district_data = state_data.get(district) or {}
        return district_data.get(metric) or 0
    return state_data.get(metric) or 0


def fill_color(value: Any, scale: ColorScale) -> str:
    if not value:
        return TRANSPARENT
    return scale(value) or TRANSPARENT


def highlight_stroke(stat: MapStatistic, metric: str) -> str | None:
    if stat == "zone":
        return ZONE_STROKE
    return case_color(metric)


def capitalize_all(s: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in s.lower().split(" "))


def format_percent(n: float, total: float) -> str:
    """Two decimals, halves rounded up, trailing zeros dropped."""
    ratio = Decimal(str(float(n))) * 100 / Decimal(str(max(float(total), 0.001)))
    pct = ratio.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return format(pct.normalize(), "f")


def tooltip_text(value: Any, aggregate: StatisticAggregate | None, name: str) -> str:
    total = aggregate.total if aggregate is not None else 0.0
    n = value if isinstance(value, (int, float)) else 0
    return f"{format_percent(n, total)}% from {capitalize_all(name)}"


class RegionRenderer:
    """
    Reconciles region shapes against features and statistic values.

    Shapes are joined by feature id; handlers are bound once when a shape is
    created and read the shape's current datum when they fire.
    """

    def __init__(
        self,
        scene: Scene,
        scheduler: TransitionScheduler,
        handlers: dict[str, Handler] | None = None,
    ):
        self.scene = scene
        self.scheduler = scheduler
        self.handlers = dict(handlers or {})

    def _create(self, feature: Feature, path: PathFn) -> Shape:
        shape = Shape(key=feature.id, path=path(feature.geometry), datum=feature)
        for event in REGION_EVENTS:
            h = self.handlers.get(event)
            if h is not None:
                shape.on(event, h)
        return shape

    def reconcile(
        self,
        features: list[Feature],
        mapping: StatisticMapping,
        scale: ColorScale,
        metric: str,
        *,
        stat: MapStatistic,
        aggregate: StatisticAggregate | None,
        path: PathFn,
    ) -> SceneDelta:
        group = self.scene.regions
        delta = SceneDelta()

        incoming = {f.id for f in features}
        for key in group.keys():
            if key not in incoming:
                removed = group.remove(key)
                if removed is not None:
                    self.scheduler.cancel(removed)
                delta.removed.append(key)

        for feature in features:
            shape = group.get(feature.id)
            if shape is None:
                shape = group.append(self._create(feature, path))
                delta.added.append(feature.id)
            else:
                shape.datum = feature
                delta.updated.append(feature.id)

            hovered = shape.classed(HOVER_CLASS)
            shape.classes = {REGION_CLASS, metric}
            shape.set_classed(HOVER_CLASS, hovered)

            value = region_value(feature, mapping, metric, stat)
            self.scheduler.animate(shape, "fill", fill_color(value, scale))

            if hovered:
                group.append(shape)
                self.scheduler.animate(shape, "stroke", highlight_stroke(stat, metric))
            else:
                self.scheduler.animate(shape, "stroke", None)

            shape.title = (
                tooltip_text(value, aggregate, feature.display_name)
                if stat == "total"
                else None
            )

        return delta

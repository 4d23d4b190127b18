from __future__ import annotations

from maps.types import MapMetadata
from scene.colors import case_color
from scene.graph import DISTRICT_BORDERS, STATE_BORDERS, Group, Scene, SceneDelta, Shape
from scene.regions import PathFn
from scene.tween import TransitionScheduler
from topology.decode import mesh
from topology.types import Mesh, Topology

STRUCTURE_STROKE = "#343a4099"
ZONE_BORDER_STROKE = "#00000060"
# Border width relative to the ViewBox width.
BORDER_WIDTH_DIVISOR = 250.0


def border_width(width: float) -> float:
    return float(width) / BORDER_WIDTH_DIVISOR


def primary_border_width(meta: MapMetadata, width: float) -> float:
    # District borders stay hidden at country zoom; they appear once drilled in.
    if meta.map_type == "country" and meta.view == "districts":
        return 0.0
    return border_width(width)


def primary_border_stroke(meta: MapMetadata, metric: str) -> str | None:
    if meta.stat == "zone":
        return ZONE_BORDER_STROKE
    return case_color(metric, "30")


def meshes_for(topology: Topology, meta: MapMetadata) -> tuple[list[Mesh], list[Mesh]]:
    """
    (state meshes, district meshes) that exist for this map and view.
    """
    states: list[Mesh] = []
    if meta.map_type == "country" and topology.has_object(meta.states_object):
        states = [mesh(topology, meta.states_object)]  # type: ignore[arg-type]
    districts: list[Mesh] = []
    if meta.view == "districts" and topology.has_object(meta.districts_object):
        districts = [mesh(topology, meta.districts_object)]
    return states, districts


class BorderRenderer:
    """
    Two overlay layers of border lines.

    The layer matching the current view is tinted by the active metric; the
    other one is a neutral structural layer.
    """

    def __init__(self, scene: Scene, scheduler: TransitionScheduler):
        self.scene = scene
        self.scheduler = scheduler

    def _join(
        self,
        group: Group,
        meshes: list[Mesh],
        *,
        width: float,
        stroke: str | None,
        path: PathFn,
        delta: SceneDelta,
    ) -> None:
        incoming = {m.id for m in meshes}
        for key in group.keys():
            if key not in incoming:
                removed = group.remove(key)
                if removed is not None:
                    self.scheduler.cancel(removed)
                delta.removed.append(key)

        for m in meshes:
            shape = group.get(m.id)
            if shape is None:
                # Width is assigned once, when the mesh first appears.
                shape = group.append(
                    Shape(
                        key=m.id,
                        path=path(m.lines),
                        datum=m,
                        fill="none",
                        stroke_width=width,
                        pointer_events=False,
                    )
                )
                delta.added.append(m.id)
            else:
                shape.datum = m
                delta.updated.append(m.id)
            self.scheduler.animate(shape, "stroke", stroke)

    def reconcile(
        self,
        topology: Topology,
        meta: MapMetadata,
        metric: str,
        *,
        width: float,
        path: PathFn,
    ) -> SceneDelta:
        states, districts = meshes_for(topology, meta)
        delta = SceneDelta()

        if meta.view == "states":
            primary, primary_meshes = STATE_BORDERS, states
            secondary, secondary_meshes = DISTRICT_BORDERS, districts
        else:
            primary, primary_meshes = DISTRICT_BORDERS, districts
            secondary, secondary_meshes = STATE_BORDERS, states

        self._join(
            self.scene.group(primary),
            primary_meshes,
            width=primary_border_width(meta, width),
            stroke=primary_border_stroke(meta, metric),
            path=path,
            delta=delta,
        )
        self._join(
            self.scene.group(secondary),
            secondary_meshes,
            width=border_width(width),
            stroke=STRUCTURE_STROKE,
            path=path,
            delta=delta,
        )
        return delta

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from shapely.geometry import MultiLineString, MultiPolygon, Polygon


@dataclass(frozen=True)
class Feature:
    """
    One renderable region.

    `id` is "{map}-{state}" or "{map}-{state}-{district}" and is the join key
    used when reconciling region shapes across redraws.
    """

    id: str
    geometry: Polygon | MultiPolygon
    props: dict[str, Any]

    @property
    def state(self) -> str:
        return str(self.props.get("st_nm") or "")

    @property
    def district(self) -> str | None:
        d = self.props.get("district")
        return str(d) if d else None

    @property
    def display_name(self) -> str:
        return self.district or self.state


@dataclass(frozen=True)
class FeatureCollection:
    features: list[Feature]

    def bounds(self) -> tuple[float, float, float, float] | None:
        if not self.features:
            return None
        xs0, ys0, xs1, ys1 = zip(*(f.geometry.bounds for f in self.features))
        return min(xs0), min(ys0), max(xs1), max(ys1)


@dataclass(frozen=True)
class Mesh:
    """
    Border lines derived from one topology object (each shared arc once).
    """

    id: str
    lines: MultiLineString


@dataclass
class Topology:
    """
    A decoded TopoJSON document.

    Arcs are decoded once; features and meshes per object are cached.
    """

    objects: dict[str, Any]
    arcs: list[list[tuple[float, float]]]
    _features: dict[str, list[tuple[Polygon | MultiPolygon, dict[str, Any]]]] = field(
        default_factory=dict, repr=False
    )
    _meshes: dict[str, Mesh] = field(default_factory=dict, repr=False)

    def has_object(self, name: str | None) -> bool:
        return bool(name) and name in self.objects

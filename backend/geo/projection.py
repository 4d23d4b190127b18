from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterable

import numpy as np
import shapely
from pyproj import Transformer
from shapely.geometry import LineString, MultiLineString, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

from geo.viewbox import ViewBox
from topology.types import FeatureCollection

# Plotly-style path: coordinate runs separated by None.
PathData = tuple[list[float | None], list[float | None]]
Bounds = tuple[float, float, float, float]


@lru_cache(maxsize=1)
def transformer_4326_to_3857() -> Transformer:
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


def _raw_xy(lon: Any, lat: Any) -> tuple[Any, Any]:
    x, y = transformer_4326_to_3857().transform(np.asarray(lon), np.asarray(lat))
    # Screen space: y grows downwards.
    return x, -y


def raw_bounds(geo_bounds: Bounds) -> Bounds:
    """
    Mercator bounds (scale 1, no translate) of a lon/lat bbox.

    Mercator x depends on lon only and y on lat only, so the corners suffice.
    """
    min_lon, min_lat, max_lon, max_lat = geo_bounds
    x0, y0 = _raw_xy(min_lon, max_lat)
    x1, y1 = _raw_xy(max_lon, min_lat)
    return float(x0), float(y0), float(x1), float(y1)


@dataclass(frozen=True)
class MercatorProjection:
    scale: float = 1.0
    translate: tuple[float, float] = (0.0, 0.0)

    def __call__(self, lon: Any, lat: Any) -> tuple[Any, Any]:
        x, y = _raw_xy(lon, lat)
        tx, ty = self.translate
        return x * self.scale + tx, y * self.scale + ty

    def project_geometry(self, geom: BaseGeometry) -> BaseGeometry:
        # Coordinates go through as whole x / y arrays.
        return shapely.transform(geom, self, interleaved=False)

    def bounds(self, geo_bounds: Bounds) -> Bounds:
        x0, y0, x1, y1 = raw_bounds(geo_bounds)
        tx, ty = self.translate
        k = self.scale
        return x0 * k + tx, y0 * k + ty, x1 * k + tx, y1 * k + ty


def _span(a: float, b: float) -> float:
    d = b - a
    return d if d > 0 else 1e-9


def fit_extent(
    extent: tuple[tuple[float, float], tuple[float, float]], geo_bounds: Bounds
) -> MercatorProjection:
    (ex0, ey0), (ex1, ey1) = extent
    w, h = ex1 - ex0, ey1 - ey0
    bx0, by0, bx1, by1 = raw_bounds(geo_bounds)
    k = min(w / _span(bx0, bx1), h / _span(by0, by1))
    x = ex0 + (w - k * (bx1 + bx0)) / 2.0
    y = ey0 + (h - k * (by1 + by0)) / 2.0
    return MercatorProjection(scale=k, translate=(x, y))


def fit_size(size: tuple[float, float], geo_bounds: Bounds) -> MercatorProjection:
    w, h = size
    return fit_extent(((0.0, 0.0), (float(w), float(h))), geo_bounds)


def fit_width(width: float, geo_bounds: Bounds) -> MercatorProjection:
    # Height is free: anchor the top edge at y=0.
    w = float(width)
    bx0, by0, bx1, _by1 = raw_bounds(geo_bounds)
    k = w / _span(bx0, bx1)
    x = (w - k * (bx1 + bx0)) / 2.0
    y = -k * by0
    return MercatorProjection(scale=k, translate=(x, y))


def _rings(geom: BaseGeometry) -> Iterable[Iterable[tuple[float, float]]]:
    if isinstance(geom, Polygon):
        if geom.is_empty:
            return
        yield geom.exterior.coords
        for interior in geom.interiors:
            yield interior.coords
    elif isinstance(geom, MultiPolygon):
        for p in geom.geoms:
            yield from _rings(p)
    elif isinstance(geom, LineString):
        if not geom.is_empty:
            yield geom.coords
    elif isinstance(geom, MultiLineString):
        for line in geom.geoms:
            yield from _rings(line)


def geometry_path(geom: BaseGeometry) -> PathData:
    xs: list[float | None] = []
    ys: list[float | None] = []
    for coords in _rings(geom):
        for x, y in coords:
            xs.append(float(x))
            ys.append(float(y))
        xs.append(None)
        ys.append(None)
    return xs, ys


@dataclass(frozen=True)
class Projected:
    projection: MercatorProjection
    viewbox: ViewBox

    def path(self, geom: BaseGeometry) -> PathData:
        return geometry_path(self.projection.project_geometry(geom))


@dataclass
class ProjectionBuilder:
    """
    Projection + path generator per map identity.

    The first call for a map fits the geometry to the viewport (width only for
    the top-level map) and freezes the resulting ViewBox. Later calls refit the
    projection inside that frozen box.
    """

    _viewboxes: dict[str, ViewBox] = field(default_factory=dict, repr=False)

    def viewbox_for(self, map_name: str) -> ViewBox | None:
        return self._viewboxes.get(map_name)

    def project(
        self,
        viewport: tuple[float, float],
        collection: FeatureCollection,
        is_top_level: bool,
        map_name: str,
    ) -> Projected | None:
        geo_bounds = collection.bounds()
        if geo_bounds is None:
            return None

        viewbox = self._viewboxes.get(map_name)
        if viewbox is None:
            width, height = float(viewport[0]), float(viewport[1])
            first = (
                fit_width(width, geo_bounds)
                if is_top_level
                else fit_size((width, height), geo_bounds)
            )
            _x0, _y0, x1, y1 = first.bounds(geo_bounds)
            viewbox = ViewBox(min_x=0.0, min_y=0.0, width=x1, height=y1)
            self._viewboxes[map_name] = viewbox

        projection = fit_size((viewbox.width, viewbox.height), geo_bounds)
        return Projected(projection=projection, viewbox=viewbox)

    def reset(self, map_name: str | None = None) -> None:
        if map_name is None:
            self._viewboxes.clear()
        else:
            self._viewboxes.pop(map_name, None)

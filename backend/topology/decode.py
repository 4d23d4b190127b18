from __future__ import annotations

import logging
from typing import Any, Iterable

from shapely.geometry import LineString, MultiLineString, MultiPolygon, Polygon
from shapely.ops import linemerge

from topology.types import Feature, FeatureCollection, Mesh, Topology

logger = logging.getLogger(__name__)

_POLYGONAL = {"Polygon", "MultiPolygon"}


def parse_topology(data: Any) -> Topology:
    """
    Decode a TopoJSON document (quantized or not) into absolute arcs.

    Raises ValueError when the document is not a Topology.
    """
    if not isinstance(data, dict) or data.get("type") != "Topology":
        raise ValueError("Not a TopoJSON Topology document")
    objects = data.get("objects")
    if not isinstance(objects, dict):
        raise ValueError("TopoJSON document has no `objects`")

    transform = data.get("transform") or None
    arcs = [_decode_arc(arc, transform) for arc in (data.get("arcs") or [])]
    return Topology(objects=objects, arcs=arcs)


def _decode_arc(arc: Any, transform: dict | None) -> list[tuple[float, float]]:
    out: list[tuple[float, float]] = []
    if transform is None:
        for p in arc or []:
            out.append((float(p[0]), float(p[1])))
        return out

    sx, sy = transform.get("scale") or (1.0, 1.0)
    tx, ty = transform.get("translate") or (0.0, 0.0)
    # Quantized arcs are delta-encoded.
    x = y = 0
    for p in arc or []:
        x += p[0]
        y += p[1]
        out.append((x * float(sx) + float(tx), y * float(sy) + float(ty)))
    return out


def _arc_points(topology: Topology, index: int) -> list[tuple[float, float]]:
    if index < 0:
        return list(reversed(topology.arcs[~index]))
    return topology.arcs[index]


def _ring(topology: Topology, arc_indexes: Iterable[int]) -> list[tuple[float, float]]:
    points: list[tuple[float, float]] = []
    for i, index in enumerate(arc_indexes):
        pts = _arc_points(topology, int(index))
        # Consecutive arcs share their joining vertex.
        points.extend(pts[1:] if i > 0 and points else pts)
    return points


def _polygon(topology: Topology, rings: list[list[int]]) -> Polygon | None:
    decoded = [_ring(topology, r) for r in rings or []]
    decoded = [r for r in decoded if len(r) >= 4]
    if not decoded:
        return None
    return Polygon(decoded[0], decoded[1:])


def _geometry(topology: Topology, geom: dict) -> Polygon | MultiPolygon | None:
    gtype = geom.get("type")
    if gtype == "Polygon":
        return _polygon(topology, geom.get("arcs") or [])
    if gtype == "MultiPolygon":
        polys = [_polygon(topology, p) for p in geom.get("arcs") or []]
        polys = [p for p in polys if p is not None]
        if not polys:
            return None
        return MultiPolygon(polys) if len(polys) > 1 else polys[0]
    return None


def _flatten(geom: dict) -> Iterable[dict]:
    if geom.get("type") == "GeometryCollection":
        for g in geom.get("geometries") or []:
            yield from _flatten(g or {})
    else:
        yield geom


def object_geometries(
    topology: Topology, object_name: str
) -> list[tuple[Polygon | MultiPolygon, dict[str, Any]]]:
    """
    Polygonal geometries and their properties for one named object.

    Non-polygonal and null geometries are skipped.
    """
    cached = topology._features.get(object_name)
    if cached is not None:
        return cached
    obj = topology.objects.get(object_name)
    if obj is None:
        raise ValueError(f"TopoJSON object not found: {object_name}")

    out: list[tuple[Polygon | MultiPolygon, dict[str, Any]]] = []
    for g in _flatten(obj):
        if g.get("type") not in _POLYGONAL:
            continue
        shape = _geometry(topology, g)
        if shape is None:
            continue
        out.append((shape, dict(g.get("properties") or {})))
    topology._features[object_name] = out
    return out


def feature_key(map_name: str, state: str, district: str | None = None) -> str:
    return f"{map_name}-{state}{'-' + district if district else ''}"


def feature_collection(
    topology: Topology, object_name: str, *, map_name: str
) -> FeatureCollection:
    features: list[Feature] = []
    seen: set[str] = set()
    for shape, props in object_geometries(topology, object_name):
        fid = feature_key(map_name, str(props.get("st_nm") or ""), props.get("district"))
        if fid in seen:
            logger.warning("Duplicate feature %s in object %s dropped", fid, object_name)
            continue
        seen.add(fid)
        features.append(Feature(id=fid, geometry=shape, props=props))
    return FeatureCollection(features=features)


def _collect_arcs(geom: Any, out: dict[int, None]) -> None:
    # Arc indexes are nested 1-3 levels deep depending on geometry type.
    if isinstance(geom, int):
        out.setdefault(geom if geom >= 0 else ~geom, None)
        return
    for g in geom or []:
        _collect_arcs(g, out)


def mesh(topology: Topology, object_name: str) -> Mesh:
    """
    Border lines of an object: every arc it references, once, merged.
    """
    cached = topology._meshes.get(object_name)
    if cached is not None:
        return cached
    obj = topology.objects.get(object_name)
    if obj is None:
        raise ValueError(f"TopoJSON object not found: {object_name}")

    used: dict[int, None] = {}
    for g in _flatten(obj):
        if g.get("type") in _POLYGONAL:
            _collect_arcs(g.get("arcs"), used)

    lines = [LineString(topology.arcs[i]) for i in used if len(topology.arcs[i]) >= 2]
    if not lines:
        merged = MultiLineString()
    else:
        m = linemerge(lines)
        merged = m if isinstance(m, MultiLineString) else MultiLineString([m])
    out = Mesh(id=object_name, lines=merged)
    topology._meshes[object_name] = out
    return out

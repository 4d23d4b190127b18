from __future__ import annotations

import logging

import pytest

from topology.decode import (
    feature_collection,
    feature_key,
    mesh,
    object_geometries,
    parse_topology,
)


def test_parse_rejects_non_topology():
    with pytest.raises(ValueError):
        parse_topology({"type": "FeatureCollection", "features": []})
    with pytest.raises(ValueError):
        parse_topology({"type": "Topology"})


def test_quantized_arcs_are_delta_decoded():
    topo = parse_topology(
        {
            "type": "Topology",
            "transform": {"scale": [0.5, 0.5], "translate": [70, 5]},
            "arcs": [[[0, 0], [2, 0], [0, 2], [-2, 0], [0, -2]]],
            "objects": {
                "square": {
                    "type": "GeometryCollection",
                    "geometries": [
                        {"type": "Polygon", "arcs": [[0]], "properties": {"st_nm": "A"}}
                    ],
                }
            },
        }
    )
    assert topo.arcs[0] == [(70.0, 5.0), (71.0, 5.0), (71.0, 6.0), (70.0, 6.0), (70.0, 5.0)]
    [(shape, props)] = object_geometries(topo, "square")
    assert props == {"st_nm": "A"}
    assert shape.area == pytest.approx(1.0)


def test_reversed_arcs_join_into_closed_rings(india_doc):
    topo = parse_topology(india_doc)
    shapes = {p["st_nm"]: g for g, p in object_geometries(topo, "india-states")}
    assert shapes["Kerala"].bounds == (75.0, 8.0, 77.0, 12.0)
    assert shapes["Tamil Nadu"].bounds == (77.0, 8.0, 80.0, 12.0)
    assert shapes["Kerala"].area == pytest.approx(8.0)
    assert shapes["Tamil Nadu"].area == pytest.approx(12.0)
    assert shapes["Kerala"].is_valid and shapes["Tamil Nadu"].is_valid


def test_feature_collection_keys_and_null_geometries(india_doc):
    topo = parse_topology(india_doc)
    fc = feature_collection(topo, "india-districts-2019-734", map_name="India")
    ids = [f.id for f in fc.features]
    # The null "Unknown" geometry is skipped.
    assert ids == [
        "India-Kerala-Thiruvananthapuram",
        "India-Kerala-Kozhikode",
        "India-Tamil Nadu-Chennai",
    ]
    assert fc.features[1].display_name == "Kozhikode"
    assert fc.bounds() == (75.0, 8.0, 80.0, 12.0)


def test_feature_key_format():
    assert feature_key("India", "Kerala") == "India-Kerala"
    assert feature_key("Kerala", "Kerala", "Kozhikode") == "Kerala-Kerala-Kozhikode"


def test_duplicate_features_keep_first(caplog):
    poly = {"type": "Polygon", "arcs": [[0]], "properties": {"st_nm": "A"}}
    topo = parse_topology(
        {
            "type": "Topology",
            "arcs": [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
            "objects": {"o": {"type": "GeometryCollection", "geometries": [poly, poly]}},
        }
    )
    with caplog.at_level(logging.WARNING, logger="topology.decode"):
        fc = feature_collection(topo, "o", map_name="M")
    assert [f.id for f in fc.features] == ["M-A"]
    assert "Duplicate feature M-A" in caplog.text


def test_unknown_object_raises(india_doc):
    topo = parse_topology(india_doc)
    with pytest.raises(ValueError):
        object_geometries(topo, "nope")
    with pytest.raises(ValueError):
        mesh(topo, "nope")


def test_mesh_uses_each_arc_once(india_doc):
    topo = parse_topology(india_doc)
    m = mesh(topo, "india-states")
    # arcs 0 (4) + 1 (8) + 2 (10); the shared Kerala/Tamil Nadu border is drawn once.
    assert m.lines.length == pytest.approx(22.0)
    assert mesh(topo, "india-states") is m

from __future__ import annotations

import asyncio
import logging

import pytest

from choropleth.view import ChoroplethMap
from interaction import ZoomState
from maps.registry import get_map_meta
from maps.types import RegionSelector, StatisticAggregate
from scene.colors import TRANSPARENT, ramp_color
from scene.graph import DISTRICT_BORDERS, STATE_BORDERS

AGGS = {"confirmed": StatisticAggregate(max=1000, total=1000)}


class _Recorder:
    def __init__(self):
        self.highlighted: list[RegionSelector] = []
        self.switches: list[str] = []

    def view(self, **kwargs) -> ChoroplethMap:
        return ChoroplethMap(
            on_region_highlighted=self.highlighted.append,
            request_map_switch=self.switches.append,
            **kwargs,
        )


def _render(view, meta, mapping, aggs=AGGS, metric="confirmed"):
    delta = asyncio.run(view.render(meta, mapping, aggs, metric))
    view.scheduler.finish()
    return delta


def test_kerala_fill_and_tooltip(geo_root):
    view = _Recorder().view()
    delta = _render(view, get_map_meta("India"), {"Kerala": {"confirmed": 500}})

    assert delta.as_stats() == {"added": 3, "updated": 0, "removed": 0}
    kerala = view.scene.regions.get("India-Kerala")
    assert kerala.fill == ramp_color("confirmed", 0.5 * 0.85)
    assert kerala.title == "50% from Kerala"
    assert view.scene.regions.get("India-Tamil Nadu").fill == TRANSPARENT
    assert view.zoom.state == ZoomState.ready
    assert view.projected.viewbox.width == pytest.approx(900.0)


def test_periodic_refresh_updates_in_place(geo_root):
    view = _Recorder().view()
    meta = get_map_meta("India")
    _render(view, meta, {"Kerala": {"confirmed": 500}})
    kerala = view.scene.regions.get("India-Kerala")
    vb = view.projected.viewbox

    view.viewport = (300.0, 300.0)
    delta = _render(view, meta, {"Kerala": {"confirmed": 1000}})
    assert delta.added == [] and delta.removed == []
    assert view.scene.regions.get("India-Kerala") is kerala
    assert kerala.fill == ramp_color("confirmed", 0.85)
    assert view.projected.viewbox == vb


def test_hover_emits_and_highlights(geo_root):
    rec = _Recorder()
    view = rec.view()
    _render(view, get_map_meta("India"), {})

    assert view.dispatch("India-Tamil Nadu", "mouseenter")
    assert rec.highlighted == [RegionSelector(state="Tamil Nadu")]
    shape = view.scene.regions.get("India-Tamil Nadu")
    assert shape.stroke == "#ff073a"
    assert view.scene.regions.keys()[-1] == "India-Tamil Nadu"
    assert not view.dispatch("India-Nowhere", "mouseenter")


def test_external_highlight_persists_and_does_not_emit(geo_root):
    rec = _Recorder()
    view = rec.view()
    _render(view, get_map_meta("India"), {})

    view.set_region_highlighted(RegionSelector(state="Kerala"))
    view.dispatch("India-Kerala", "mouseleave")
    assert rec.highlighted == []
    assert view.region_highlighted == RegionSelector(state="Kerala")
    assert [s.key for s in view.highlight.highlighted()] == ["India-Kerala"]

    # Survives a redraw.
    _render(view, get_map_meta("India"), {"Kerala": {"confirmed": 1}})
    assert [s.key for s in view.highlight.highlighted()] == ["India-Kerala"]


def test_click_outside_selects_total(geo_root):
    rec = _Recorder()
    view = rec.view()
    _render(view, get_map_meta("India"), {})
    view.set_region_highlighted(RegionSelector(state="Kerala"))

    assert view.click_outside() == RegionSelector(state="Total")
    assert rec.highlighted == [RegionSelector(state="Total")]
    assert view.highlight.highlighted() == []


def test_drill_down_to_state_map(geo_root):
    rec = _Recorder()
    view = rec.view()
    _render(view, get_map_meta("India"), {})

    assert view.dispatch("India-Kerala", "click")
    assert rec.switches == ["Kerala"]
    assert view.zoom.state == ZoomState.transitioning
    assert not view.dispatch("India-Tamil Nadu", "mouseenter")

    kerala_meta = get_map_meta("Kerala")
    delta = _render(
        view,
        kerala_meta,
        {"Kerala": {"Kozhikode": {"confirmed": 10}, "Unknown": {"confirmed": 4}}},
        aggs={"confirmed": StatisticAggregate(max=10, total=14)},
    )
    assert set(delta.removed) >= {"India-Kerala", "India-Tamil Nadu", "india-states"}
    assert view.scene.regions.keys() == [
        "Kerala-Kerala-Thiruvananthapuram",
        "Kerala-Kerala-Kozhikode",
    ]
    assert view.zoom.state == ZoomState.ready
    assert view.scene.pointer_events
    assert len(view.scene.group(STATE_BORDERS)) == 0
    assert len(view.scene.group(DISTRICT_BORDERS)) == 1
    assert view.scene.regions.get("Kerala-Kerala-Kozhikode").title == "71.43% from Kozhikode"
    assert view.disclaimer() == "District-wise confirmed numbers are under reconciliation"

    # Leaf level: clicks do nothing.
    assert view.dispatch("Kerala-Kerala-Kozhikode", "click")
    assert rec.switches == ["Kerala"]
    assert view.zoom.state == ZoomState.ready


def test_pointer_events_return_once_drill_down_animation_ends(geo_root):
    rec = _Recorder()
    view = rec.view()
    _render(view, get_map_meta("India"), {})
    assert view.dispatch("India-Kerala", "click")

    asyncio.run(
        view.render(
            get_map_meta("Kerala"),
            {"Kerala": {"Kozhikode": {"confirmed": 10}}},
            {"confirmed": StatisticAggregate(max=10, total=10)},
            "confirmed",
        )
    )
    assert view.zoom.state == ZoomState.ready
    assert view.scheduler.active > 0
    assert not view.scene.pointer_events
    assert not view.dispatch("Kerala-Kerala-Kozhikode", "mouseenter")

    assert view.tick(view.scheduler.clock() + 10_000) == 0
    assert view.scene.pointer_events
    assert all(s.pointer_events for s in view.scene.regions)
    assert view.dispatch("Kerala-Kerala-Kozhikode", "mouseenter")


def test_touch_then_click_only_inspects(geo_root):
    rec = _Recorder()
    view = rec.view()
    _render(view, get_map_meta("India"), {})

    view.dispatch("India-Kerala", "touchstart")
    view.dispatch("India-Kerala", "mouseenter")
    view.dispatch("India-Kerala", "click")
    assert rec.switches == []
    assert rec.highlighted == [RegionSelector(state="Kerala")]


def test_failed_geometry_clears_the_scene(geo_root, caplog):
    view = _Recorder().view()
    _render(view, get_map_meta("India"), {})
    assert len(view.scene.regions) == 2

    # No fixture exists for this state.
    with caplog.at_level(logging.WARNING, logger="topology.loader"):
        delta = _render(view, get_map_meta("Tamil Nadu"), {})
    assert delta is None
    assert len(view.scene.regions) == 0
    assert view.zoom.state == ZoomState.ready
    assert "Failed to load map geometry" in caplog.text


def test_concurrent_renders_coalesce_and_drop_stale(geo_root):
    view = _Recorder().view()
    india = get_map_meta("India")

    async def run():
        return await asyncio.gather(
            view.render(india, {}, AGGS, "confirmed"),
            view.render(india, {"Kerala": {"confirmed": 1000}}, AGGS, "confirmed"),
        )

    first, second = asyncio.run(run())
    view.scheduler.finish()
    assert first is None
    assert second is not None
    assert view.loader.fetch_count == 1
    assert view.scene.regions.get("India-Kerala").fill == ramp_color("confirmed", 0.85)


def test_zone_view_and_plot_payload(geo_root):
    view = _Recorder().view()
    meta = get_map_meta("India", view="districts", stat="zone")
    _render(view, meta, {"Kerala": {"Kozhikode": "Green"}})

    assert view.scene.regions.get("India-Kerala-Kozhikode").fill == "#66bd63"
    plot = view.plot()
    layout = plot["layout"]
    assert layout["meta"]["classes"] == ["zone"]
    assert layout["meta"]["zoomState"] == "READY"
    assert layout["meta"]["disclaimer"] is None
    assert layout["xaxis"]["range"][0] == 0.0
    assert layout["xaxis"]["range"][1] == pytest.approx(900.0)
    # Y axis is reversed for screen coordinates.
    assert layout["yaxis"]["range"][0] > layout["yaxis"]["range"][1]

    names = [t["name"] for t in plot["data"]]
    assert names[:3] == [
        "India-Kerala-Thiruvananthapuram",
        "India-Kerala-Kozhikode",
        "India-Tamil Nadu-Chennai",
    ]
    assert set(names[3:]) == {"state-borders:india-states", "district-borders:india-districts-2019-734"}
    assert all(t["hoverinfo"] == "skip" for t in plot["data"])

from __future__ import annotations

import threading

import pytest
from fastapi.testclient import TestClient

from api.session import reset_session
from main import app
from telemetry.singleton import get_store, reset_store

RENDER_INDIA = {
    "map": "India",
    "metric": "confirmed",
    "data": {"Kerala": {"confirmed": 500}},
    "aggregates": {"confirmed": {"max": 1000, "total": 1000}},
    "viewport": {"width": 900, "height": 1000},
}


@pytest.fixture(autouse=True)
def _isolated(geo_root, monkeypatch):
    monkeypatch.setenv("CHORO_TELEMETRY", "0")
    reset_session()


def test_get_maps_lists_registry():
    client = TestClient(app)
    resp = client.get("/maps")
    assert resp.status_code == 200
    rows = resp.json()
    by_name = {r["name"]: r for r in rows}
    assert by_name["India"] == {"name": "India", "mapType": "country", "hasStates": True}
    assert by_name["Kerala"]["hasStates"] is False


def test_render_returns_plot_payload():
    client = TestClient(app)
    resp = client.post("/map/render", json=RENDER_INDIA)
    assert resp.status_code == 200
    data = resp.json()
    assert set(data.keys()) == {"data", "layout"}
    meta = data["layout"]["meta"]
    assert meta["map"] == "India"
    assert meta["view"] == "states"
    assert meta["stats"]["renderedRegions"] == 2
    assert meta["stats"]["delta"] == {"added": 3, "updated": 0, "removed": 0}

    kerala = next(t for t in data["data"] if t["name"] == "India-Kerala")
    assert kerala["text"] == "50% from Kerala"
    assert kerala["fill"] == "toself"


def test_render_unknown_map_is_404():
    client = TestClient(app)
    resp = client.post("/map/render", json={**RENDER_INDIA, "map": "Atlantis"})
    assert resp.status_code == 404


def test_render_rejects_unknown_metric():
    client = TestClient(app)
    resp = client.post("/map/render", json={**RENDER_INDIA, "metric": "tested"})
    assert resp.status_code == 422


def test_events_report_selection_and_map_switch():
    client = TestClient(app)
    client.post("/map/render", json=RENDER_INDIA)

    resp = client.post("/map/event", json={"type": "mouseenter", "featureId": "India-Kerala"})
    body = resp.json()
    assert body["accepted"] is True
    assert body["events"] == [{"type": "regionHighlighted", "region": {"state": "Kerala"}}]
    assert body["plot"]["layout"]["meta"]["highlighted"] == {"state": "Kerala"}

    resp = client.post("/map/event", json={"type": "click", "featureId": "India-Kerala"})
    body = resp.json()
    assert body["events"] == [{"type": "mapSwitch", "state": "Kerala"}]
    assert body["plot"]["layout"]["meta"]["zoomState"] == "TRANSITIONING"
    assert body["plot"]["layout"]["meta"]["pointerEvents"] is False

    # Locked until the drilled-in map is painted.
    resp = client.post("/map/event", json={"type": "mouseenter", "featureId": "India-Kerala"})
    assert resp.json()["accepted"] is False

    resp = client.post(
        "/map/render",
        json={**RENDER_INDIA, "map": "Kerala", "data": {"Kerala": {"Kozhikode": {"confirmed": 2}}}},
    )
    meta = resp.json()["layout"]["meta"]
    assert meta["map"] == "Kerala"
    assert meta["zoomState"] == "READY"


def test_click_outside_and_external_highlight():
    client = TestClient(app)
    client.post("/map/render", json=RENDER_INDIA)

    resp = client.post("/map/highlight", json={"state": "Tamil Nadu"})
    assert resp.status_code == 200
    assert resp.json()["layout"]["meta"]["highlighted"] == {"state": "Tamil Nadu"}

    body = client.post("/map/event", json={"type": "click_outside"}).json()
    assert body["accepted"] is True
    assert body["events"] == [{"type": "regionHighlighted", "region": {"state": "Total"}}]


def test_session_is_only_touched_on_the_event_loop_thread(monkeypatch):
    session = reset_session()
    threads: list[tuple[str, int]] = []

    def recorded(name, fn):
        def wrapper(*args, **kwargs):
            threads.append((name, threading.get_ident()))
            return fn(*args, **kwargs)

        return wrapper

    monkeypatch.setattr(session.view, "render", recorded("render", session.view.render))
    monkeypatch.setattr(session.view, "dispatch", recorded("dispatch", session.view.dispatch))
    monkeypatch.setattr(
        session.view,
        "set_region_highlighted",
        recorded("highlight", session.view.set_region_highlighted),
    )
    monkeypatch.setattr(
        session.view, "click_outside", recorded("click_outside", session.view.click_outside)
    )

    # One client context keeps a single event loop across requests.
    with TestClient(app) as client:
        client.post("/map/render", json=RENDER_INDIA)
        client.post("/map/event", json={"type": "mouseenter", "featureId": "India-Kerala"})
        client.post("/map/highlight", json={"state": "Tamil Nadu"})
        client.post("/map/event", json={"type": "click_outside"})

    assert [name for name, _ in threads] == ["render", "dispatch", "highlight", "click_outside"]
    assert len({ident for _, ident in threads}) == 1


def test_event_needs_feature_id():
    client = TestClient(app)
    client.post("/map/render", json=RENDER_INDIA)
    resp = client.post("/map/event", json={"type": "click"})
    assert resp.status_code == 422


def test_render_records_telemetry(tmp_path, monkeypatch):
    monkeypatch.setenv("CHORO_TELEMETRY", "1")
    monkeypatch.setenv("CHORO_TELEMETRY_PATH", str(tmp_path / "telemetry.duckdb"))
    client = TestClient(app)
    try:
        assert client.post("/map/render", json=RENDER_INDIA).status_code == 200
        get_store().flush(timeout_s=2.0)

        rows = client.get("/telemetry/summary", params={"map": "India"}).json()
        assert len(rows) == 1
        assert rows[0]["endpoint"] == "/map/render"
        assert rows[0]["n"] == 1
        assert rows[0]["added"] == 3
    finally:
        reset_store()


def test_telemetry_summary_disabled():
    client = TestClient(app)
    assert client.get("/telemetry/summary").json() == []

from __future__ import annotations

import threading
from typing import Any

from choropleth.view import ChoroplethMap
from maps.types import RegionSelector
from topology.loader import TopologyLoader


class MapSession:
    """
    Server-side holder of one interactive map view.

    Outward events (highlight changes, map-switch requests) are queued and
    returned with the next HTTP response.
    """

    def __init__(self, *, loader: TopologyLoader | None = None):
        self.events: list[dict[str, Any]] = []
        self.view = ChoroplethMap(
            loader=loader,
            on_region_highlighted=self._on_region_highlighted,
            request_map_switch=self._on_map_switch,
        )

    def _on_region_highlighted(self, region: RegionSelector) -> None:
        self.events.append({"type": "regionHighlighted", "region": region.to_dict()})

    def _on_map_switch(self, state: str) -> None:
        self.events.append({"type": "mapSwitch", "state": state})

    def drain_events(self) -> list[dict[str, Any]]:
        out, self.events = self.events, []
        return out

    def plot(self) -> dict[str, Any]:
        # Plotly animates via `layout.transition`; send end values.
        self.view.scheduler.finish()
        return self.view.plot()


_SESSION: MapSession | None = None
_SESSION_LOCK = threading.RLock()


def get_session() -> MapSession:
    global _SESSION
    with _SESSION_LOCK:
        if _SESSION is None:
            _SESSION = MapSession()
        return _SESSION


def reset_session(*, loader: TopologyLoader | None = None) -> MapSession:
    global _SESSION
    with _SESSION_LOCK:
        _SESSION = MapSession(loader=loader)
        return _SESSION

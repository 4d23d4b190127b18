from __future__ import annotations

from typing import TYPE_CHECKING, Any

from scene.graph import REGIONS, Shape
from scene.regions import HOVER_CLASS
from scene.tween import DEFAULT_DURATION_MS

if TYPE_CHECKING:
    from choropleth.view import ChoroplethMap

HOVER_LINE_WIDTH = 2
_NO_LINE = "rgba(0, 0, 0, 0)"


def trace_region(shape: Shape) -> dict[str, Any]:
    xs, ys = shape.path
    hovered = shape.classed(HOVER_CLASS)
    return {
        "type": "scatter",
        "name": shape.key,
        "x": xs,
        "y": ys,
        "mode": "lines",
        "fill": "toself",
        "fillcolor": shape.fill,
        "line": {
            "color": shape.stroke or _NO_LINE,
            "width": HOVER_LINE_WIDTH if (hovered and shape.stroke) else 0,
        },
        "text": shape.title or "",
        "hoveron": "fills",
        "hoverinfo": "text" if shape.title else "skip",
        "customdata": [shape.key],
        "showlegend": False,
        "meta": {
            "key": shape.key,
            "classes": sorted(shape.classes),
            "pointerEvents": shape.pointer_events,
        },
    }


def trace_border(group: str, shape: Shape) -> dict[str, Any]:
    xs, ys = shape.path
    return {
        "type": "scatter",
        "name": f"{group}:{shape.key}",
        "x": xs,
        "y": ys,
        "mode": "lines",
        "line": {
            "color": shape.stroke or _NO_LINE,
            "width": float(shape.stroke_width or 0.0),
        },
        "hoverinfo": "skip",
        "showlegend": False,
    }


def build_choropleth_plot(view: "ChoroplethMap") -> dict[str, Any]:
    """
    Plotly figure payload for the current scene.

    Regions paint first, then state borders, then district borders; within a
    group the scene order is kept (hovered region last).
    """
    traces: list[dict[str, Any]] = []
    for group, shape in view.scene.ordered():
        if group == REGIONS:
            traces.append(trace_region(shape))
        else:
            traces.append(trace_border(group, shape))

    layout: dict[str, Any] = {
        "showlegend": False,
        "hovermode": "closest",
        "dragmode": False,
        "margin": {"l": 0, "r": 0, "t": 0, "b": 0},
        "paper_bgcolor": "rgba(0, 0, 0, 0)",
        "plot_bgcolor": "rgba(0, 0, 0, 0)",
        "transition": {"duration": DEFAULT_DURATION_MS, "easing": "cubic-in-out"},
    }

    vb = view.projected.viewbox if view.projected is not None else None
    if vb is not None:
        layout["xaxis"] = {
            "range": [vb.min_x, vb.max_x],
            "visible": False,
            "fixedrange": True,
        }
        # Screen coordinates: y grows downwards.
        layout["yaxis"] = {
            "range": [vb.max_y, vb.min_y],
            "visible": False,
            "fixedrange": True,
            "scaleanchor": "x",
        }

    meta = view.meta
    highlighted = view.highlight.region
    n_regions = len(view.scene.regions)
    layout["meta"] = {
        "map": meta.name if meta is not None else None,
        "mapType": meta.map_type if meta is not None else None,
        "view": meta.view if meta is not None else None,
        "stat": meta.stat if meta is not None else None,
        "metric": view.metric,
        "viewBox": vb.as_attr() if vb is not None else None,
        "classes": sorted(view.scene.classes),
        "zoomState": view.zoom.state.value,
        "pointerEvents": view.scene.pointer_events,
        "highlighted": highlighted.to_dict() if highlighted is not None else None,
        "disclaimer": view.disclaimer(),
        "stats": {
            "renderedRegions": n_regions,
            "renderedBorders": len(traces) - n_regions,
            "delta": view.last_delta.as_stats(),
            "renderMs": view.last_render_ms,
        },
    }

    return {"data": traces, "layout": layout}

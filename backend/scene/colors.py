from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Mapping, TypeAlias, Union

from plotly.colors import hex_to_rgb, make_colorscale, sample_colorscale, sequential

from maps.types import MapStatistic, StatisticAggregate

TRANSPARENT = "#ffffff00"
ZONE_STROKE = "#343a40"
# Ramps stop at 85% intensity so the max value is not fully saturated.
RAMP_CEILING = 0.85

ZONE_LABELS: tuple[str, ...] = ("Red", "Orange", "Green")
ZONE_COLORS: tuple[str, ...] = ("#d73027", "#fee08b", "#66bd63")

_CASE_COLORS: dict[str, str] = {
    "confirmed": "#ff073a",
    "active": "#007bff",
    "recovered": "#28a745",
    "deceased": "#6c757d",
}

_RAMPS: dict[str, list[str]] = {
    "confirmed": sequential.Reds,
    "active": sequential.Blues,
    "recovered": sequential.Greens,
    "deceased": sequential.Greys,
}

RGBA: TypeAlias = tuple[float, float, float, float]


def case_color(metric: str, alpha: str = "") -> str | None:
    """
    Base color of a metric, optionally with a hex alpha suffix ("30", "99"...).
    """
    base = _CASE_COLORS.get(metric)
    if base is None:
        return None
    return base + alpha


@lru_cache(maxsize=8)
def _ramp(metric: str) -> tuple[tuple[float, str], ...]:
    colors = _RAMPS.get(metric)
    if colors is None:
        raise ValueError(f"No color ramp for metric: {metric!r}")
    return tuple((float(p), c) for p, c in make_colorscale(list(colors)))


def ramp_color(metric: str, t: float) -> str:
    scale = [[p, c] for p, c in _ramp(metric)]
    return sample_colorscale(scale, [min(1.0, max(0.0, float(t)))])[0]


@dataclass(frozen=True)
class SequentialScale:
    """
    Continuous scale over `domain`, clamped, through a metric hue ramp.
    """

    metric: str
    domain: tuple[float, float]
    ceiling: float = RAMP_CEILING

    def normalize(self, value: float) -> float:
        lo, hi = self.domain
        t = (float(value) - lo) / (hi - lo)
        return min(1.0, max(0.0, t))

    def __call__(self, value: Any) -> str | None:
        return ramp_color(self.metric, self.normalize(value) * self.ceiling)


@dataclass(frozen=True)
class OrdinalScale:
    domain: tuple[str, ...] = ZONE_LABELS
    range: tuple[str, ...] = ZONE_COLORS

    def __call__(self, value: Any) -> str | None:
        try:
            return self.range[self.domain.index(str(value))]
        except ValueError:
            return None


ColorScale: TypeAlias = Union[SequentialScale, OrdinalScale]


@dataclass
class ColorScaleEngine:
    """
    Builds color scales; rebuilt only when stat, metric or max change.
    """

    _last_key: tuple | None = field(default=None, repr=False)
    _last: ColorScale | None = field(default=None, repr=False)

    def build(
        self,
        stat: MapStatistic,
        metric: str,
        aggregates: Mapping[str, StatisticAggregate],
    ) -> ColorScale:
        if stat == "zone":
            key: tuple = ("zone",)
        else:
            if metric not in _RAMPS:
                raise ValueError(f"Unknown metric: {metric!r}")
            agg = aggregates.get(metric)
            key = ("total", metric, max(1.0, float(agg.max if agg else 0)))

        if key == self._last_key and self._last is not None:
            return self._last

        scale: ColorScale
        if stat == "zone":
            scale = OrdinalScale()
        else:
            scale = SequentialScale(metric=metric, domain=(0.0, key[2]))
        self._last_key, self._last = key, scale
        return scale


_FUNC_RE = re.compile(r"^rgba?\(([^)]*)\)$")


def parse_color(color: str | None) -> RGBA | None:
    """
    '#rgb', '#rrggbb', '#rrggbbaa', 'rgb(...)' or 'rgba(...)' -> (r, g, b, a).

    Channels are 0-255 floats, alpha 0-1. Unknown formats return None.
    """
    if not color:
        return None
    c = color.strip().lower()
    if c.startswith("#"):
        h = c[1:]
        if len(h) == 3:
            h = "".join(ch * 2 for ch in h)
        if len(h) == 6:
            r, g, b = hex_to_rgb("#" + h)
            return float(r), float(g), float(b), 1.0
        if len(h) == 8:
            r, g, b = hex_to_rgb("#" + h[:6])
            return float(r), float(g), float(b), int(h[6:], 16) / 255.0
        return None
    m = _FUNC_RE.match(c)
    if m is None:
        return None
    parts = [p.strip() for p in m.group(1).split(",")]
    if len(parts) not in (3, 4):
        return None
    try:
        vals = [float(p) for p in parts]
    except ValueError:
        return None
    alpha = vals[3] if len(vals) == 4 else 1.0
    return vals[0], vals[1], vals[2], alpha


def format_rgba(c: RGBA) -> str:
    r, g, b, a = c
    return f"rgba({round(r)}, {round(g)}, {round(b)}, {round(a, 4):g})"


def interpolate_color(start: str | None, end: str | None, t: float) -> str | None:
    """
    RGBA interpolation; unparseable endpoints snap to `end`.
    """
    if t >= 1.0:
        return end
    a, b = parse_color(start), parse_color(end)
    if a is None or b is None:
        return end
    t = max(0.0, t)
    return format_rgba(tuple(x + (y - x) * t for x, y in zip(a, b)))  # type: ignore[arg-type]

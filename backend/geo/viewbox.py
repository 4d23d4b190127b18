from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ViewBox:
    """
    Planar frame of a map in projected (screen) units, y pointing down.

    Frozen once per map identity so periodic data refreshes don't shift it.
    """

    min_x: float
    min_y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.min_x + self.width

    @property
    def max_y(self) -> float:
        return self.min_y + self.height

    def as_attr(self) -> str:
        # SVG-style "minX minY width height".
        return f"{self.min_x:g} {self.min_y:g} {self.width:g} {self.height:g}"

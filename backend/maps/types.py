from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, TypeAlias


MapType = Literal["country", "state"]
MapView = Literal["states", "districts"]
MapStatistic = Literal["total", "zone"]

METRICS: tuple[str, ...] = ("confirmed", "active", "recovered", "deceased")
TOTAL_REGION = "Total"

# state -> {metric: value} | {district -> {metric: value} | zone label}
StatisticMapping: TypeAlias = Mapping[str, Mapping[str, Any]]


@dataclass(frozen=True)
class MapMetadata:
    """
    Identity of a rendered map.

    `name` is the map identity used for ViewBox caching and feature keys.
    `view` selects which topology object is filled with regions.
    """

    name: str
    map_type: MapType
    view: MapView
    stat: MapStatistic
    geo_data_file: str
    states_object: str | None
    districts_object: str

    @property
    def is_top_level(self) -> bool:
        return self.map_type == "country"

    @property
    def fill_object(self) -> str:
        if self.view == "states" and self.states_object:
            return self.states_object
        return self.districts_object


@dataclass(frozen=True)
class StatisticAggregate:
    max: float
    total: float

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "StatisticAggregate":
        raw = raw or {}
        return cls(max=float(raw.get("max") or 0), total=float(raw.get("total") or 0))


@dataclass(frozen=True)
class RegionSelector:
    state: str
    district: str | None = None

    def to_dict(self) -> dict[str, str]:
        out = {"state": self.state}
        if self.district:
            out["district"] = self.district
        return out

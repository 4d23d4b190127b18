from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class MapEntry(BaseModel):
    """
    One map definition from `registry.yaml`.

    Country maps carry both topology objects; state maps only have districts.
    """

    name: str
    mapType: Literal["country", "state"]
    geoDataFile: str
    graphObjectStates: str | None = None
    graphObjectDistricts: str


class MapRegistryConfig(BaseModel):
    # Default root for relative `geoDataFile` entries (dir or URL prefix).
    geoRoot: str = "data/maps"
    country: str
    maps: list[MapEntry] = Field(default_factory=list)

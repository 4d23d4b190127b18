from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml

from maps.config import MapEntry, MapRegistryConfig
from maps.types import MapMetadata, MapStatistic, MapView


def _repo_root() -> Path:
    # .../backend/maps/registry.py -> repo root is 2 levels up
    return Path(__file__).resolve().parents[2]


def _registry_path() -> Path:
    return Path(__file__).resolve().parent / "registry.yaml"


@dataclass(frozen=True)
class MapRegistry:
    config: MapRegistryConfig
    entries: dict[str, MapEntry]

    @property
    def country(self) -> MapEntry:
        return self.entries[self.config.country]


def _load_yaml(path: Path) -> dict:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid map registry yaml root: {path}")
    return data


@lru_cache(maxsize=1)
def get_registry() -> MapRegistry:
    cfg = MapRegistryConfig.model_validate(_load_yaml(_registry_path()))
    entries: dict[str, MapEntry] = {}
    for entry in cfg.maps:
        if entry.name in entries:
            raise ValueError(f"Duplicate map in registry: {entry.name}")
        if entry.mapType == "country" and not entry.graphObjectStates:
            raise ValueError(f"Country map is missing `graphObjectStates`: {entry.name}")
        entries[entry.name] = entry
    if cfg.country not in entries:
        raise ValueError(f"Registry country map is not defined: {cfg.country}")
    return MapRegistry(config=cfg, entries=entries)


def list_maps() -> list[MapEntry]:
    return list(get_registry().entries.values())


def geo_root() -> str:
    return os.getenv("CHORO_GEO_ROOT") or get_registry().config.geoRoot


def resolve_geo_path(geo_data_file: str, *, root: str | None = None) -> str:
    """
    Resolve a registry `geoDataFile` into a loadable path or URL.

    Absolute paths and URLs are returned as-is; relative ones are joined onto
    the geo root (URL prefix or directory, repo-relative when not absolute).
    """
    f = (geo_data_file or "").strip()
    if f.startswith(("http://", "https://")) or Path(f).is_absolute():
        return f
    base = (root or geo_root()).strip()
    if base.startswith(("http://", "https://")):
        return f"{base.rstrip('/')}/{f}"
    base_path = Path(base)
    if not base_path.is_absolute():
        base_path = _repo_root() / base_path
    return str(base_path / f)


def get_map_meta(
    name: str,
    *,
    view: MapView | None = None,
    stat: MapStatistic = "total",
) -> MapMetadata:
    """
    Build MapMetadata for a registry entry.

    Unknown names are a caller bug and raise `ValueError`.
    """
    reg = get_registry()
    entry = reg.entries.get((name or "").strip())
    if entry is None:
        raise ValueError(f"Unknown map: {name!r}")

    if entry.mapType == "state":
        # A state map has no states layer; it always shows districts.
        view = "districts"
    elif view is None:
        view = "states"

    return MapMetadata(
        name=entry.name,
        map_type=entry.mapType,
        view=view,
        stat=stat,
        geo_data_file=resolve_geo_path(entry.geoDataFile),
        states_object=entry.graphObjectStates,
        districts_object=entry.graphObjectDistricts,
    )


def country_map_meta(
    *, view: MapView | None = None, stat: MapStatistic = "total"
) -> MapMetadata:
    return get_map_meta(get_registry().config.country, view=view, stat=stat)

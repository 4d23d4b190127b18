from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from geo.projection import PathData

Handler = Callable[["Shape"], None]

REGIONS = "regions"
STATE_BORDERS = "state-borders"
DISTRICT_BORDERS = "district-borders"
GROUP_ORDER: tuple[str, ...] = (REGIONS, STATE_BORDERS, DISTRICT_BORDERS)


@dataclass(eq=False)
class Shape:
    """
    A retained path in the scene.

    `datum` is the bound feature or mesh; handlers are bound once at creation.
    """

    key: str
    path: PathData
    datum: Any = None
    fill: str | None = None
    stroke: str | None = None
    stroke_width: float | None = None
    title: str | None = None
    classes: set[str] = field(default_factory=set)
    pointer_events: bool = True
    handlers: dict[str, Handler] = field(default_factory=dict, repr=False)

    def classed(self, name: str) -> bool:
        return name in self.classes

    def set_classed(self, name: str, on: bool) -> None:
        if on:
            self.classes.add(name)
        else:
            self.classes.discard(name)

    def on(self, event: str, handler: Handler) -> "Shape":
        self.handlers[event] = handler
        return self


@dataclass
class Group:
    """
    Ordered shapes; later shapes paint above earlier ones.
    """

    name: str
    _shapes: dict[str, Shape] = field(default_factory=dict, repr=False)

    def __iter__(self) -> Iterator[Shape]:
        return iter(list(self._shapes.values()))

    def __len__(self) -> int:
        return len(self._shapes)

    def __contains__(self, key: str) -> bool:
        return key in self._shapes

    def get(self, key: str) -> Shape | None:
        return self._shapes.get(key)

    def keys(self) -> list[str]:
        return list(self._shapes.keys())

    def append(self, shape: Shape) -> Shape:
        # Re-appending moves an existing shape to the top of the paint order.
        self._shapes.pop(shape.key, None)
        self._shapes[shape.key] = shape
        return shape

    def remove(self, key: str) -> Shape | None:
        return self._shapes.pop(key, None)

    def clear(self) -> list[str]:
        keys = list(self._shapes.keys())
        self._shapes.clear()
        return keys


@dataclass
class SceneDelta:
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.added or self.updated or self.removed)

    def merge(self, other: "SceneDelta") -> "SceneDelta":
        return SceneDelta(
            added=[*self.added, *other.added],
            updated=[*self.updated, *other.updated],
            removed=[*self.removed, *other.removed],
        )

    def as_stats(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "updated": len(self.updated),
            "removed": len(self.removed),
        }


@dataclass
class Scene:
    """
    Root of the retained scene: three groups painted in a fixed order.
    """

    groups: dict[str, Group] = field(
        default_factory=lambda: {name: Group(name=name) for name in GROUP_ORDER}
    )
    pointer_events: bool = True
    classes: set[str] = field(default_factory=set)

    def group(self, name: str) -> Group:
        return self.groups[name]

    @property
    def regions(self) -> Group:
        return self.groups[REGIONS]

    def clear(self) -> SceneDelta:
        removed: list[str] = []
        for g in self.groups.values():
            removed.extend(g.clear())
        return SceneDelta(removed=removed)

    def ordered(self) -> Iterator[tuple[str, Shape]]:
        for name in GROUP_ORDER:
            for shape in self.groups[name]:
                yield name, shape

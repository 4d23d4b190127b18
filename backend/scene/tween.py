from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable

from scene.colors import interpolate_color

DEFAULT_DURATION_MS = 500.0

Easing = Callable[[float], float]
Clock = Callable[[], float]


def ease_cubic_in_out(t: float) -> float:
    t = min(1.0, max(0.0, t)) * 2.0
    if t <= 1.0:
        return t * t * t / 2.0
    t -= 2.0
    return (t * t * t + 2.0) / 2.0


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def _interpolate(start: Any, end: Any, t: float) -> Any:
    if t >= 1.0:
        return end
    if isinstance(end, (int, float)) and isinstance(start, (int, float)):
        return start + (end - start) * t
    if isinstance(end, str) or isinstance(start, str):
        return interpolate_color(start, end, t)
    return end


@dataclass
class Tween:
    target: Any
    attr: str
    start: Any
    end: Any
    start_ms: float
    duration_ms: float
    easing: Easing = ease_cubic_in_out

    def value_at(self, now_ms: float) -> Any:
        if self.duration_ms <= 0:
            return self.end
        t = (now_ms - self.start_ms) / self.duration_ms
        if t >= 1.0:
            return self.end
        return _interpolate(self.start, self.end, self.easing(t))

    def done(self, now_ms: float) -> bool:
        return now_ms - self.start_ms >= self.duration_ms


@dataclass
class TransitionScheduler:
    """
    Attribute tweening driven by the host's frame callback (`tick`).

    Starting a tween for an attribute that is already animating replaces it,
    starting from the current value: the last requested state wins.
    """

    clock: Clock = monotonic_ms
    duration_ms: float = DEFAULT_DURATION_MS
    easing: Easing = ease_cubic_in_out
    _tweens: dict[tuple[int, str], Tween] = field(default_factory=dict, repr=False)
    _on_end: list[Callable[[], None]] = field(default_factory=list, repr=False)

    def animate(
        self,
        target: Any,
        attr: str,
        end: Any,
        *,
        duration_ms: float | None = None,
    ) -> None:
        start = getattr(target, attr)
        key = (id(target), attr)
        if end is None:
            # Removing an attribute does not interpolate.
            self._tweens.pop(key, None)
            setattr(target, attr, None)
            return
        if start == end and key not in self._tweens:
            return
        self._tweens[key] = Tween(
            target=target,
            attr=attr,
            start=start,
            end=end,
            start_ms=self.clock(),
            duration_ms=self.duration_ms if duration_ms is None else duration_ms,
            easing=self.easing,
        )

    def set_now(self, target: Any, attr: str, value: Any) -> None:
        self._tweens.pop((id(target), attr), None)
        setattr(target, attr, value)

    def cancel(self, target: Any) -> None:
        tid = id(target)
        for key in [k for k in self._tweens if k[0] == tid]:
            self._tweens.pop(key, None)

    def on_idle(self, callback: Callable[[], None]) -> None:
        """Run `callback` once every pending tween has finished."""
        if not self._tweens:
            callback()
            return
        self._on_end.append(callback)

    @property
    def active(self) -> int:
        return len(self._tweens)

    def tick(self, now_ms: float | None = None) -> int:
        now = self.clock() if now_ms is None else now_ms
        for key, tw in list(self._tweens.items()):
            setattr(tw.target, tw.attr, tw.value_at(now))
            if tw.done(now):
                self._tweens.pop(key, None)
        if not self._tweens and self._on_end:
            callbacks, self._on_end = self._on_end, []
            for cb in callbacks:
                cb()
        return len(self._tweens)

    def finish(self) -> None:
        for tw in self._tweens.values():
            setattr(tw.target, tw.attr, tw.end)
        self._tweens.clear()
        if self._on_end:
            callbacks, self._on_end = self._on_end, []
            for cb in callbacks:
                cb()

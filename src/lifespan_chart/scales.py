"""Coordinate mappings for the timeline.

The horizontal mapping is a continuous linear scale from a numeric domain to
pixels; the vertical mapping is a band scale from record names to pixel bands.
Both follow the layout rules of the browser charting library so the Python
scene and the exported page agree to the pixel.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Hashable, Iterable

import numpy as np

_E10 = math.sqrt(50)
_E5 = math.sqrt(10)
_E2 = math.sqrt(2)
MINUS_SIGN = "−"


def js_round(value: float) -> float:
    """Round half up, as the browser's Math.round does."""
    return math.floor(value + 0.5)


def _tick_increment(start: float, stop: float, count: float) -> tuple[int, int, float]:
    step = (stop - start) / max(0.0, count)
    power = math.floor(math.log10(step))
    error = step / math.pow(10, power)
    factor = 10 if error >= _E10 else 5 if error >= _E5 else 2 if error >= _E2 else 1
    if power < 0:
        inc = math.pow(10, -power) / factor
        i1 = int(js_round(start * inc))
        i2 = int(js_round(stop * inc))
        if i1 / inc < start:
            i1 += 1
        if i2 / inc > stop:
            i2 -= 1
        inc = -inc
    else:
        inc = math.pow(10, power) * factor
        i1 = int(js_round(start / inc))
        i2 = int(js_round(stop / inc))
        if i1 * inc < start:
            i1 += 1
        if i2 * inc > stop:
            i2 -= 1
    if i2 < i1 and 0.5 <= count < 2:
        return _tick_increment(start, stop, count * 2)
    return i1, i2, inc


def tick_values(start: float, stop: float, count: int = 10) -> list[float]:
    """Evenly spaced "nice" values (1, 2 or 5 times a power of ten) in [start, stop]."""
    if not count > 0 or not (math.isfinite(start) and math.isfinite(stop)):
        return []
    if start == stop:
        return [start]
    reverse = stop < start
    if reverse:
        i1, i2, inc = _tick_increment(stop, start, count)
    else:
        i1, i2, inc = _tick_increment(start, stop, count)
    if not i2 >= i1:
        return []
    n = i2 - i1 + 1
    if reverse:
        if inc < 0:
            return [(i2 - i) / -inc for i in range(n)]
        return [(i2 - i) * inc for i in range(n)]
    if inc < 0:
        return [(i1 + i) / -inc for i in range(n)]
    return [(i1 + i) * inc for i in range(n)]


def format_tick(value: float) -> str:
    """Plain integer label: no thousands separators, no decimals."""
    if not math.isfinite(value):
        return str(value)
    rounded = int(js_round(value))
    if rounded < 0:
        return f"{MINUS_SIGN}{-rounded}"
    return str(rounded)


@dataclass(frozen=True)
class LinearScale:
    domain: tuple[float, float]
    range: tuple[float, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "domain", (float(self.domain[0]), float(self.domain[1])))
        object.__setattr__(self, "range", (float(self.range[0]), float(self.range[1])))

    def __call__(self, value: Any) -> Any:
        d0, d1 = self.domain
        r0, r1 = self.range
        t = (np.asarray(value, dtype=float) - d0) / (d1 - d0)
        return r0 * (1 - t) + r1 * t

    def invert(self, pixel: Any) -> Any:
        d0, d1 = self.domain
        r0, r1 = self.range
        t = (np.asarray(pixel, dtype=float) - r0) / (r1 - r0)
        return d0 * (1 - t) + d1 * t

    def ticks(self, count: int = 10) -> list[float]:
        return tick_values(self.domain[0], self.domain[1], count)

    def copy(
        self,
        *,
        domain: tuple[float, float] | None = None,
        range: tuple[float, float] | None = None,
    ) -> LinearScale:
        return replace(
            self,
            domain=self.domain if domain is None else domain,
            range=self.range if range is None else range,
        )


@dataclass(frozen=True)
class BandScale:
    keys: tuple[Hashable, ...]
    range: tuple[float, float]
    padding_inner: float = 0.1
    padding_outer: float = 0.1
    align: float = 0.5
    _offsets: dict[Hashable, float] = field(init=False, repr=False, compare=False)
    step: float = field(init=False)
    bandwidth: float = field(init=False)

    def __post_init__(self) -> None:
        keys = tuple(dict.fromkeys(self.keys))
        object.__setattr__(self, "keys", keys)
        r0, r1 = float(self.range[0]), float(self.range[1])
        reverse = r1 < r0
        start, stop = (r1, r0) if reverse else (r0, r1)
        n = len(keys)
        step = (stop - start) / max(1.0, n - self.padding_inner + self.padding_outer * 2)
        start += (stop - start - step * (n - self.padding_inner)) * self.align
        positions = [start + step * i for i in range(n)]
        if reverse:
            positions.reverse()
        object.__setattr__(self, "step", step)
        object.__setattr__(self, "bandwidth", step * (1 - self.padding_inner))
        object.__setattr__(self, "_offsets", dict(zip(keys, positions)))

    @classmethod
    def from_keys(
        cls,
        keys: Iterable[Hashable],
        range: tuple[float, float],
        padding: float = 0.1,
    ) -> BandScale:
        return cls(
            keys=tuple(keys),
            range=range,
            padding_inner=min(1.0, padding),
            padding_outer=padding,
        )

    def __call__(self, key: Hashable) -> float | None:
        try:
            return self._offsets.get(key)
        except TypeError:
            return None

    def positions(self, keys: Iterable[Hashable]) -> np.ndarray:
        offsets = [self(key) for key in keys]
        return np.array([np.nan if offset is None else offset for offset in offsets], dtype=float)

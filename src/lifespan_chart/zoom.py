"""Horizontal zoom and pan.

A ``ZoomTransform`` is a scale + translate pair. It is never applied to the
base horizontal scale in place: every zoom event derives a rescaled copy and
stores it in the shared view state, which is where the pointer-move handler
reads its mapping from.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import pandas as pd

from lifespan_chart.config import InteractionConfig, ZoomConfig
from lifespan_chart.scales import LinearScale
from lifespan_chart.scene import AxisCommand, HorizontalGeometry, render_axis, render_horizontal

if TYPE_CHECKING:
    from lifespan_chart.state import ViewState

LOGGER = logging.getLogger(__name__)

Point = tuple[float, float]
Extent = tuple[Point, Point]

WHEEL_PIXEL_FACTOR = 0.002
WHEEL_LINE_FACTOR = 0.05
WHEEL_PAGE_FACTOR = 1.0


@dataclass(frozen=True)
class ZoomTransform:
    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def scale(self, k: float) -> ZoomTransform:
        return self if k == 1 else ZoomTransform(self.k * k, self.x, self.y)

    def translate(self, x: float, y: float) -> ZoomTransform:
        if x == 0 and y == 0:
            return self
        return ZoomTransform(self.k, self.x + self.k * x, self.y + self.k * y)

    def apply_x(self, x: float) -> float:
        return x * self.k + self.x

    def invert_x(self, x: float) -> float:
        return (x - self.x) / self.k

    def invert_y(self, y: float) -> float:
        return (y - self.y) / self.k

    def invert(self, point: Point) -> Point:
        return self.invert_x(point[0]), self.invert_y(point[1])

    def rescale_x(self, scale: LinearScale) -> LinearScale:
        r0, r1 = scale.range
        domain = (
            float(scale.invert(self.invert_x(r0))),
            float(scale.invert(self.invert_x(r1))),
        )
        return scale.copy(domain=domain)

    def as_dict(self) -> dict[str, float]:
        return {"k": self.k, "x": self.x, "y": self.y}


IDENTITY = ZoomTransform()


@dataclass(frozen=True)
class ZoomBehavior:
    """Scale-extent and translate-extent rules for turning gestures into transforms."""

    extent: Extent
    translate_extent: Extent
    scale_extent: tuple[float, float] = (1.0, 10.0)

    @classmethod
    def for_chart(cls, width: float, height: float, config: ZoomConfig) -> ZoomBehavior:
        bounds = ((0.0, 0.0), (float(width), float(height)))
        return cls(
            extent=bounds,
            translate_extent=bounds,
            scale_extent=(config.min_scale, config.max_scale),
        )

    def _clamp_scale(self, k: float) -> float:
        low, high = self.scale_extent
        return max(low, min(high, k))

    def _with_scale(self, transform: ZoomTransform, k: float) -> ZoomTransform:
        k = self._clamp_scale(k)
        return transform if k == transform.k else ZoomTransform(k, transform.x, transform.y)

    @staticmethod
    def _anchor(transform: ZoomTransform, screen: Point, world: Point) -> ZoomTransform:
        x = screen[0] - world[0] * transform.k
        y = screen[1] - world[1] * transform.k
        if x == transform.x and y == transform.y:
            return transform
        return ZoomTransform(transform.k, x, y)

    def centroid(self) -> Point:
        (x0, y0), (x1, y1) = self.extent
        return (x0 + x1) / 2, (y0 + y1) / 2

    def constrain(self, transform: ZoomTransform) -> ZoomTransform:
        """Keep the visible window inside the translate extent."""
        (ex0, ey0), (ex1, ey1) = self.extent
        (tx0, ty0), (tx1, ty1) = self.translate_extent
        dx0 = transform.invert_x(ex0) - tx0
        dx1 = transform.invert_x(ex1) - tx1
        dy0 = transform.invert_y(ey0) - ty0
        dy1 = transform.invert_y(ey1) - ty1
        return transform.translate(
            (dx0 + dx1) / 2 if dx1 > dx0 else min(0.0, dx0) or max(0.0, dx1),
            (dy0 + dy1) / 2 if dy1 > dy0 else min(0.0, dy0) or max(0.0, dy1),
        )

    def scale_to(
        self,
        transform: ZoomTransform,
        k: float,
        point: Point | None = None,
    ) -> ZoomTransform:
        screen = self.centroid() if point is None else point
        world = transform.invert(screen)
        return self.constrain(self._anchor(self._with_scale(transform, k), screen, world))

    def scale_by(
        self,
        transform: ZoomTransform,
        factor: float,
        point: Point | None = None,
    ) -> ZoomTransform:
        return self.scale_to(transform, transform.k * factor, point)

    def wheel(
        self,
        transform: ZoomTransform,
        delta_y: float,
        point: Point,
        *,
        delta_mode: int = 0,
    ) -> ZoomTransform:
        if delta_mode == 1:
            factor = WHEEL_LINE_FACTOR
        elif delta_mode:
            factor = WHEEL_PAGE_FACTOR
        else:
            factor = WHEEL_PIXEL_FACTOR
        k = self._clamp_scale(transform.k * math.pow(2, -delta_y * factor))
        if k == transform.k:
            return transform
        world = transform.invert(point)
        return self.constrain(self._anchor(self._with_scale(transform, k), point, world))

    def pan(self, transform: ZoomTransform, dx: float, dy: float = 0.0) -> ZoomTransform:
        moved = ZoomTransform(transform.k, transform.x + dx, transform.y + dy)
        return self.constrain(moved)

    def double_click(
        self,
        transform: ZoomTransform,
        point: Point,
        *,
        shift: bool = False,
    ) -> ZoomTransform:
        return self.scale_by(transform, 0.5 if shift else 2.0, point)


@dataclass(frozen=True)
class ZoomUpdate:
    transform: ZoomTransform
    x: LinearScale
    axis: AxisCommand
    geometry: HorizontalGeometry


class ZoomController:
    """Applies zoom transforms to the shared view state and re-renders horizontal geometry."""

    def __init__(
        self,
        *,
        records: pd.DataFrame,
        base_x: LinearScale,
        behavior: ZoomBehavior,
        state: ViewState,
        chart_height: float,
        tick_count: int,
        interaction: InteractionConfig,
    ) -> None:
        self.records = records
        self.base_x = base_x
        self.behavior = behavior
        self.state = state
        self.chart_height = chart_height
        self.tick_count = tick_count
        self.interaction = interaction

    def zoomed(self, transform: ZoomTransform) -> ZoomUpdate:
        rescaled = transform.rescale_x(self.base_x)
        self.state.transform = transform
        self.state.x = rescaled
        LOGGER.debug("Zoom k=%.4f x=%.2f domain=%s", transform.k, transform.x, rescaled.domain)
        return ZoomUpdate(
            transform=transform,
            x=rescaled,
            axis=render_axis(rescaled, height=self.chart_height, tick_count=self.tick_count),
            geometry=render_horizontal(
                self.records,
                rescaled,
                label_offset=self.interaction.label_offset,
            ),
        )

    def scale_to(self, k: float, point: Point | None = None) -> ZoomUpdate:
        return self.zoomed(self.behavior.scale_to(self.state.transform, k, point))

    def wheel(self, delta_y: float, point: Point, *, delta_mode: int = 0) -> ZoomUpdate | None:
        transform = self.behavior.wheel(
            self.state.transform,
            delta_y,
            point,
            delta_mode=delta_mode,
        )
        if transform == self.state.transform:
            return None
        return self.zoomed(transform)

    def pan(self, dx: float, dy: float = 0.0) -> ZoomUpdate:
        return self.zoomed(self.behavior.pan(self.state.transform, dx, dy))

    def double_click(self, point: Point, *, shift: bool = False) -> ZoomUpdate:
        return self.zoomed(self.behavior.double_click(self.state.transform, point, shift=shift))

"""Declarative draw commands for the timeline.

Rendering never touches live elements: ``render_scene`` turns the records, the
current horizontal mapping and the view state into a ``ChartScene`` and
``diff_scenes`` lists what changed between two scenes, for the presentation
layer to apply.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator

import numpy as np
import pandas as pd

from lifespan_chart.config import AppConfig, ChartConfig, ColorsConfig, InteractionConfig
from lifespan_chart.io.schema import CanonicalColumns
from lifespan_chart.scales import BandScale, LinearScale, format_tick

if TYPE_CHECKING:
    from lifespan_chart.state import ViewState


@dataclass(frozen=True)
class ChartLayout:
    width: float
    height: float
    margin_top: float
    margin_right: float
    margin_bottom: float
    margin_left: float

    @property
    def svg_width(self) -> float:
        return self.width + self.margin_left + self.margin_right

    @property
    def svg_height(self) -> float:
        return self.height + self.margin_top + self.margin_bottom

    @property
    def origin_transform(self) -> str:
        return f"translate({svg_number(self.margin_left)},{svg_number(self.margin_top)})"


def compute_layout(config: ChartConfig) -> ChartLayout:
    return ChartLayout(
        width=float(config.width),
        height=float(config.height),
        margin_top=float(config.margins.top),
        margin_right=float(config.margins.right),
        margin_bottom=float(config.margins.bottom),
        margin_left=float(config.margins.left),
    )


@dataclass(frozen=True)
class DrawCommand:
    element_id: str
    tag: str
    attrs: dict[str, Any]
    style: dict[str, Any] = field(default_factory=dict)
    text: str | None = None

    def properties(self) -> dict[str, Any]:
        merged: dict[str, Any] = dict(self.attrs)
        merged.update({f"style:{key}": value for key, value in self.style.items()})
        if self.text is not None:
            merged["text"] = self.text
        return merged


@dataclass(frozen=True)
class AxisTick:
    value: float
    x: float
    label: str


@dataclass(frozen=True)
class AxisCommand:
    transform: str
    ticks: tuple[AxisTick, ...]

    def commands(self) -> list[DrawCommand]:
        return [
            DrawCommand(
                element_id=f"axis-tick-{index}",
                tag="g",
                attrs={"class": "tick", "transform": f"translate({svg_number(tick.x)},0)"},
                text=tick.label,
            )
            for index, tick in enumerate(self.ticks)
        ]


@dataclass(frozen=True, eq=False)
class HorizontalGeometry:
    bar_x: np.ndarray
    bar_width: np.ndarray
    label_x: np.ndarray


@dataclass(frozen=True)
class ChartScene:
    axis: AxisCommand
    bars: tuple[DrawCommand, ...]
    labels: tuple[DrawCommand, ...]
    guide_line: DrawCommand
    year_label: DrawCommand
    overlay: DrawCommand
    tooltip: DrawCommand

    def elements(self) -> Iterator[DrawCommand]:
        yield from self.axis.commands()
        yield from self.bars
        yield from self.labels
        yield self.guide_line
        yield self.year_label
        yield self.overlay
        yield self.tooltip

    def bar(self, position: int) -> DrawCommand:
        return self.bars[position]

    def visible_labels(self) -> list[str]:
        return [label.text or "" for label in self.labels if label.style.get("opacity") == 1]


@dataclass(frozen=True)
class AttributeChange:
    element_id: str
    attribute: str
    before: Any
    after: Any


def svg_number(value: float) -> str:
    if not math.isfinite(value):
        return "NaN"
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def span_bounds(records: pd.DataFrame) -> tuple[np.ndarray, np.ndarray]:
    """Per-record [min(start, end), max(start, end)] in domain units."""
    starts = records[CanonicalColumns.start_value].to_numpy(dtype=float)
    ends = records[CanonicalColumns.end_value].to_numpy(dtype=float)
    return np.minimum(starts, ends), np.maximum(starts, ends)


def render_horizontal(
    records: pd.DataFrame,
    x: LinearScale,
    *,
    label_offset: float = 5.0,
) -> HorizontalGeometry:
    starts = records[CanonicalColumns.start_value].to_numpy(dtype=float)
    ends = records[CanonicalColumns.end_value].to_numpy(dtype=float)
    low, high = span_bounds(records)
    return HorizontalGeometry(
        bar_x=np.asarray(x(low), dtype=float),
        bar_width=np.abs(np.asarray(x(starts) - x(ends), dtype=float)),
        label_x=np.asarray(x(high), dtype=float) + label_offset,
    )


def render_axis(x: LinearScale, *, height: float, tick_count: int = 10) -> AxisCommand:
    ticks = tuple(
        AxisTick(value=value, x=float(x(value)), label=format_tick(value))
        for value in x.ticks(tick_count)
    )
    return AxisCommand(transform=f"translate(0,{svg_number(height)})", ticks=ticks)


def bar_fill(is_highlighted: bool, *, selected: bool, colors: ColorsConfig) -> str:
    if selected:
        return colors.selected
    return colors.highlighted if is_highlighted else colors.normal


def render_bars(
    records: pd.DataFrame,
    geometry: HorizontalGeometry,
    y: BandScale,
    *,
    selected: set[int],
    colors: ColorsConfig,
) -> tuple[DrawCommand, ...]:
    names = records[CanonicalColumns.name].tolist()
    flags = records[CanonicalColumns.is_highlighted].tolist()
    band_y = y.positions(names)
    return tuple(
        DrawCommand(
            element_id=f"bar-{position}",
            tag="rect",
            attrs={
                "class": "dot",
                "name": name,
                "x": float(geometry.bar_x[position]),
                "y": float(band_y[position]),
                "width": float(geometry.bar_width[position]),
                "height": float(y.bandwidth),
                "fill": bar_fill(
                    bool(flags[position]),
                    selected=position in selected,
                    colors=colors,
                ),
            },
        )
        for position, name in enumerate(names)
    )


def render_labels(
    records: pd.DataFrame,
    geometry: HorizontalGeometry,
    y: BandScale,
    *,
    hovered: int | None,
    colors: ColorsConfig,
    interaction: InteractionConfig,
) -> tuple[DrawCommand, ...]:
    names = records[CanonicalColumns.name].tolist()
    band_y = y.positions(names)
    return tuple(
        DrawCommand(
            element_id=f"label-{position}",
            tag="text",
            attrs={
                "class": "label",
                "x": float(geometry.label_x[position]),
                "y": float(band_y[position] + y.bandwidth / 2),
                "fill": colors.label,
                "font-size": interaction.label_font_size,
                "text-anchor": "start",
                "alignment-baseline": "middle",
            },
            style={"opacity": 1 if position == hovered else 0},
            text="" if name is None else str(name),
        )
        for position, name in enumerate(names)
    )


def render_scene(
    records: pd.DataFrame,
    x: LinearScale,
    y: BandScale,
    state: ViewState,
    *,
    layout: ChartLayout,
    config: AppConfig,
) -> ChartScene:
    """Build every draw command of the chart for the given horizontal mapping."""
    interaction = config.interaction
    colors = config.colors
    geometry = render_horizontal(records, x, label_offset=interaction.label_offset)
    guide_x = state.guide_x
    tooltip = state.tooltip
    visibility = 1 if state.guide_visible else 0

    return ChartScene(
        axis=render_axis(x, height=layout.height, tick_count=config.chart.tick_count),
        bars=render_bars(records, geometry, y, selected=state.selected, colors=colors),
        labels=render_labels(
            records,
            geometry,
            y,
            hovered=state.hovered,
            colors=colors,
            interaction=interaction,
        ),
        guide_line=DrawCommand(
            element_id="mouse-line",
            tag="line",
            attrs={
                "class": "mouse-line",
                "x1": guide_x,
                "x2": guide_x,
                "y1": 0.0,
                "y2": layout.height,
            },
            style={
                "stroke": colors.guide_line,
                "stroke-width": 1,
                "stroke-dasharray": interaction.guide_dasharray,
                "opacity": visibility,
            },
        ),
        year_label=DrawCommand(
            element_id="year-text",
            tag="text",
            attrs={
                "class": "year-text",
                "x": guide_x,
                "y": interaction.year_label_y,
                "fill": colors.label,
                "font-size": interaction.label_font_size,
                "text-anchor": "middle",
            },
            style={"opacity": visibility},
            text=state.year_text,
        ),
        overlay=DrawCommand(
            element_id="capture-overlay",
            tag="rect",
            attrs={
                "class": "capture-overlay",
                "width": layout.width,
                "height": layout.height,
                "fill": "none",
                "pointer-events": "all",
            },
        ),
        tooltip=DrawCommand(
            element_id="tooltip",
            tag="div",
            attrs={"class": "tooltip"},
            style={
                "opacity": tooltip.opacity,
                "transition-duration": f"{tooltip.transition_ms}ms",
                "left": None if tooltip.left is None else f"{svg_number(tooltip.left)}px",
                "top": None if tooltip.top is None else f"{svg_number(tooltip.top)}px",
            },
            text=tooltip.html,
        ),
    )


def _values_equal(before: Any, after: Any, tolerance: float) -> bool:
    if isinstance(before, float) and isinstance(after, float):
        if math.isnan(before) and math.isnan(after):
            return True
        return math.isclose(before, after, rel_tol=0.0, abs_tol=tolerance)
    return before == after


def diff_scenes(
    before: ChartScene,
    after: ChartScene,
    *,
    tolerance: float = 1e-9,
) -> list[AttributeChange]:
    """List attribute changes needed to turn ``before`` into ``after``.

    Elements present on one side only show up with ``None`` on the other.
    """
    old = {command.element_id: command.properties() for command in before.elements()}
    new = {command.element_id: command.properties() for command in after.elements()}
    element_ids = list(old) + [element_id for element_id in new if element_id not in old]

    changes: list[AttributeChange] = []
    for element_id in element_ids:
        props_before = old.get(element_id, {})
        props_after = new.get(element_id, {})
        attributes = list(props_before) + [key for key in props_after if key not in props_before]
        for attribute in attributes:
            value_before = props_before.get(attribute)
            value_after = props_after.get(attribute)
            if not _values_equal(value_before, value_after, tolerance):
                changes.append(
                    AttributeChange(
                        element_id=element_id,
                        attribute=attribute,
                        before=value_before,
                        after=value_after,
                    )
                )
    return changes

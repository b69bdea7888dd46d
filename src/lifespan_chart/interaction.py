from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from markupsafe import escape

from lifespan_chart.config import InteractionConfig
from lifespan_chart.io.schema import CanonicalColumns
from lifespan_chart.scales import BandScale, LinearScale, js_round
from lifespan_chart.scene import span_bounds
from lifespan_chart.state import TooltipState, ViewState

LOGGER = logging.getLogger(__name__)


def format_value(value: float) -> str:
    """Print a record value the way the browser prints a number."""
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    return str(value)


def tooltip_html(name: str | None, start: float, end: float, config: InteractionConfig) -> str:
    return (
        f"{escape('' if name is None else name)}"
        f"<br/>{config.start_label}: {format_value(start)}"
        f"<br/>{config.end_label}: {format_value(end)}"
    )


def find_hovered(records: pd.DataFrame, x: LinearScale, pointer_x: float) -> int | None:
    """Position of the first record, in record order, whose pixel span holds the pointer."""
    low, high = span_bounds(records)
    pixel_low = np.asarray(x(low), dtype=float)
    pixel_high = np.asarray(x(high), dtype=float)
    matches = np.flatnonzero((pointer_x >= pixel_low) & (pointer_x <= pixel_high))
    if matches.size == 0:
        return None
    return int(matches[0])


def find_bar_at(
    records: pd.DataFrame,
    x: LinearScale,
    y: BandScale,
    pointer_x: float,
    pointer_y: float,
) -> int | None:
    """Position of the first bar whose rectangle holds the pointer."""
    low, high = span_bounds(records)
    pixel_low = np.asarray(x(low), dtype=float)
    pixel_high = np.asarray(x(high), dtype=float)
    band_top = y.positions(records[CanonicalColumns.name].tolist())
    inside = (
        (pointer_x >= pixel_low)
        & (pointer_x <= pixel_high)
        & (pointer_y >= band_top)
        & (pointer_y <= band_top + y.bandwidth)
    )
    matches = np.flatnonzero(inside)
    if matches.size == 0:
        return None
    return int(matches[0])


class InteractionController:
    """Pointer handlers for bars and the capture overlay.

    Each bar is Normal until clicked, then Selected for good. Hover, guide line
    and year label are recomputed on every pointer event from ``state.x``.
    """

    def __init__(
        self,
        *,
        records: pd.DataFrame,
        y: BandScale,
        state: ViewState,
        config: InteractionConfig,
    ) -> None:
        self.records = records
        self.y = y
        self.state = state
        self.config = config

    def click(self, position: int, page_x: float, page_y: float) -> TooltipState:
        if not 0 <= position < len(self.records):
            raise ValueError(f"No bar at position {position}")
        row = self.records.iloc[position]
        self.state.selected.add(position)
        self.state.tooltip = TooltipState(
            opacity=self.config.tooltip_opacity,
            transition_ms=self.config.tooltip_fade_ms,
            html=tooltip_html(
                row[CanonicalColumns.name],
                float(row[CanonicalColumns.start_value]),
                float(row[CanonicalColumns.end_value]),
                self.config,
            ),
            left=page_x + self.config.tooltip_offset_x,
            top=page_y + self.config.tooltip_offset_y,
        )
        LOGGER.debug("Selected bar %d (%s)", position, row[CanonicalColumns.name])
        return self.state.tooltip

    def click_at(
        self,
        pointer_x: float,
        pointer_y: float,
        page_x: float,
        page_y: float,
    ) -> TooltipState | None:
        """Click on the capture overlay; forwards to the bar under the pointer, if any."""
        position = find_bar_at(self.records, self.state.x, self.y, pointer_x, pointer_y)
        if position is None:
            return None
        return self.click(position, page_x, page_y)

    def pointer_enter(self) -> None:
        self.state.guide_visible = True

    def pointer_leave(self) -> None:
        self.state.guide_visible = False
        self.state.hovered = None

    def pointer_move(self, pointer_x: float) -> int | None:
        x = self.state.x
        year = js_round(float(x.invert(pointer_x)))
        self.state.guide_x = float(pointer_x)
        self.state.year_text = str(year)
        self.state.hovered = find_hovered(self.records, x, pointer_x)
        return self.state.hovered

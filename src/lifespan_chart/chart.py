from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from lifespan_chart.config import AppConfig, ChartConfig
from lifespan_chart.interaction import InteractionController
from lifespan_chart.io.schema import CanonicalColumns
from lifespan_chart.scales import BandScale, LinearScale
from lifespan_chart.scene import ChartLayout, ChartScene, compute_layout, render_scene
from lifespan_chart.state import ViewState
from lifespan_chart.zoom import ZoomBehavior, ZoomController

LOGGER = logging.getLogger(__name__)


def resolve_domain(records: pd.DataFrame, config: ChartConfig) -> tuple[float, float]:
    """Fixed configured domain, or [0, largest value] when domain_mode is 'data'."""
    if config.domain_mode == "fixed" or records.empty:
        return config.domain
    values = records[[CanonicalColumns.start_value, CanonicalColumns.end_value]].to_numpy(
        dtype=float
    )
    finite = values[np.isfinite(values)]
    if finite.size == 0 or float(finite.max()) <= 0:
        LOGGER.warning("No positive values to derive a domain from; using %s", config.domain)
        return config.domain
    return 0.0, float(finite.max())


@dataclass
class TimelineChart:
    records: pd.DataFrame
    layout: ChartLayout
    x: LinearScale
    y: BandScale
    state: ViewState
    interaction: InteractionController
    zoom: ZoomController
    config: AppConfig

    def scene(self) -> ChartScene:
        return render_scene(
            self.records,
            self.state.x,
            self.y,
            self.state,
            layout=self.layout,
            config=self.config,
        )


def build_chart(records: pd.DataFrame, config: AppConfig) -> TimelineChart:
    """Wire scales, view state and controllers for sorted records."""
    layout = compute_layout(config.chart)
    x = LinearScale(domain=resolve_domain(records, config.chart), range=(0.0, layout.width))
    y = BandScale.from_keys(
        records[CanonicalColumns.name].tolist(),
        range=(0.0, layout.height),
        padding=config.chart.band_padding,
    )
    state = ViewState(x=x)
    interaction = InteractionController(
        records=records,
        y=y,
        state=state,
        config=config.interaction,
    )
    zoom = ZoomController(
        records=records,
        base_x=x,
        behavior=ZoomBehavior.for_chart(layout.width, layout.height, config.zoom),
        state=state,
        chart_height=layout.height,
        tick_count=config.chart.tick_count,
        interaction=config.interaction,
    )
    LOGGER.info(
        "Chart %gx%g, domain %s, %d bars in %d bands",
        layout.width,
        layout.height,
        x.domain,
        len(records),
        len(y.keys),
    )
    return TimelineChart(
        records=records,
        layout=layout,
        x=x,
        y=y,
        state=state,
        interaction=interaction,
        zoom=zoom,
        config=config,
    )

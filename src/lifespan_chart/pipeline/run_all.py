from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from lifespan_chart.chart import TimelineChart, build_chart
from lifespan_chart.config import AppConfig
from lifespan_chart.io.read import LoadResult, RecordSourceError, load_records
from lifespan_chart.io.write import write_summary, write_table
from lifespan_chart.paths import OutputPaths, build_output_paths
from lifespan_chart.report.render import render_error_html, render_timeline_html
from lifespan_chart.viz.timeline import plot_lifespan_timeline

LOGGER = logging.getLogger(__name__)


def scene_bars_table(chart: TimelineChart) -> pd.DataFrame:
    """Bar draw commands as rows, for inspection outside the browser."""
    rows = [dict(bar.attrs, element_id=bar.element_id) for bar in chart.scene().bars]
    columns = ["element_id", "name", "x", "y", "width", "height", "fill"]
    return pd.DataFrame(rows, columns=columns)


def _render_static_figure(chart: TimelineChart, paths: OutputPaths) -> Path | None:
    config = chart.config
    try:
        return plot_lifespan_timeline(
            chart.records,
            paths.figures / f"timeline.{config.outputs.figures_format}",
            config.colors,
            domain=chart.x.domain,
            band_padding=config.chart.band_padding,
        )
    except Exception:  # pragma: no cover
        LOGGER.exception("Failed rendering static timeline figure")
        return None


def run_all(
    data_path: Path | None,
    out_dir: Path,
    config: AppConfig,
    *,
    static_figure: bool | None = None,
) -> Path:
    """Load records, build the chart and write the HTML page plus side outputs.

    Raises ``RecordSourceError`` after writing the error page when the source
    cannot be loaded.
    """
    paths = build_output_paths(out_dir)
    try:
        load_result: LoadResult = load_records(data_path=data_path, config=config)
    except RecordSourceError as exc:
        LOGGER.error("Data source unavailable: %s", exc)
        render_error_html(str(exc), out_dir=paths.root, config=config)
        raise

    write_summary(load_result.summary(), paths.artifacts / "load_report.json")
    chart = build_chart(load_result.records, config)

    if config.outputs.export_scene_table:
        extension = "parquet" if config.outputs.tables_format == "parquet" else "csv"
        write_table(
            scene_bars_table(chart),
            paths.artifacts / f"scene_bars.{extension}",
            fmt=config.outputs.tables_format,
        )

    if config.outputs.static_figure if static_figure is None else static_figure:
        _render_static_figure(chart, paths)

    return render_timeline_html(chart, out_dir=paths.root, load_result=load_result)

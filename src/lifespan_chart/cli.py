from __future__ import annotations

from pathlib import Path

import typer

from lifespan_chart.chart import build_chart
from lifespan_chart.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from lifespan_chart.io.read import RecordSourceError, load_records
from lifespan_chart.io.schema import CanonicalColumns
from lifespan_chart.logging import configure_logging
from lifespan_chart.pipeline.run_all import run_all

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _resolve_data_path(data: Path | None, cfg: AppConfig) -> Path:
    if data is not None:
        return data
    if cfg.input.data_path:
        return Path(cfg.input.data_path)
    raise typer.BadParameter(
        "Missing --data. Pass a JSON records file or set input.data_path "
        "(or LIFESPAN_CHART_DATA) in the config."
    )


@app.command()
def render(
    data: Path | None = typer.Option(None, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    png: bool | None = typer.Option(
        None,
        "--png/--no-png",
        help="Also draw a static figure (defaults to outputs.static_figure).",
    ),
    validate: bool | None = typer.Option(
        None,
        "--validate/--no-validate",
        help="Skip invalid records (defaults to input.validate_records).",
    ),
    log_level: str = typer.Option("INFO", help="Logging level."),
) -> None:
    """Render the interactive timeline page from a JSON records file."""
    configure_logging(log_level)
    cfg = _load_app_config(config)
    if validate is not None:
        cfg.input.validate_records = validate
    data_path = _resolve_data_path(data, cfg)
    try:
        report_path = run_all(data_path=data_path, out_dir=out, config=cfg, static_figure=png)
    except RecordSourceError as exc:
        typer.echo(f"Error: {exc}", err=True)
        typer.echo(f"Error page written to: {out / 'timeline.html'}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Timeline written to: {report_path}")


@app.command()
def validate(
    data: Path | None = typer.Option(None, readable=True, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    strict: bool = typer.Option(False, help="Exit non-zero when any record is skipped."),
) -> None:
    """Load and validate records without rendering; list skipped records."""
    configure_logging("WARNING")
    cfg = _load_app_config(config)
    cfg.input.validate_records = True
    data_path = _resolve_data_path(data, cfg)
    try:
        result = load_records(data_path=data_path, config=cfg)
    except RecordSourceError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    summary = result.summary()
    typer.echo(f"source_rows: {summary['source_rows']}")
    typer.echo(f"loaded_rows: {summary['loaded_rows']}")
    typer.echo(f"skipped_rows: {summary['skipped_rows']}")
    for item in result.skipped:
        typer.echo(f"  #{item.record_index} {item.name or '(unnamed)'}: {', '.join(item.reasons)}")
    if result.duplicate_names:
        typer.echo(f"duplicate_names: {', '.join(result.duplicate_names)}")
    if strict and result.skipped:
        raise typer.Exit(code=1)


@app.command()
def probe(
    x: float = typer.Option(..., "--x", help="Pointer offset in pixels from the chart origin."),
    data: Path | None = typer.Option(None, readable=True, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    zoom: float = typer.Option(1.0, min=0.0, help="Zoom scale factor, anchored at the origin."),
    pan_x: float = typer.Option(0.0, help="Horizontal pan in pixels after zooming."),
) -> None:
    """Report the year and hovered record under a pointer position."""
    configure_logging("WARNING")
    cfg = _load_app_config(config)
    data_path = _resolve_data_path(data, cfg)
    try:
        result = load_records(data_path=data_path, config=cfg)
    except RecordSourceError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    chart = build_chart(result.records, cfg)
    if zoom != 1.0:
        chart.zoom.scale_to(zoom, point=(0.0, 0.0))
    if pan_x:
        chart.zoom.pan(pan_x)
    chart.interaction.pointer_enter()
    hovered = chart.interaction.pointer_move(x)

    transform = chart.state.transform
    typer.echo(f"transform: k={transform.k:g} x={transform.x:g}")
    typer.echo(f"year: {chart.state.year_text}")
    if hovered is None:
        typer.echo("hovered: (none)")
    else:
        typer.echo(f"hovered: {chart.records.iloc[hovered][CanonicalColumns.name]}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from time import perf_counter
from typing import Any

import numpy as np
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from lifespan_chart.chart import TimelineChart
from lifespan_chart.config import AppConfig
from lifespan_chart.io.read import LoadResult
from lifespan_chart.io.schema import CanonicalColumns
from lifespan_chart.scene import DrawCommand, svg_number

LOGGER = logging.getLogger(__name__)


def _template_env() -> Environment:
    templates_path = Path(__file__).resolve().parent / "templates"
    env = Environment(
        loader=FileSystemLoader(str(templates_path)),
        autoescape=select_autoescape(enabled_extensions=("html", "xml", "j2")),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.globals["svg_attrs"] = _svg_attrs
    env.globals["style_text"] = _style_text
    env.filters["svg_number"] = svg_number
    return env


def _json_safe(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, np.ndarray):
        return [_json_safe(item) for item in value.tolist()]
    if hasattr(value, "item"):
        try:
            value = value.item()
        except Exception:
            pass
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (int, str, bool)) or value is None:
        return value
    return str(value)


def _format_attr(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return svg_number(float(value))
    return str(value)


def _svg_attrs(command: DrawCommand) -> Markup:
    parts = [f' id="{escape(command.element_id)}"']
    for key, value in command.attrs.items():
        if value is None:
            continue
        parts.append(f' {key}="{escape(_format_attr(value))}"')
    style = _style_text(command)
    if style:
        parts.append(f' style="{escape(style)}"')
    return Markup("".join(parts))


def _style_text(command: DrawCommand) -> str:
    return "; ".join(
        f"{key}: {_format_attr(value)}"
        for key, value in command.style.items()
        if value is not None
    )


def build_chart_payload(
    chart: TimelineChart,
    load_result: LoadResult | None = None,
) -> dict[str, Any]:
    """Everything the browser script needs to rebuild scales and bind handlers."""
    config = chart.config
    layout = chart.layout
    records = chart.records
    band_y = chart.y.positions(records[CanonicalColumns.name].tolist())
    bounds = [[0.0, 0.0], [layout.width, layout.height]]
    payload = {
        "title": config.report.title,
        "layout": {
            "width": layout.width,
            "height": layout.height,
            "svg_width": layout.svg_width,
            "svg_height": layout.svg_height,
            "margin": {
                "top": layout.margin_top,
                "right": layout.margin_right,
                "bottom": layout.margin_bottom,
                "left": layout.margin_left,
            },
        },
        "domain": list(chart.x.domain),
        "tick_count": config.chart.tick_count,
        "bandwidth": chart.y.bandwidth,
        "colors": config.colors.model_dump(),
        "interaction": config.interaction.model_dump(),
        "zoom": {
            "scale_extent": [config.zoom.min_scale, config.zoom.max_scale],
            "extent": bounds,
            "translate_extent": bounds,
        },
        "records": [
            {
                "name": name,
                "start": start,
                "end": end,
                "highlighted": bool(flag),
                "band_y": float(band_y[position]),
            }
            for position, (name, start, end, flag) in enumerate(
                zip(
                    records[CanonicalColumns.name].tolist(),
                    records[CanonicalColumns.start_value].tolist(),
                    records[CanonicalColumns.end_value].tolist(),
                    records[CanonicalColumns.is_highlighted].tolist(),
                )
            )
        ],
        "load_report": load_result.summary() if load_result is not None else None,
    }
    return _json_safe(payload)


def render_timeline_html(
    chart: TimelineChart,
    out_dir: Path,
    *,
    load_result: LoadResult | None = None,
) -> Path:
    report_started = perf_counter()
    generated_at = datetime.now(timezone.utc).isoformat()
    template = _template_env().get_template("timeline.html.j2")

    scene = chart.scene()
    payload = build_chart_payload(chart, load_result)

    template_started = perf_counter()
    rendered = template.render(
        title=chart.config.report.title,
        generated_at=generated_at,
        layout=chart.layout,
        scene=scene,
        payload=payload,
        load_summary=payload["load_report"],
        d3_url=chart.config.report.d3_url,
    )
    template_render_ms = round((perf_counter() - template_started) * 1000.0, 3)

    report_path = out_dir / "timeline.html"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(rendered, encoding="utf-8")

    runtime_metrics = {
        "generated_at": generated_at,
        "records": int(len(chart.records)),
        "template_render_ms": template_render_ms,
        "report_total_ms": round((perf_counter() - report_started) * 1000.0, 3),
        "report_html_bytes": int(report_path.stat().st_size),
    }
    runtime_path = out_dir / "artifacts" / "report_runtime.json"
    runtime_path.parent.mkdir(parents=True, exist_ok=True)
    runtime_path.write_text(
        json.dumps(_json_safe(runtime_metrics), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    LOGGER.info(
        "Timeline written to %s (%d bytes)",
        report_path,
        runtime_metrics["report_html_bytes"],
    )
    return report_path


def render_error_html(message: str, out_dir: Path, config: AppConfig) -> Path:
    """Visible error state for a data source that could not be loaded."""
    template = _template_env().get_template("error.html.j2")
    rendered = template.render(
        title=config.report.title,
        message=message,
        generated_at=datetime.now(timezone.utc).isoformat(),
    )
    report_path = out_dir / "timeline.html"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(rendered, encoding="utf-8")
    return report_path

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from lifespan_chart.chart import TimelineChart, build_chart
from lifespan_chart.config import AppConfig
from lifespan_chart.io.read import LoadResult, SkippedRecord
from lifespan_chart.io.schema import CANONICAL_ORDER
from lifespan_chart.report.render import (
    _json_safe,
    build_chart_payload,
    render_error_html,
    render_timeline_html,
)


def _chart(rows: list[tuple] | None = None) -> TimelineChart:
    records = pd.DataFrame(
        rows or [(0, "A", 100.0, 200.0, False), (1, "B", 150.0, 160.0, True)],
        columns=CANONICAL_ORDER,
    )
    config = AppConfig.model_validate({"chart": {"viewport_width": 1100, "viewport_height": 600}})
    return build_chart(records, config)


def test_json_safe_converts_numpy_and_non_finite_values() -> None:
    payload = {"a": np.float64("nan"), "b": np.int64(3), "c": (1.5, float("inf")), 4: "x"}

    assert _json_safe(payload) == {"a": None, "b": 3, "c": [1.5, None], "4": "x"}


def test_chart_payload_carries_scales_and_records() -> None:
    payload = build_chart_payload(_chart())

    assert payload["domain"] == [0.0, 13500.0]
    assert payload["layout"]["width"] == 1000
    assert payload["layout"]["margin"] == {"top": 20, "right": 20, "bottom": 30, "left": 50}
    assert payload["zoom"]["scale_extent"] == [1.0, 10.0]
    assert payload["zoom"]["extent"] == [[0.0, 0.0], [1000.0, 500.0]]
    assert payload["bandwidth"] == pytest.approx(214.2857, abs=1e-4)
    first = payload["records"][0]
    assert first["name"] == "A"
    assert first["start"] == 100.0
    assert first["highlighted"] is False
    assert first["band_y"] == pytest.approx(23.8095, abs=1e-4)
    assert payload["records"][1]["highlighted"] is True
    assert payload["load_report"] is None


def test_chart_payload_nulls_missing_values() -> None:
    payload = build_chart_payload(_chart([(0, "A", float("nan"), 200.0, False)]))

    assert payload["records"][0]["start"] is None


def test_render_timeline_html_writes_page_and_runtime_metrics(tmp_path: Path) -> None:
    chart = _chart()

    report_path = render_timeline_html(chart, out_dir=tmp_path)

    html = report_path.read_text(encoding="utf-8")
    assert report_path == tmp_path / "timeline.html"
    assert 'id="bar-0"' in html
    assert 'class="dot"' in html
    assert 'fill="red"' in html
    assert 'id="capture-overlay"' in html
    assert 'id="timeline-payload"' in html
    assert "https://d3js.org/d3.v7.min.js" in html
    assert 'transform="translate(50,20)"' in html
    assert "load-report" not in html.split("<body>", 1)[1].split("<svg", 1)[0]

    runtime = json.loads((tmp_path / "artifacts" / "report_runtime.json").read_text("utf-8"))
    assert runtime["records"] == 2
    assert runtime["report_html_bytes"] > 0


def test_render_timeline_html_escapes_record_names(tmp_path: Path) -> None:
    chart = _chart([(0, "<script>alert(1)</script>", 100.0, 200.0, False)])

    html = render_timeline_html(chart, out_dir=tmp_path).read_text(encoding="utf-8")

    assert "<script>alert(1)" not in html
    assert "&lt;script&gt;alert(1)" in html


def test_render_timeline_html_lists_skipped_records(tmp_path: Path) -> None:
    chart = _chart()
    load_result = LoadResult(
        records=chart.records,
        source_rows=3,
        skipped=(SkippedRecord(record_index=2, name="C", reasons=("missing end value",)),),
    )

    html = render_timeline_html(chart, out_dir=tmp_path, load_result=load_result).read_text(
        encoding="utf-8"
    )

    assert "Skipped 1 of 3 records" in html
    assert "#2 C: missing end value" in html


def test_render_error_html_shows_message(tmp_path: Path) -> None:
    report_path = render_error_html("Cannot read data source x.json", tmp_path, AppConfig())

    html = report_path.read_text(encoding="utf-8")
    assert 'class="load-error"' in html
    assert "Cannot read data source x.json" in html
    assert "<svg" not in html

from __future__ import annotations

import pandas as pd
import pytest

from lifespan_chart.chart import build_chart, resolve_domain
from lifespan_chart.config import AppConfig, ChartConfig
from lifespan_chart.io.schema import CANONICAL_ORDER


def _records() -> pd.DataFrame:
    return pd.DataFrame(
        [(0, "A", 100.0, 200.0, False), (1, "B", 150.0, 160.0, True)],
        columns=CANONICAL_ORDER,
    )


def test_resolve_domain_is_fixed_by_default() -> None:
    assert resolve_domain(_records(), ChartConfig()) == (0.0, 13500.0)


def test_resolve_domain_from_data_uses_largest_value() -> None:
    config = ChartConfig(domain_mode="data")

    assert resolve_domain(_records(), config) == (0.0, 200.0)


def test_resolve_domain_from_data_falls_back_without_values() -> None:
    records = pd.DataFrame([(0, "A", float("nan"), float("nan"), False)], columns=CANONICAL_ORDER)
    config = ChartConfig(domain_mode="data", domain=(0, 500))

    assert resolve_domain(records, config) == (0.0, 500.0)


def test_build_chart_sizes_drawable_area_from_viewport() -> None:
    chart = build_chart(_records(), AppConfig())

    assert chart.layout.width == 1280
    assert chart.layout.height == 800
    assert chart.layout.svg_width == 1350
    assert chart.layout.origin_transform == "translate(50,20)"
    assert chart.x.range == (0.0, 1280.0)
    assert chart.state.x is chart.x


def test_hover_after_zoom_reads_rescaled_mapping() -> None:
    config = AppConfig.model_validate({"chart": {"viewport_width": 1100, "viewport_height": 600}})
    chart = build_chart(_records(), config)

    chart.zoom.scale_to(2, point=(0, 0))

    assert chart.interaction.pointer_move(11.5) is None
    assert chart.state.year_text == "78"
    assert chart.interaction.pointer_move(23) == 0
    assert chart.scene().labels[0].attrs["x"] == pytest.approx(29.6296 + 5, abs=1e-3)

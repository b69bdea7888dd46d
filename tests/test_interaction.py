from __future__ import annotations

import pandas as pd
import pytest

from lifespan_chart.chart import TimelineChart, build_chart
from lifespan_chart.config import AppConfig, InteractionConfig
from lifespan_chart.interaction import find_hovered, format_value, tooltip_html
from lifespan_chart.io.schema import CANONICAL_ORDER


def _chart() -> TimelineChart:
    records = pd.DataFrame(
        [(0, "A", 100.0, 200.0, False), (1, "B", 150.0, 160.0, True)],
        columns=CANONICAL_ORDER,
    )
    config = AppConfig.model_validate({"chart": {"viewport_width": 1100, "viewport_height": 600}})
    return build_chart(records, config)


def test_hover_matches_first_record_in_order() -> None:
    chart = _chart()
    chart.interaction.pointer_enter()

    hovered = chart.interaction.pointer_move(11.5)

    assert hovered == 0
    assert chart.state.year_text == "155"
    assert chart.state.guide_x == 11.5
    scene = chart.scene()
    assert scene.visible_labels() == ["A"]
    assert scene.guide_line.attrs["x1"] == 11.5
    assert scene.guide_line.style["opacity"] == 1
    assert scene.year_label.text == "155"


def test_hover_outside_every_span_clears_labels() -> None:
    chart = _chart()
    chart.interaction.pointer_move(11.5)

    assert chart.interaction.pointer_move(900) is None
    assert chart.state.year_text == "12150"
    assert chart.scene().visible_labels() == []


def test_pointer_leave_hides_guide_and_labels() -> None:
    chart = _chart()
    chart.interaction.pointer_enter()
    chart.interaction.pointer_move(11.5)

    chart.interaction.pointer_leave()

    scene = chart.scene()
    assert scene.visible_labels() == []
    assert scene.guide_line.style["opacity"] == 0
    assert scene.year_label.style["opacity"] == 0


def test_click_selects_bar_and_opens_tooltip() -> None:
    chart = _chart()

    tooltip = chart.interaction.click(1, page_x=300, page_y=200)

    assert tooltip.html == "B<br/>Start: 150<br/>End: 160"
    assert tooltip.left == 305
    assert tooltip.top == 172
    assert tooltip.opacity == 0.9
    assert tooltip.transition_ms == 200
    assert chart.scene().bar(1).attrs["fill"] == "orange"
    assert chart.scene().tooltip.style["left"] == "305px"


def test_selection_survives_pointer_moves_and_repeat_clicks() -> None:
    chart = _chart()
    chart.interaction.click(0, page_x=10, page_y=10)

    chart.interaction.pointer_move(11.5)
    chart.interaction.pointer_leave()
    chart.interaction.click(0, page_x=40, page_y=50)
    chart.interaction.click(1, page_x=60, page_y=70)

    fills = [bar.attrs["fill"] for bar in chart.scene().bars]
    assert fills == ["orange", "orange"]
    assert chart.state.tooltip.html.startswith("B<br/>")


def test_click_rejects_unknown_bar() -> None:
    chart = _chart()

    with pytest.raises(ValueError, match="No bar"):
        chart.interaction.click(5, page_x=0, page_y=0)


def test_overlay_click_forwards_to_bar_under_pointer() -> None:
    chart = _chart()

    assert chart.interaction.click_at(500, 30, page_x=0, page_y=0) is None
    tooltip = chart.interaction.click_at(11.5, 300, page_x=0, page_y=0)

    assert tooltip is not None
    assert tooltip.html.startswith("B<br/>")
    assert chart.state.selected == {1}


def test_find_hovered_uses_given_mapping() -> None:
    chart = _chart()
    zoomed = chart.x.copy(domain=(0, 6750))

    assert find_hovered(chart.records, chart.x, 11.5) == 0
    assert find_hovered(chart.records, zoomed, 11.5) is None


def test_tooltip_html_escapes_names_and_prints_numbers() -> None:
    config = InteractionConfig()

    assert tooltip_html("<b>", 1.0, 2.5, config) == "&lt;b&gt;<br/>Start: 1<br/>End: 2.5"
    assert format_value(float("nan")) == "NaN"
    assert format_value(-44.0) == "-44"

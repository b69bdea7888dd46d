from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_DOMAIN = (0.0, 13500.0)
DATA_PATH_ENV_VAR = "LIFESPAN_CHART_DATA"


class ColumnsConfig(BaseModel):
    name: str = "name"
    start: str = "nacimiento_date"
    end: str = "muerte_date"
    flag: str = "persona"
    highlight_values: list[str] = Field(default_factory=lambda: ["si"])
    flag_case_insensitive: bool = False


class InputConfig(BaseModel):
    data_path: str | None = None
    validate_records: bool = True


class MarginsConfig(BaseModel):
    top: int = Field(default=20, ge=0)
    right: int = Field(default=20, ge=0)
    bottom: int = Field(default=30, ge=0)
    left: int = Field(default=50, ge=0)


class ChartConfig(BaseModel):
    viewport_width: int = Field(default=1380, gt=0)
    viewport_height: int = Field(default=900, gt=0)
    viewport_inset: int = Field(default=100, ge=0)
    margins: MarginsConfig = Field(default_factory=MarginsConfig)
    domain_mode: Literal["fixed", "data"] = "fixed"
    domain: tuple[float, float] = DEFAULT_DOMAIN
    band_padding: float = Field(default=0.1, ge=0.0, lt=1.0)
    tick_count: int = Field(default=10, ge=1)

    @model_validator(mode="after")
    def _check_domain(self) -> "ChartConfig":
        if self.domain[0] == self.domain[1]:
            raise ValueError("chart.domain bounds must differ")
        inset = self.viewport_inset
        if self.viewport_width <= inset or self.viewport_height <= inset:
            raise ValueError("chart viewport must be larger than viewport_inset")
        return self

    @property
    def width(self) -> int:
        return self.viewport_width - self.viewport_inset

    @property
    def height(self) -> int:
        return self.viewport_height - self.viewport_inset


class ColorsConfig(BaseModel):
    normal: str = "blue"
    highlighted: str = "red"
    selected: str = "orange"
    label: str = "black"
    guide_line: str = "black"


class InteractionConfig(BaseModel):
    label_offset: float = 5.0
    label_font_size: str = "12px"
    year_label_y: float = -10.0
    guide_dasharray: str = "5,5"
    tooltip_offset_x: float = 5.0
    tooltip_offset_y: float = -28.0
    tooltip_opacity: float = Field(default=0.9, ge=0.0, le=1.0)
    tooltip_fade_ms: int = Field(default=200, ge=0)
    start_label: str = "Start"
    end_label: str = "End"


class ZoomConfig(BaseModel):
    min_scale: float = Field(default=1.0, gt=0.0)
    max_scale: float = Field(default=10.0, gt=0.0)

    @model_validator(mode="after")
    def _check_extent(self) -> "ZoomConfig":
        if self.min_scale > self.max_scale:
            raise ValueError("zoom.min_scale must not exceed zoom.max_scale")
        return self


class OutputsConfig(BaseModel):
    tables_format: Literal["csv", "parquet"] = "csv"
    figures_format: str = "png"
    static_figure: bool = True
    export_scene_table: bool = False


class ReportConfig(BaseModel):
    title: str = "Lifespan timeline"
    d3_url: str = "https://d3js.org/d3.v7.min.js"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    chart: ChartConfig = Field(default_factory=ChartConfig)
    colors: ColorsConfig = Field(default_factory=ColorsConfig)
    interaction: InteractionConfig = Field(default_factory=InteractionConfig)
    zoom: ZoomConfig = Field(default_factory=ZoomConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.input.data_path = _resolve_optional_path(
        config.input.data_path,
        base_dir,
    ) or os.getenv(DATA_PATH_ENV_VAR)
    return config

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.ticker import FuncFormatter

from lifespan_chart.config import ColorsConfig
from lifespan_chart.io.schema import CanonicalColumns
from lifespan_chart.scales import format_tick
from lifespan_chart.scene import span_bounds


def save_figure(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    plt.savefig(path)
    plt.close()
    return path


def plot_lifespan_timeline(
    records: pd.DataFrame,
    output_path: Path,
    colors: ColorsConfig,
    *,
    domain: tuple[float, float] | None = None,
    band_padding: float = 0.1,
) -> Path | None:
    if records.empty:
        return None

    low, high = span_bounds(records)
    named = records[CanonicalColumns.name].notna().to_numpy()
    drawable = np.isfinite(low) & np.isfinite(high) & named
    subset = records.loc[drawable]
    if subset.empty:
        return None

    # duplicate names share one row, like the band scale
    band_codes, band_names = pd.factorize(subset[CanonicalColumns.name])
    lefts = low[drawable]
    widths = high[drawable] - lefts
    fills = [
        colors.highlighted if flag else colors.normal
        for flag in subset[CanonicalColumns.is_highlighted].tolist()
    ]

    fig, ax = plt.subplots(figsize=(12, max(3.0, 0.3 * len(band_names))))
    ax.barh(band_codes, widths, left=lefts, color=fills, height=1.0 - band_padding)
    ax.set_yticks(range(len(band_names)), labels=[str(name) for name in band_names])
    ax.invert_yaxis()
    ax.xaxis.set_major_formatter(FuncFormatter(lambda value, _pos: format_tick(value)))
    if domain is not None:
        ax.set_xlim(domain)
    ax.set_title("Lifespans")
    return save_figure(output_path)

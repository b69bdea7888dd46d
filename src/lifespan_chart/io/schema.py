from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable

import pandas as pd

from lifespan_chart.config import ColumnsConfig


@dataclass(frozen=True)
class CanonicalColumns:
    record_index: str = "record_index"
    name: str = "name"
    start_value: str = "start_value"
    end_value: str = "end_value"
    is_highlighted: str = "is_highlighted"


CANONICAL_ORDER = [
    CanonicalColumns.record_index,
    CanonicalColumns.name,
    CanonicalColumns.start_value,
    CanonicalColumns.end_value,
    CanonicalColumns.is_highlighted,
]


def _flag_token(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _fold(token: str) -> str:
    return token.strip().casefold()


def coerce_flag(
    values: pd.Series,
    highlight_values: Iterable[str],
    *,
    case_insensitive: bool = False,
) -> pd.Series:
    """Map a two-valued source flag to booleans; missing values count as off.

    Tokens match exactly unless ``case_insensitive`` is set, in which case
    surrounding whitespace and letter case are ignored on both sides.
    """
    if case_insensitive:
        truthy = {_fold(str(value)) for value in highlight_values}
    else:
        truthy = {str(value) for value in highlight_values}

    def _is_on(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return False
        token = _flag_token(value)
        return (_fold(token) if case_insensitive else token) in truthy

    return values.map(_is_on).astype(bool)


def normalize_columns(df: pd.DataFrame, columns: ColumnsConfig) -> pd.DataFrame:
    """Rename source fields to canonical names used by scales/scene/controllers.

    Source fields absent from every record are added as empty columns so that
    per-record validation can report them instead of failing the whole load.
    """
    rename_map = {
        columns.name: CanonicalColumns.name,
        columns.start: CanonicalColumns.start_value,
        columns.end: CanonicalColumns.end_value,
        columns.flag: CanonicalColumns.is_highlighted,
    }
    sources = [columns.name, columns.start, columns.end, columns.flag]
    if len(set(sources)) != len(sources):
        raise ValueError("Source field names in columns config must be distinct")

    working = df.reindex(columns=list(rename_map)).rename(columns=rename_map)
    working.insert(0, CanonicalColumns.record_index, range(len(working)))
    working[CanonicalColumns.is_highlighted] = coerce_flag(
        working[CanonicalColumns.is_highlighted],
        columns.highlight_values,
        case_insensitive=columns.flag_case_insensitive,
    )
    return working[CANONICAL_ORDER]

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from lifespan_chart.config import AppConfig
from lifespan_chart.io.schema import CanonicalColumns, normalize_columns

LOGGER = logging.getLogger(__name__)

NUMERIC_COLUMNS = [CanonicalColumns.start_value, CanonicalColumns.end_value]


class RecordSourceError(ValueError):
    """Raised when the data source cannot be read or is not a list of records."""


@dataclass(frozen=True)
class SkippedRecord:
    record_index: int
    name: str | None
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class LoadResult:
    records: pd.DataFrame
    source_rows: int
    skipped: tuple[SkippedRecord, ...] = ()
    duplicate_names: tuple[str, ...] = field(default_factory=tuple)

    def summary(self) -> dict[str, Any]:
        return {
            "source_rows": self.source_rows,
            "loaded_rows": int(len(self.records)),
            "skipped_rows": len(self.skipped),
            "skipped": [
                {
                    "record_index": item.record_index,
                    "name": item.name,
                    "reasons": list(item.reasons),
                }
                for item in self.skipped
            ],
            "duplicate_names": list(self.duplicate_names),
        }


def read_source(path: Path) -> list[dict[str, Any]]:
    try:
        raw = path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise RecordSourceError(f"Cannot read data source {path}: {exc}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RecordSourceError(f"Data source {path} is not valid JSON: {exc}") from exc

    if not isinstance(payload, list):
        raise RecordSourceError(f"Data source {path} must hold a JSON array of records")
    for position, item in enumerate(payload):
        if not isinstance(item, dict):
            raise RecordSourceError(
                f"Data source {path} entry {position} is not an object: {type(item).__name__}"
            )
    return payload


def _record_problems(raw: pd.Series, numeric: pd.Series, label: str) -> pd.Series:
    missing = raw.isna()
    non_numeric = raw.notna() & numeric.isna()
    problems = pd.Series("", index=raw.index, dtype=object)
    problems[missing] = f"missing {label}"
    problems[non_numeric] = raw[non_numeric].map(lambda value: f"non-numeric {label} {value!r}")
    non_finite = numeric.notna() & ~np.isfinite(numeric)
    problems[non_finite] = raw[non_finite].map(lambda value: f"non-finite {label} {value!r}")
    return problems


def _display_name(value: Any) -> str | None:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return str(value)


def coerce_records(df: pd.DataFrame) -> tuple[pd.DataFrame, pd.Series]:
    """Coerce canonical columns and collect per-row problem descriptions."""
    working = df.copy()
    problems: list[pd.Series] = []

    names = working[CanonicalColumns.name]
    name_problems = pd.Series("", index=working.index, dtype=object)
    name_problems[names.isna()] = "missing name"
    blank = names.notna() & names.map(lambda value: not str(value).strip()).astype(bool)
    name_problems[blank] = "empty name"
    problems.append(name_problems)
    working[CanonicalColumns.name] = names.map(_display_name)

    for column, label in zip(NUMERIC_COLUMNS, ("start value", "end value")):
        numeric = pd.to_numeric(working[column], errors="coerce").astype(float)
        problems.append(_record_problems(working[column], numeric, label))
        working[column] = numeric

    combined = pd.Series(
        [tuple(reason for reason in reasons if reason) for reasons in zip(*problems)],
        index=working.index,
        dtype=object,
    )
    return working, combined


def sort_records(df: pd.DataFrame) -> pd.DataFrame:
    """Stable ascending sort by start value; fixes top-to-bottom band order."""
    return df.sort_values(
        CanonicalColumns.start_value,
        kind="stable",
        na_position="last",
    ).reset_index(drop=True)


def load_records(data_path: Path | None, config: AppConfig) -> LoadResult:
    """Load, validate and sort records from a JSON array file."""
    if data_path is None:
        raise RecordSourceError(
            "No data source given; pass --data or set input.data_path in the config"
        )

    payload = read_source(data_path)
    frame = pd.DataFrame.from_records(payload) if payload else pd.DataFrame()
    normalized = normalize_columns(df=frame, columns=config.columns)
    coerced, problems = coerce_records(normalized)

    skipped: list[SkippedRecord] = []
    if config.input.validate_records:
        invalid = problems.map(bool).astype(bool)
        for row_position in coerced.index[invalid.to_numpy()]:
            skipped.append(
                SkippedRecord(
                    record_index=int(coerced.at[row_position, CanonicalColumns.record_index]),
                    name=coerced.at[row_position, CanonicalColumns.name],
                    reasons=problems.at[row_position],
                )
            )
        coerced = coerced.loc[~invalid]
        if skipped:
            LOGGER.warning(
                "Skipped %d of %d records from %s",
                len(skipped),
                len(payload),
                data_path,
            )
    elif problems.map(bool).any():
        LOGGER.info(
            "Keeping %d invalid records; validation disabled",
            int(problems.map(bool).sum()),
        )

    names = coerced[CanonicalColumns.name].dropna()
    duplicates = tuple(names[names.duplicated()].drop_duplicates().tolist())
    if duplicates:
        LOGGER.info("Duplicate names share one band: %s", ", ".join(duplicates))

    records = sort_records(coerced)
    LOGGER.info("Loaded %d records from %s", len(records), data_path)
    return LoadResult(
        records=records,
        source_rows=len(payload),
        skipped=tuple(skipped),
        duplicate_names=duplicates,
    )

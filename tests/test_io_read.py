from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from lifespan_chart.config import AppConfig, ColumnsConfig
from lifespan_chart.io.read import RecordSourceError, load_records, read_source
from lifespan_chart.io.schema import coerce_flag, normalize_columns


def _write_records(tmp_path: Path, records: Any) -> Path:
    path = tmp_path / "records.json"
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


def test_load_records_normalizes_and_sorts_stably(tmp_path: Path) -> None:
    path = _write_records(
        tmp_path,
        [
            {"name": "C", "nacimiento_date": 300, "muerte_date": 350, "persona": "no"},
            {"name": "A", "nacimiento_date": 100, "muerte_date": 200, "persona": "si"},
            {"name": "B", "nacimiento_date": 100, "muerte_date": 120, "persona": "no"},
        ],
    )

    result = load_records(data_path=path, config=AppConfig())
    records = result.records

    assert list(records.columns) == [
        "record_index",
        "name",
        "start_value",
        "end_value",
        "is_highlighted",
    ]
    assert records["name"].tolist() == ["A", "B", "C"]
    assert records["record_index"].tolist() == [1, 2, 0]
    assert records["is_highlighted"].tolist() == [True, False, False]
    assert records["start_value"].tolist() == [100.0, 100.0, 300.0]
    assert result.skipped == ()


def test_load_records_uses_configured_field_names(tmp_path: Path) -> None:
    path = _write_records(
        tmp_path,
        [{"label": "Gauss", "born": 1777, "died": 1855, "notable": True}],
    )
    config = AppConfig.model_validate(
        {"columns": {"name": "label", "start": "born", "end": "died", "flag": "notable"}}
    )

    records = load_records(data_path=path, config=config).records

    assert records.loc[0, "name"] == "Gauss"
    assert records.loc[0, "end_value"] == 1855.0
    assert bool(records.loc[0, "is_highlighted"]) is True


def test_load_records_skips_invalid_records_with_reasons(tmp_path: Path) -> None:
    path = _write_records(
        tmp_path,
        [
            {"name": "Valid", "nacimiento_date": 10, "muerte_date": 20, "persona": "si"},
            {"name": "Text start", "nacimiento_date": "abc", "muerte_date": 20},
            {"name": "No end", "nacimiento_date": 5},
            {"name": "   ", "nacimiento_date": 1, "muerte_date": 2},
            {"nacimiento_date": 1, "muerte_date": 2},
            {"name": "Endless", "nacimiento_date": float("inf"), "muerte_date": 20},
            {"name": "Text inf", "nacimiento_date": 1, "muerte_date": "inf"},
        ],
    )

    result = load_records(data_path=path, config=AppConfig())

    assert result.records["name"].tolist() == ["Valid"]
    assert result.source_rows == 7
    reasons = {item.record_index: item.reasons for item in result.skipped}
    assert reasons == {
        1: ("non-numeric start value 'abc'",),
        2: ("missing end value",),
        3: ("empty name",),
        4: ("missing name",),
        5: ("non-finite start value inf",),
        6: ("non-finite end value 'inf'",),
    }
    summary = result.summary()
    assert summary["loaded_rows"] == 1
    assert summary["skipped_rows"] == 6
    assert summary["skipped"][3]["name"] is None


def test_load_records_keeps_invalid_rows_when_validation_disabled(tmp_path: Path) -> None:
    path = _write_records(
        tmp_path,
        [
            {"name": "Broken", "nacimiento_date": "abc", "muerte_date": 20},
            {"name": "Valid", "nacimiento_date": 10, "muerte_date": 20},
        ],
    )
    config = AppConfig.model_validate({"input": {"validate_records": False}})

    result = load_records(data_path=path, config=config)

    assert result.records["name"].tolist() == ["Valid", "Broken"]
    assert pd.isna(result.records.loc[1, "start_value"])
    assert result.skipped == ()


def test_load_records_reports_duplicate_names(tmp_path: Path) -> None:
    path = _write_records(
        tmp_path,
        [
            {"name": "Twin", "nacimiento_date": 1, "muerte_date": 2},
            {"name": "Twin", "nacimiento_date": 3, "muerte_date": 4},
            {"name": "Solo", "nacimiento_date": 5, "muerte_date": 6},
        ],
    )

    result = load_records(data_path=path, config=AppConfig())

    assert result.duplicate_names == ("Twin",)
    assert len(result.records) == 3


def test_load_records_accepts_empty_array(tmp_path: Path) -> None:
    path = _write_records(tmp_path, [])

    result = load_records(data_path=path, config=AppConfig())

    assert result.records.empty
    assert result.source_rows == 0


def test_load_records_requires_a_data_path() -> None:
    with pytest.raises(RecordSourceError, match="No data source"):
        load_records(data_path=None, config=AppConfig())


def test_read_source_rejects_missing_file(tmp_path: Path) -> None:
    with pytest.raises(RecordSourceError, match="Cannot read"):
        read_source(tmp_path / "absent.json")


def test_read_source_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "records.json"
    path.write_text("[{", encoding="utf-8")

    with pytest.raises(RecordSourceError, match="not valid JSON"):
        read_source(path)


@pytest.mark.parametrize("payload", [{"name": "A"}, [1, 2], ["A"]])
def test_read_source_rejects_non_record_payloads(tmp_path: Path, payload: Any) -> None:
    path = _write_records(tmp_path, payload)

    with pytest.raises(RecordSourceError):
        read_source(path)


def test_coerce_flag_matches_tokens_exactly_by_default() -> None:
    values = pd.Series(
        ["si", "Si", " si", "yes", "true", 1, None, True, False, "no"],
        dtype=object,
    )

    flags = coerce_flag(values, ["si"])

    assert flags.tolist() == [True, False, False, False, False, False, False, True, False, False]


def test_coerce_flag_case_insensitive_opt_in() -> None:
    values = pd.Series(["Si", " YES ", "no", 1.0, 0], dtype=object)

    flags = coerce_flag(values, ["si", "yes", "1"], case_insensitive=True)

    assert flags.tolist() == [True, True, False, True, False]


def test_load_records_highlights_only_exact_default_token(tmp_path: Path) -> None:
    path = _write_records(
        tmp_path,
        [
            {"name": name, "nacimiento_date": start, "muerte_date": start + 1, "persona": flag}
            for start, (name, flag) in enumerate(
                [("A", "si"), ("B", "Si"), ("C", "yes"), ("D", "true"), ("E", "no")]
            )
        ],
    )

    default = load_records(data_path=path, config=AppConfig()).records
    relaxed = load_records(
        data_path=path,
        config=AppConfig.model_validate(
            {"columns": {"highlight_values": ["si", "yes"], "flag_case_insensitive": True}}
        ),
    ).records

    assert default["is_highlighted"].tolist() == [True, False, False, False, False]
    assert relaxed["is_highlighted"].tolist() == [True, True, True, False, False]


def test_normalize_columns_requires_distinct_source_fields() -> None:
    frame = pd.DataFrame({"name": ["A"], "year": [1]})

    with pytest.raises(ValueError, match="distinct"):
        normalize_columns(frame, ColumnsConfig(start="year", end="year"))

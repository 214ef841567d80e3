from __future__ import annotations

import pandas as pd
import pytest

from passenger_forecast.core.errors import DataIntegrityError
from passenger_forecast.services.data_loader import (
    invalid_period_mask,
    normalize_columns,
    parse_activity_period,
    read_tabular,
)
from passenger_forecast.services.validation import load_records, validate_records
from tests.factories import raw_rows


def _checks(report) -> set[str]:
    return {i.check for i in report.issues}


def test_template_validates_cleanly(template_df):
    report = validate_records(template_df)
    assert not report.has_errors
    clean = report.cleaned_df
    assert {"date", "activity_period", "airline", "passengers"}.issubset(clean.columns)
    assert clean["passengers"].dtype == "int64"
    assert report.summary["history_months"] == 48
    assert clean["date"].is_monotonic_increasing


def test_headers_are_normalized():
    df = pd.DataFrame({" ACTIVITY-PERIOD ": [202001], "Passenger Count": [5], "Unrelated": ["x"]})
    out = normalize_columns(df)
    assert list(out.columns) == ["activity_period", "passengers"]


def test_period_codes_parse_to_month_start():
    codes = pd.Series([200507, "201912", 202001.0])
    parsed = parse_activity_period(codes)
    assert list(parsed) == [pd.Timestamp("2005-07-01"), pd.Timestamp("2019-12-01"), pd.Timestamp("2020-01-01")]


def test_bad_period_codes_are_rejected():
    codes = pd.Series(["201513", "2015-01", "20150", None, "201501"])
    assert invalid_period_mask(codes).tolist() == [True, True, True, True, False]
    with pytest.raises(DataIntegrityError):
        parse_activity_period(codes)


def test_invalid_records_report_errors_and_no_partial_output():
    df = raw_rows([201501, 201513, 201503], [100, 200, -5])
    report = validate_records(df)
    assert report.has_errors
    assert {"period_parse", "negative_passengers"}.issubset(_checks(report))
    assert report.cleaned_df.empty


def test_missing_required_column():
    df = pd.DataFrame({"Activity Period": [201501], "Operating Airline": ["X"]})
    report = validate_records(df)
    assert "required_columns" in _checks(report)
    with pytest.raises(DataIntegrityError):
        load_records(df)


def test_non_numeric_and_fractional_counts():
    report = validate_records(raw_rows([201501, 201502, 201503], ["12", "abc", 3.5]))
    assert {"passengers_numeric", "passengers_integer"}.issubset(_checks(report))


def test_duplicates_and_short_history_are_warnings():
    df = raw_rows([201501, 201501, 201502], [10, 10, 20])
    report = validate_records(df)
    assert not report.has_errors
    assert {"duplicates", "short_history", "seasonal_history"}.issubset(_checks(report))
    assert len(report.cleaned_df) == 3


def test_read_tabular_csv(template_df):
    payload = template_df.to_csv(index=False).encode("utf-8")
    out = read_tabular("traffic.csv", payload)
    assert len(out) == len(template_df)
    with pytest.raises(ValueError):
        read_tabular("traffic.json", payload)

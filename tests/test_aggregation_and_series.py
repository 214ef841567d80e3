from __future__ import annotations

import pandas as pd
import pytest

from passenger_forecast.core.errors import DataIntegrityError
from passenger_forecast.services.aggregation import aggregate_passengers, monthly_share, top_share
from passenger_forecast.services.series import build_monthly_series, future_index, split_series
from passenger_forecast.services.validation import load_records
from tests.factories import monthly_series, raw_rows


def _series_from(raw: pd.DataFrame) -> pd.Series:
    return build_monthly_series(aggregate_passengers(load_records(raw)))


def test_totals_sum_all_rows_per_month(template_df):
    records = load_records(template_df)
    totals = aggregate_passengers(records)
    assert len(totals) == 48
    assert totals["passengers"].sum() == records["passengers"].sum()


def test_aggregate_by_dimension_and_range(template_df):
    records = load_records(template_df)
    by_type = aggregate_passengers(records, by="activity_type", start="2016-01-01", end="2016-12-01")
    assert set(by_type["activity_type"]) == {"Deplaned", "Enplaned"}
    assert by_type["date"].min() == pd.Timestamp("2016-01-01")
    assert by_type["date"].max() == pd.Timestamp("2016-12-01")
    with pytest.raises(ValueError):
        aggregate_passengers(records, by="no_such_column")


def test_range_after_last_month_yields_no_rows(template_df):
    records = load_records(template_df)
    after = records["date"].max() + pd.offsets.MonthBegin(1)
    totals = aggregate_passengers(records, start=after)
    assert totals.empty
    assert list(totals.columns) == ["date", "passengers"]
    assert totals["passengers"].dtype == "int64"

    by_airline = aggregate_passengers(records, by="airline", start=after)
    assert by_airline.empty
    assert list(by_airline.columns) == ["date", "airline", "passengers"]
    assert by_airline["passengers"].dtype == "int64"


def test_top_share_percentages(template_df):
    records = load_records(template_df)
    top = top_share(records, by="airline", n=2)
    assert list(top["rank"]) == [1, 2]
    assert top.iloc[0]["airline"] == "United Airlines"
    assert top["passengers"].is_monotonic_decreasing
    full = top_share(records, by="airline", n=10)
    assert full["share_pct"].sum() == pytest.approx(100.0)


def test_monthly_share_rows_sum_to_100(template_df):
    share = monthly_share(load_records(template_df), by="geo_summary")
    assert (share.sum(axis=1).round(6) == 100).all()


def test_series_is_contiguous_and_idempotent(template_df):
    first = _series_from(template_df)
    second = _series_from(template_df.copy())
    pd.testing.assert_series_equal(first, second)
    assert first.index.freqstr == "MS"
    assert first.index.is_monotonic_increasing
    expected = pd.date_range(first.index[0], first.index[-1], freq="MS")
    assert first.index.equals(expected)


def test_row_order_does_not_change_series(template_df):
    shuffled = template_df.sample(frac=1.0, random_state=3)
    pd.testing.assert_series_equal(_series_from(template_df), _series_from(shuffled))


def test_gap_in_months_is_a_data_error():
    raw = raw_rows([201501, 201502, 201504], [10, 20, 30])
    with pytest.raises(DataIntegrityError, match="2015-03"):
        _series_from(raw)


def test_series_rejects_non_month_start_and_duplicates():
    bad_day = pd.DataFrame({"date": pd.to_datetime(["2020-01-15"]), "passengers": [1]})
    with pytest.raises(DataIntegrityError):
        build_monthly_series(bad_day)
    dup = pd.DataFrame({"date": pd.to_datetime(["2020-01-01", "2020-01-01"]), "passengers": [1, 2]})
    with pytest.raises(DataIntegrityError):
        build_monthly_series(dup)


def test_split_lengths():
    series = monthly_series(n=100)
    split = split_series(series, holdout=12)
    assert len(split.train) == 88
    assert len(split.test) == 12
    assert len(split.train) + len(split.test) == len(series)
    assert split.test.index[0] == split.train.index[-1] + pd.offsets.MonthBegin(1)


def test_split_rejects_bad_holdout():
    series = monthly_series(n=12)
    with pytest.raises(ValueError):
        split_series(series, holdout=12)
    with pytest.raises(ValueError):
        split_series(series, holdout=0)


def test_future_index_follows_last_month():
    series = monthly_series(n=30, start="2019-01-01")
    idx = future_index(series, 3)
    assert list(idx) == [pd.Timestamp("2021-07-01"), pd.Timestamp("2021-08-01"), pd.Timestamp("2021-09-01")]

from __future__ import annotations

import pandas as pd

from passenger_forecast.core.config import DEFAULT_HOLDOUT_MONTHS, MONTHLY_FREQ
from passenger_forecast.core.errors import DataIntegrityError
from passenger_forecast.core.types import Split


def build_monthly_series(aggregated: pd.DataFrame, value_col: str = "passengers") -> pd.Series:
    """Turn month-keyed totals into a contiguous month-start series.

    Missing months are reported, never filled in.
    """
    extra = [c for c in aggregated.columns if c not in ("date", value_col)]
    if extra:
        raise ValueError(f"Expected totals keyed by month only, found extra columns {extra}")
    if aggregated.empty:
        raise DataIntegrityError("No monthly totals to build a series from.")

    dates = pd.to_datetime(aggregated["date"])
    not_month_start = dates != dates.dt.to_period("M").dt.to_timestamp()
    if not_month_start.any():
        raise DataIntegrityError(
            f"Dates must fall on the first day of a month: {dates[not_month_start].head(5).dt.date.tolist()}"
        )
    duplicated = dates.duplicated(keep=False)
    if duplicated.any():
        raise DataIntegrityError(f"Duplicate months in totals: {sorted(set(dates[duplicated].dt.date))[:5]}")

    series = pd.Series(aggregated[value_col].to_numpy(dtype=float), index=pd.DatetimeIndex(dates), name=value_col)
    series = series.sort_index()
    expected = pd.date_range(series.index[0], series.index[-1], freq=MONTHLY_FREQ)
    gaps = expected.difference(series.index)
    if len(gaps) > 0:
        raise DataIntegrityError(
            f"Monthly series has {len(gaps)} missing month(s), first: {[d.strftime('%Y-%m') for d in gaps[:5]]}"
        )
    series.index = pd.DatetimeIndex(expected, name="date", freq=MONTHLY_FREQ)
    return series


def split_series(series: pd.Series, holdout: int = DEFAULT_HOLDOUT_MONTHS) -> Split:
    if holdout < 1:
        raise ValueError("holdout must be at least one period")
    if len(series) <= holdout:
        raise ValueError(f"Series of length {len(series)} is too short for a {holdout}-period holdout")
    train = series.iloc[:-holdout].copy()
    test = series.iloc[-holdout:].copy()
    return Split(train=train, test=test)


def future_index(series: pd.Series, horizon: int) -> pd.DatetimeIndex:
    start = series.index[-1] + pd.offsets.MonthBegin(1)
    return pd.date_range(start, periods=horizon, freq=MONTHLY_FREQ, name="date")

from __future__ import annotations

import numpy as np
import pandas as pd
from statsmodels.tsa.seasonal import STL
from statsmodels.tsa.stattools import acf

from passenger_forecast.core.config import SEASONAL_PERIOD


def compute_growth_metrics(series: pd.Series) -> pd.DataFrame:
    work = series.to_frame(name="y")
    work["mom_growth"] = work["y"].pct_change(1)
    work["rolling_3m_growth"] = work["y"].rolling(3).sum().pct_change(3)
    work["trailing_12m"] = work["y"].rolling(12).sum()
    work["trailing_12m_prior"] = work["trailing_12m"].shift(12)
    work["trailing_12m_growth"] = (work["trailing_12m"] / work["trailing_12m_prior"]) - 1
    work["yoy_growth"] = work["y"] / work["y"].shift(12) - 1
    return work.reset_index()


def cagr(series: pd.Series, years: float) -> float | None:
    if years <= 0 or len(series) < 2:
        return None
    start, end = float(series.iloc[0]), float(series.iloc[-1])
    if start <= 0 or end <= 0:
        return None
    return (end / start) ** (1 / years) - 1


def seasonal_indices(series: pd.Series) -> pd.DataFrame:
    work = series.to_frame(name="y")
    work["month"] = work.index.month
    seasonality = work.groupby("month")["y"].mean()
    index = seasonality / seasonality.mean()
    return index.reset_index(name="seasonality_index")


def yearly_profile(series: pd.Series) -> pd.DataFrame:
    """Long frame of (year, month, y) for year-over-year overlay charts."""
    return pd.DataFrame({"year": series.index.year.astype(str), "month": series.index.month, "y": series.values})


def decompose_monthly(series: pd.Series, period: int = SEASONAL_PERIOD, robust: bool = True) -> pd.DataFrame | None:
    if len(series) < period * 2:
        return None
    result = STL(series, period=period, robust=robust).fit()
    return pd.DataFrame(
        {
            "observed": series,
            "trend": result.trend,
            "seasonal": result.seasonal,
            "resid": result.resid,
        },
        index=series.index,
    )


def autocorrelation(series: pd.Series, nlags: int = 36) -> pd.DataFrame:
    clean = series.dropna()
    nlags = min(nlags, len(clean) - 2)
    values = acf(clean, nlags=nlags, fft=False)
    bound = 1.96 / np.sqrt(len(clean))
    return pd.DataFrame({"lag": np.arange(nlags + 1), "acf": values, "bound": bound})

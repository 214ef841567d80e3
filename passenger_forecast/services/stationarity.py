from __future__ import annotations

import warnings

import numpy as np
import pandas as pd
from scipy.optimize import minimize_scalar
from scipy.special import boxcox, inv_boxcox
from statsmodels.tools.sm_exceptions import InterpolationWarning
from statsmodels.tsa.seasonal import STL
from statsmodels.tsa.stattools import adfuller, kpss

from passenger_forecast.core.config import (
    GUERRERO_BOUNDS,
    MAX_DIFFERENCES,
    MAX_SEASONAL_DIFFERENCES,
    SEASONAL_PERIOD,
    SEASONAL_STRENGTH_THRESHOLD,
    SIGNIFICANCE_LEVEL,
)
from passenger_forecast.core.types import StationarityResult

# statsmodels' KPSS table only spans these p-values
KPSS_P_RANGE = (0.01, 0.10)


def _values(series) -> np.ndarray:
    return np.asarray(pd.Series(series).dropna(), dtype=float)


def guerrero_lambda(
    series: pd.Series,
    period: int = SEASONAL_PERIOD,
    bounds: tuple[float, float] = GUERRERO_BOUNDS,
) -> float:
    """Box-Cox lambda by Guerrero's method.

    The latest complete seasonal cycles are cut into non-overlapping
    subseries; lambda minimizes the coefficient of variation of
    ``sd / mean ** (1 - lambda)`` across them.
    """
    values = _values(series)
    if (values <= 0).any():
        raise ValueError("Guerrero's method needs strictly positive data")
    n_cycles = len(values) // period
    if n_cycles < 2:
        raise ValueError(f"Need at least two full periods of {period} observations, got {len(values)}")
    block = values[len(values) - n_cycles * period :].reshape(n_cycles, period)
    means = block.mean(axis=1)
    sds = block.std(axis=1, ddof=1)
    if np.all(sds == 0):
        return 1.0

    def cv(lam: float) -> float:
        ratio = sds / means ** (1 - lam)
        return float(np.std(ratio, ddof=1) / np.mean(ratio))

    result = minimize_scalar(cv, bounds=bounds, method="bounded")
    return float(result.x)


def box_cox(series: pd.Series, lam: float) -> pd.Series:
    return pd.Series(boxcox(series.astype(float).values, lam), index=series.index, name=series.name)


def inv_box_cox(values, lam: float) -> np.ndarray:
    return inv_boxcox(np.asarray(values, dtype=float), lam)


def kpss_test(series, regression: str = "c") -> StationarityResult:
    """KPSS test; the null hypothesis is (level) stationarity."""
    values = _values(series)
    if np.ptp(values) == 0:
        return StationarityResult(test="kpss", statistic=0.0, p_value=KPSS_P_RANGE[1], lags=0)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", InterpolationWarning)
        stat, p_value, lags, crit = kpss(values, regression=regression, nlags="auto", result_object=False)
    return StationarityResult(
        test="kpss",
        statistic=float(stat),
        p_value=float(p_value),
        lags=int(lags),
        critical_values={k: float(v) for k, v in crit.items()},
    )


def adf_test(series) -> StationarityResult:
    """Augmented Dickey-Fuller test; the null hypothesis is a unit root."""
    values = _values(series)
    if np.ptp(values) == 0:
        return StationarityResult(test="adf", statistic=float("-inf"), p_value=0.0, lags=0)
    stat, p_value, used_lag, _, crit, *_ = adfuller(values, autolag="AIC", result_object=False)
    return StationarityResult(
        test="adf",
        statistic=float(stat),
        p_value=float(p_value),
        lags=int(used_lag),
        critical_values={k: float(v) for k, v in crit.items()},
    )


def suggested_differencing_order(
    series,
    alpha: float = SIGNIFICANCE_LEVEL,
    max_d: int = MAX_DIFFERENCES,
) -> int:
    """Smallest number of first differences after which KPSS stops rejecting."""
    values = _values(series)
    d = 0
    while d < max_d:
        if len(values) < 3 or np.ptp(values) == 0:
            break
        if kpss_test(values).p_value >= alpha:
            break
        values = np.diff(values)
        d += 1
    return d


def seasonal_strength(series, period: int = SEASONAL_PERIOD) -> float:
    """STL seasonal strength, 1 - Var(remainder) / Var(seasonal + remainder)."""
    values = _values(series)
    if len(values) < 2 * period or np.ptp(values) == 0:
        return 0.0
    fit = STL(values, period=period, robust=True).fit()
    detrended_var = np.var(fit.seasonal + fit.resid)
    if detrended_var == 0:
        return 0.0
    return float(max(0.0, 1 - np.var(fit.resid) / detrended_var))


def suggested_seasonal_differencing_order(
    series,
    period: int = SEASONAL_PERIOD,
    threshold: float = SEASONAL_STRENGTH_THRESHOLD,
    max_D: int = MAX_SEASONAL_DIFFERENCES,
) -> int:
    values = _values(series)
    D = 0
    while D < max_D:
        if len(values) <= 2 * period or seasonal_strength(values, period) <= threshold:
            break
        values = values[period:] - values[:-period]
        D += 1
    return D


def stationarity_table(series: pd.Series, period: int = SEASONAL_PERIOD) -> pd.DataFrame:
    """KPSS and ADF results for the series and its usual differences side by side."""
    variants = {
        "level": series,
        "first_difference": series.diff(),
        "seasonal_difference": series.diff(period),
        "seasonal_then_first_difference": series.diff(period).diff(),
    }
    rows = []
    for name, values in variants.items():
        clean = values.dropna()
        if len(clean) < 3 * period // 2:
            continue
        k = kpss_test(clean)
        a = adf_test(clean)
        rows.append(
            {
                "transform": name,
                "kpss_stat": k.statistic,
                "kpss_p_value": k.p_value,
                "adf_stat": a.statistic,
                "adf_p_value": a.p_value,
            }
        )
    return pd.DataFrame(rows)


def stationarity_summary(
    series: pd.Series,
    period: int = SEASONAL_PERIOD,
    alpha: float = SIGNIFICANCE_LEVEL,
) -> dict[str, object]:
    try:
        lam = guerrero_lambda(series, period=period)
    except ValueError:
        lam = None
    seasonal_d = suggested_seasonal_differencing_order(series, period=period)
    adjusted = _values(series)
    if seasonal_d:
        adjusted = adjusted[period:] - adjusted[:-period]
    return {
        "kpss": kpss_test(series),
        "adf": adf_test(series),
        "guerrero_lambda": lam,
        "seasonal_strength": seasonal_strength(series, period=period),
        "seasonal_differences": seasonal_d,
        "differences": suggested_differencing_order(adjusted, alpha=alpha),
    }

from __future__ import annotations

import warnings

import numpy as np
import pandas as pd
from statsmodels.tsa.exponential_smoothing.ets import ETSModel
from statsmodels.tsa.statespace.sarimax import SARIMAX

ETS_ERROR = {"A": "add", "M": "mul"}
ETS_TREND = {"N": (None, False), "A": ("add", False), "Ad": ("add", True)}
ETS_SEASON = {"N": None, "A": "add", "M": "mul"}


def estimate_ets(
    train: pd.Series,
    error: str,
    trend: str,
    season: str,
    period: int,
    maxiter: int = 200,
):
    """Maximum-likelihood ETS fit over smoothing, damping and initial states."""
    if error not in ETS_ERROR or trend not in ETS_TREND or season not in ETS_SEASON:
        raise ValueError(f"Unknown ETS components ({error}, {trend}, {season})")
    trend_kind, damped = ETS_TREND[trend]
    seasonal = ETS_SEASON[season]
    model = ETSModel(
        train.astype(float),
        error=ETS_ERROR[error],
        trend=trend_kind,
        damped_trend=damped,
        seasonal=seasonal,
        seasonal_periods=period if seasonal else None,
        initialization_method="estimated",
    )
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        return model.fit(disp=False, maxiter=maxiter)


def estimate_arima(
    train: pd.Series,
    order: tuple[int, int, int],
    seasonal_order: tuple[int, int, int],
    period: int,
    include_constant: bool,
    maxiter: int = 200,
):
    """Maximum-likelihood seasonal ARIMA fit with the given differencing."""
    seasonal = tuple(seasonal_order) + (period,) if any(seasonal_order) else (0, 0, 0, 0)
    model = SARIMAX(
        train.astype(float),
        order=tuple(order),
        seasonal_order=seasonal,
        trend="c" if include_constant else None,
    )
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        return model.fit(disp=False, maxiter=maxiter)


def param_dict(result) -> dict[str, float]:
    values = np.asarray(result.params, dtype=float)
    names = getattr(result.model, "param_names", None) or [f"param_{i}" for i in range(len(values))]
    return {str(k): float(v) for k, v in zip(names, values)}


def converged(result) -> bool:
    retvals = getattr(result, "mle_retvals", None)
    if retvals is None:
        return True
    if isinstance(retvals, dict):
        return bool(retvals.get("converged", True))
    return bool(getattr(retvals, "success", True))


def information_criteria(result) -> tuple[float, float, float]:
    return float(result.aic), float(result.aicc), float(result.bic)

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from passenger_forecast.core.config import SEASONAL_PERIOD
from passenger_forecast.core.errors import EvaluationError
from passenger_forecast.core.types import AccuracyReport, FitOutcome, FittedModel, Forecast

logger = logging.getLogger(__name__)

ACCURACY_COLUMNS = [
    "model_id",
    "model",
    "me",
    "rmse",
    "mae",
    "mpe",
    "mape",
    "mase",
    "rmsse",
    "acf1",
    "coverage_95",
]


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    return float(np.sqrt(np.mean((y_true - y_pred) ** 2)))


def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    return float(np.mean(np.abs(y_true - y_pred)))


def mape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    if np.any(y_true == 0):
        raise EvaluationError("MAPE is undefined: the test window contains a zero actual")
    return float(np.mean(np.abs((y_true - y_pred) / y_true)) * 100)


def me(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    return float(np.mean(y_true - y_pred))


def mpe(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    if np.any(y_true == 0):
        return float("nan")
    return float(np.mean((y_true - y_pred) / y_true) * 100)


def _naive_errors(insample: np.ndarray, m: int) -> np.ndarray:
    if len(insample) > m:
        return insample[m:] - insample[:-m]
    return np.diff(insample)


def mase(y_true: np.ndarray, y_pred: np.ndarray, insample: np.ndarray, m: int = SEASONAL_PERIOD) -> float:
    naive = _naive_errors(insample, m)
    scale = float(np.mean(np.abs(naive))) if len(naive) else 0.0
    if scale == 0:
        return float("nan")
    return mae(y_true, y_pred) / scale


def rmsse(y_true: np.ndarray, y_pred: np.ndarray, insample: np.ndarray, m: int = SEASONAL_PERIOD) -> float:
    naive = _naive_errors(insample, m)
    scale = float(np.mean(naive**2)) if len(naive) else 0.0
    if scale == 0:
        return float("nan")
    return float(np.sqrt(np.mean((y_true - y_pred) ** 2) / scale))


def acf1(errors: np.ndarray) -> float:
    """Lag-1 autocorrelation of the forecast errors."""
    if len(errors) < 3:
        return float("nan")
    centered = errors - errors.mean()
    denom = float(np.sum(centered**2))
    if denom == 0:
        return float("nan")
    return float(np.sum(centered[1:] * centered[:-1]) / denom)


def interval_coverage(y_true: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> float:
    return float(np.mean((y_true >= lower) & (y_true <= upper)))


def _aligned(forecast: Forecast, test: pd.Series) -> pd.DataFrame:
    frame = forecast.forecast_df
    if len(frame) < len(test):
        raise EvaluationError(
            f"Forecast for {forecast.model_id} covers {len(frame)} periods; the test window has {len(test)}"
        )
    window = frame.iloc[: len(test)]
    forecast_dates = pd.DatetimeIndex(window["date"])
    if not forecast_dates.equals(pd.DatetimeIndex(test.index)):
        raise EvaluationError(
            f"Forecast periods for {forecast.model_id} ({forecast_dates[0]:%Y-%m}..{forecast_dates[-1]:%Y-%m}) "
            f"do not match the test periods ({test.index[0]:%Y-%m}..{test.index[-1]:%Y-%m})"
        )
    return window


def accuracy(forecast: Forecast, test: pd.Series, train: pd.Series | None = None) -> AccuracyReport:
    """Out-of-sample accuracy of ``forecast`` over the periods of ``test``.

    Only the first ``len(test)`` forecast periods are scored and they must be
    exactly the test periods. Scaled metrics (MASE, RMSSE) need ``train``.
    """
    if len(test) == 0:
        raise EvaluationError("Test window is empty")
    window = _aligned(forecast, test)
    y_true = test.to_numpy(dtype=float)
    y_pred = window["forecast"].to_numpy(dtype=float)
    insample = train.to_numpy(dtype=float) if train is not None else None
    return AccuracyReport(
        model_id=forecast.model_id,
        rmse=rmse(y_true, y_pred),
        mae=mae(y_true, y_pred),
        mape=mape(y_true, y_pred),
        me=me(y_true, y_pred),
        mpe=mpe(y_true, y_pred),
        mase=mase(y_true, y_pred, insample) if insample is not None else float("nan"),
        rmsse=rmsse(y_true, y_pred, insample) if insample is not None else float("nan"),
        acf1=acf1(y_true - y_pred),
        coverage_95=interval_coverage(
            y_true, window["lower_95"].to_numpy(dtype=float), window["upper_95"].to_numpy(dtype=float)
        ),
    )


def accuracy_table(
    forecasts: dict[str, Forecast],
    test: pd.Series,
    train: pd.Series | None = None,
    model_ids: list[str] | None = None,
) -> pd.DataFrame:
    model_ids = list(forecasts) if model_ids is None else model_ids
    missing = [m for m in model_ids if m not in forecasts]
    if missing:
        raise EvaluationError(f"No forecast available for: {', '.join(missing)}")
    rows = []
    for model_id in model_ids:
        report = accuracy(forecasts[model_id], test, train)
        row = report.as_dict()
        row["model"] = forecasts[model_id].label
        rows.append(row)
    table = pd.DataFrame(rows, columns=ACCURACY_COLUMNS)
    logger.info("Scored %d models over %d test periods", len(table), len(test))
    return table


def information_criteria(outcomes: dict[str, FitOutcome]) -> pd.DataFrame:
    rows = [
        {
            "model_id": f.model_id,
            "model": f.label,
            "family": f.family,
            "aic": f.aic,
            "aicc": f.aicc,
            "bic": f.bic,
            "log_likelihood": f.log_likelihood,
            "n_params": len(f.coefficients),
            "converged": f.converged,
            "fit_seconds": f.fit_seconds,
        }
        for f in outcomes.values()
        if isinstance(f, FittedModel)
    ]
    columns = ["model_id", "model", "family", "aic", "aicc", "bic", "log_likelihood", "n_params", "converged", "fit_seconds"]
    return pd.DataFrame(rows, columns=columns)

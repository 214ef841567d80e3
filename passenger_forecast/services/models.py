from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Callable

import numpy as np
import pandas as pd

from passenger_forecast.core.config import RANDOM_SEED, SEASONAL_PERIOD, FitSettings
from passenger_forecast.core.types import (
    ArimaSpec,
    EtsSpec,
    FitFailure,
    FitOutcome,
    FittedModel,
    Forecast,
    ModelSpec,
)
from passenger_forecast.services.estimators import (
    converged,
    estimate_arima,
    estimate_ets,
    information_criteria,
    param_dict,
)
from passenger_forecast.services.search import auto_arima, auto_ets
from passenger_forecast.services.series import future_index

logger = logging.getLogger(__name__)


def default_catalog(period: int = SEASONAL_PERIOD) -> dict[str, ModelSpec]:
    return {
        "ets_auto": EtsSpec(period=period),
        "holt_linear": EtsSpec("A", "A", "N", period),
        "holt_winters_multiplicative": EtsSpec("M", "A", "M", period),
        "damped_additive_season": EtsSpec("A", "Ad", "A", period),
        "damped_multiplicative_season": EtsSpec("M", "Ad", "M", period),
        "arima_stepwise": ArimaSpec(search="stepwise", period=period),
        "arima_exhaustive": ArimaSpec(search="exhaustive", period=period),
        "arima_011_011": ArimaSpec((0, 1, 1), (0, 1, 1), period=period),
        "arima_110_110": ArimaSpec((1, 1, 0), (1, 1, 0), period=period),
        "arima_111_011": ArimaSpec((1, 1, 1), (0, 1, 1), period=period),
        "arima_210_011": ArimaSpec((2, 1, 0), (0, 1, 1), period=period),
        "arima_012_011": ArimaSpec((0, 1, 2), (0, 1, 1), period=period),
        "arima_100_011_drift": ArimaSpec((1, 0, 0), (0, 1, 1), include_constant=True, period=period),
    }


def _fit_ets(spec: EtsSpec, train: pd.Series, settings: FitSettings, deadline: float):
    if spec.is_auto:
        return auto_ets(train, spec, maxiter=settings.maxiter, deadline=deadline)
    result = estimate_ets(train, spec.error, spec.trend, spec.season, spec.period, settings.maxiter)
    return result, spec, []


def _fit_arima(spec: ArimaSpec, train: pd.Series, settings: FitSettings, deadline: float):
    if np.ptp(train.to_numpy(dtype=float)) == 0:
        raise ValueError("training series is constant; ARIMA parameters are not identifiable")
    if spec.is_auto:
        return auto_arima(train, spec, space=settings.search_space, maxiter=settings.maxiter, deadline=deadline)
    seasonal_order = spec.seasonal_order or (0, 0, 0)
    include_constant = spec.include_constant
    if include_constant is None:
        include_constant = spec.order[1] + seasonal_order[1] < 2
    result = estimate_arima(train, spec.order, seasonal_order, spec.period, include_constant, settings.maxiter)
    return result, replace(spec, seasonal_order=seasonal_order, include_constant=include_constant), []


_FITTERS: dict[type, Callable] = {
    EtsSpec: _fit_ets,
    ArimaSpec: _fit_arima,
}


def _arma_param_count(spec: ModelSpec) -> int:
    if isinstance(spec, ArimaSpec) and spec.order is not None:
        p, _, q = spec.order
        P, _, Q = spec.seasonal_order or (0, 0, 0)
        return p + q + P + Q
    return 0


def fit_model(
    model_id: str,
    spec: ModelSpec,
    train: pd.Series,
    settings: FitSettings | None = None,
) -> FitOutcome:
    """Fit one spec; any failure comes back as a ``FitFailure`` instead of raising."""
    settings = settings or FitSettings()
    fitter = _FITTERS.get(type(spec))
    if fitter is None:
        raise TypeError(f"No fitter registered for spec type {type(spec).__name__}")

    started = time.perf_counter()
    deadline = started + settings.time_budget_seconds
    try:
        result, resolved, trace = fitter(spec, train, settings, deadline)
        aic, aicc, bic = information_criteria(result)
        if not np.isfinite(aicc):
            raise ValueError("non-finite information criteria (degenerate likelihood)")
    except Exception as ex:
        reason = f"{type(ex).__name__}: {ex}"
        logger.warning("Model %s (%s) failed to fit: %s", model_id, spec.label, reason)
        return FitFailure(model_id=model_id, spec=spec, reason=reason)

    elapsed = time.perf_counter() - started
    if elapsed > settings.time_budget_seconds:
        reason = f"fit took {elapsed:.1f}s, over the {settings.time_budget_seconds:.0f}s budget"
        logger.warning("Model %s (%s) failed to fit: %s", model_id, spec.label, reason)
        return FitFailure(model_id=model_id, spec=spec, reason=reason)

    fitted = pd.Series(np.asarray(result.fittedvalues, dtype=float), index=train.index, name="fitted")
    residuals = (train.astype(float) - fitted).rename("residual")
    burn = int(getattr(result, "loglikelihood_burn", 0) or 0)
    if burn:
        residuals = residuals.iloc[burn:]

    is_converged = converged(result)
    if not is_converged:
        logger.warning("Model %s (%s) optimizer reported non-convergence", model_id, resolved.label)

    return FittedModel(
        model_id=model_id,
        spec=spec,
        resolved_spec=resolved,
        result=result,
        train=train,
        fitted_values=fitted,
        residuals=residuals,
        aic=aic,
        aicc=aicc,
        bic=bic,
        log_likelihood=float(result.llf),
        coefficients=param_dict(result),
        arma_param_count=_arma_param_count(resolved),
        converged=is_converged,
        fit_seconds=elapsed,
        search_trace=trace,
    )


def fit_catalog(
    train: pd.Series,
    catalog: dict[str, ModelSpec],
    settings: FitSettings | None = None,
) -> dict[str, FitOutcome]:
    """Fit every spec independently; results come back in catalog order."""
    settings = settings or FitSettings()
    if settings.max_workers <= 1:
        outcomes = {model_id: fit_model(model_id, spec, train, settings) for model_id, spec in catalog.items()}
    else:
        with ThreadPoolExecutor(max_workers=settings.max_workers) as pool:
            futures = {
                model_id: pool.submit(fit_model, model_id, spec, train, settings) for model_id, spec in catalog.items()
            }
            outcomes = {model_id: future.result() for model_id, future in futures.items()}

    failures = collect_failures(outcomes)
    logger.info("Fitted %d of %d models (%d failed)", len(outcomes) - len(failures), len(outcomes), len(failures))
    return outcomes


def collect_failures(outcomes: dict[str, FitOutcome]) -> list[FitFailure]:
    return [o for o in outcomes.values() if isinstance(o, FitFailure)]


def fitted_models(outcomes: dict[str, FitOutcome]) -> dict[str, FittedModel]:
    return {k: v for k, v in outcomes.items() if isinstance(v, FittedModel)}


FAILURE_COLUMNS = ["model_id", "stage", "spec", "reason"]


def failures_frame(
    outcomes: dict[str, FitOutcome],
    forecast_errors: dict[str, str] | None = None,
) -> pd.DataFrame:
    """Fit failures followed by fitted models whose forecast failed."""
    rows = [
        {"model_id": f.model_id, "stage": "fit", "spec": f.spec.label, "reason": f.reason}
        for f in collect_failures(outcomes)
    ]
    for model_id, reason in (forecast_errors or {}).items():
        rows.append({"model_id": model_id, "stage": "forecast", "spec": outcomes[model_id].label, "reason": reason})
    return pd.DataFrame(rows, columns=FAILURE_COLUMNS)


def _build_output(
    model_id: str,
    dates: pd.DatetimeIndex,
    point_forecast,
    intervals: dict[str, tuple[np.ndarray, np.ndarray]],
) -> pd.DataFrame:
    l80, u80 = intervals["80"]
    l95, u95 = intervals["95"]
    return pd.DataFrame(
        {
            "date": dates,
            "forecast": np.asarray(point_forecast, dtype=float),
            "lower_80": np.asarray(l80, dtype=float),
            "upper_80": np.asarray(u80, dtype=float),
            "lower_95": np.asarray(l95, dtype=float),
            "upper_95": np.asarray(u95, dtype=float),
            "model_id": model_id,
        }
    )


def forecast_model(fitted: FittedModel, horizon: int) -> Forecast:
    """Point forecasts with 80% and 95% prediction intervals.

    ETS intervals are analytic where statsmodels has a closed form and are
    otherwise simulated with ``RANDOM_SEED``; ARIMA intervals are analytic.
    """
    if horizon < 1:
        raise ValueError("horizon must be at least one period")
    dates = future_index(fitted.train, horizon)
    result = fitted.result
    n = len(fitted.train)
    if fitted.family == "ets":
        pred = result.get_prediction(start=n, end=n + horizon - 1, rng=np.random.default_rng(RANDOM_SEED))
        mean = np.asarray(pred.predicted_mean, dtype=float)
        intervals = {}
        for name, alpha in (("80", 0.20), ("95", 0.05)):
            frame = pred.summary_frame(alpha=alpha)
            intervals[name] = (frame["pi_lower"].to_numpy(), frame["pi_upper"].to_numpy())
    else:
        pred = result.get_forecast(steps=horizon)
        mean = np.asarray(pred.predicted_mean, dtype=float)
        intervals = {}
        for name, alpha in (("80", 0.20), ("95", 0.05)):
            ci = np.asarray(pred.conf_int(alpha=alpha), dtype=float)
            intervals[name] = (ci[:, 0], ci[:, 1])
    if len(mean) != horizon:
        raise ValueError(f"{fitted.model_id} produced {len(mean)} forecasts for horizon {horizon}")
    return Forecast(
        model_id=fitted.model_id,
        forecast_df=_build_output(fitted.model_id, dates, mean, intervals),
        label=fitted.label,
    )


def forecast_all(
    outcomes: dict[str, FitOutcome],
    horizon: int,
) -> tuple[dict[str, Forecast], dict[str, str]]:
    """Forecast every fitted model.

    Returns (forecasts, errors) where errors maps model ids to a message for
    any fitted model whose forecast could not be produced.
    """
    forecasts: dict[str, Forecast] = {}
    errors: dict[str, str] = {}
    for model_id, fitted in fitted_models(outcomes).items():
        try:
            forecasts[model_id] = forecast_model(fitted, horizon)
        except Exception as ex:
            errors[model_id] = f"{type(ex).__name__}: {ex}"
            logger.warning("Forecast for %s failed: %s", model_id, errors[model_id])
    return forecasts, errors

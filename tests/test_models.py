from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from passenger_forecast.core.config import FitSettings
from passenger_forecast.core.types import ArimaSpec, EtsSpec, FitFailure, FittedModel
from passenger_forecast.services.models import (
    collect_failures,
    default_catalog,
    failures_frame,
    fit_catalog,
    fit_model,
    forecast_all,
    forecast_model,
)
from passenger_forecast.services.search import auto_arima
from passenger_forecast.services.series import split_series
from tests.factories import monthly_series

INTERVAL_ORDER = ["lower_95", "lower_80", "forecast", "upper_80", "upper_95"]


def _assert_nested_intervals(frame: pd.DataFrame) -> None:
    values = frame[INTERVAL_ORDER].to_numpy(dtype=float)
    assert np.isfinite(values).all()
    assert (np.diff(values, axis=1) >= -1e-9).all()


def test_default_catalog_contents():
    catalog = default_catalog()
    assert len(catalog) == 13
    assert catalog["holt_winters_multiplicative"] == EtsSpec("M", "A", "M", 12)
    assert catalog["arima_011_011"].label == "ARIMA(0,1,1)(0,1,1)[12]"
    assert catalog["arima_100_011_drift"].include_constant is True
    assert catalog["arima_stepwise"].is_auto and catalog["ets_auto"].is_auto


def test_forecast_covers_months_after_training_end():
    split = split_series(monthly_series(n=100), holdout=12)
    fitted = fit_model("arima_011_011", ArimaSpec((0, 1, 1), (0, 1, 1)), split.train)
    assert isinstance(fitted, FittedModel)
    assert fitted.resolved_spec.include_constant is False
    assert fitted.arma_param_count == 2

    fc = forecast_model(fitted, 36)
    expected = pd.date_range(split.train.index[-1] + pd.offsets.MonthBegin(1), periods=36, freq="MS")
    assert pd.DatetimeIndex(fc.forecast_df["date"]).equals(expected)
    assert fc.horizon == 36
    _assert_nested_intervals(fc.forecast_df)


def test_ets_forecast_intervals_are_reproducible(seasonal_series):
    fitted = fit_model("hw", EtsSpec("M", "A", "M"), seasonal_series)
    first = forecast_model(fitted, 24).forecast_df
    second = forecast_model(fitted, 24).forecast_df
    pd.testing.assert_frame_equal(first, second)
    assert (first["upper_95"] >= first["lower_95"]).all()


def test_multiplicative_ets_models_all_forecast(seasonal_series):
    wanted = ("holt_winters_multiplicative", "damped_multiplicative_season")
    catalog = {k: v for k, v in default_catalog().items() if k in wanted}
    catalog["multiplicative_error_level"] = EtsSpec("M", "N", "M")
    outcomes = fit_catalog(seasonal_series, catalog)
    forecasts, errors = forecast_all(outcomes, 36)
    assert errors == {}
    assert list(forecasts) == list(catalog)
    for fc in forecasts.values():
        assert len(fc.forecast_df) == 36
        _assert_nested_intervals(fc.forecast_df)


def test_forecast_errors_are_listed_with_fit_failures(seasonal_series):
    catalog = {"holt_linear": EtsSpec("A", "A", "N"), "broken": EtsSpec("X", "N", "N")}
    outcomes = fit_catalog(seasonal_series, catalog)
    frame = failures_frame(outcomes, {"holt_linear": "ValueError: boom"})
    assert list(frame.columns) == ["model_id", "stage", "spec", "reason"]
    assert list(frame["model_id"]) == ["broken", "holt_linear"]
    assert list(frame["stage"]) == ["fit", "forecast"]
    assert frame.iloc[1]["spec"] == outcomes["holt_linear"].label
    assert frame.iloc[1]["reason"] == "ValueError: boom"


def test_failures_are_isolated_per_model():
    series = monthly_series(n=72) - 23_000
    assert (series <= 0).any()
    catalog = {
        "multiplicative": EtsSpec("M", "A", "M"),
        "additive": EtsSpec("A", "N", "A"),
    }
    outcomes = fit_catalog(series, catalog)
    assert list(outcomes) == ["multiplicative", "additive"]
    assert isinstance(outcomes["multiplicative"], FitFailure)
    assert isinstance(outcomes["additive"], FittedModel)
    assert [f.model_id for f in collect_failures(outcomes)] == ["multiplicative"]
    assert list(failures_frame(outcomes)["model_id"]) == ["multiplicative"]

    forecasts, errors = forecast_all(outcomes, 12)
    assert list(forecasts) == ["additive"]
    assert errors == {}


def test_constant_series_arima_is_a_failure_not_a_crash():
    index = pd.date_range("2015-01-01", periods=60, freq="MS", name="date")
    flat = pd.Series(1000.0, index=index, name="passengers")
    outcome = fit_model("airline", ArimaSpec((0, 1, 1), (0, 1, 1)), flat)
    assert isinstance(outcome, FitFailure)
    assert "constant" in outcome.reason


def test_time_budget_turns_into_failure(seasonal_series):
    settings = FitSettings(time_budget_seconds=0.0)
    outcome = fit_model("slow", ArimaSpec((0, 1, 1), (0, 1, 1)), seasonal_series, settings)
    assert isinstance(outcome, FitFailure)
    auto = fit_model("slow_auto", ArimaSpec(search="stepwise"), seasonal_series, settings)
    assert isinstance(auto, FitFailure)


def test_unknown_spec_type_is_rejected(seasonal_series):
    with pytest.raises(TypeError):
        fit_model("bad", object(), seasonal_series)


def test_parallel_fit_keeps_catalog_order(seasonal_series):
    catalog = {
        "holt_linear": EtsSpec("A", "A", "N"),
        "arima_011_011": ArimaSpec((0, 1, 1), (0, 1, 1)),
        "damped_additive_season": EtsSpec("A", "Ad", "A"),
    }
    outcomes = fit_catalog(seasonal_series, catalog, FitSettings(max_workers=3))
    assert list(outcomes) == list(catalog)
    assert all(isinstance(o, FittedModel) for o in outcomes.values())


def test_auto_ets_resolves_components(seasonal_series):
    fitted = fit_model("ets_auto", EtsSpec(), seasonal_series)
    assert isinstance(fitted, FittedModel)
    assert not fitted.resolved_spec.is_auto
    assert fitted.search_trace
    finite = [row["aicc"] for row in fitted.search_trace if np.isfinite(row["aicc"])]
    assert fitted.aicc == pytest.approx(min(finite))


def test_auto_arima_search_is_deterministic(seasonal_series, quick_fit):
    train = seasonal_series.iloc[:72]
    spec = ArimaSpec(search="stepwise")
    _, first, trace_a = auto_arima(train, spec, space=quick_fit.search_space, maxiter=quick_fit.maxiter)
    _, second, trace_b = auto_arima(train, spec, space=quick_fit.search_space, maxiter=quick_fit.maxiter)
    assert first == second
    assert [r["model"] for r in trace_a] == [r["model"] for r in trace_b]
    p, d, q = first.order
    P, D, Q = first.seasonal_order
    assert p + q + P + Q <= quick_fit.search_space.max_order
    assert D == 1


def test_exhaustive_search_is_at_least_as_good_as_stepwise(seasonal_series, quick_fit):
    train = seasonal_series.iloc[:72]
    stepwise = fit_model("s", ArimaSpec(search="stepwise"), train, quick_fit)
    exhaustive = fit_model("e", ArimaSpec(search="exhaustive"), train, quick_fit)
    assert isinstance(stepwise, FittedModel) and isinstance(exhaustive, FittedModel)
    assert exhaustive.aicc <= stepwise.aicc + 1e-6

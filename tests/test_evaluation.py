from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from passenger_forecast.core.errors import EvaluationError
from passenger_forecast.services.evaluation import accuracy, accuracy_table, mase
from passenger_forecast.services.selection import build_explanation, rank_models
from tests.factories import make_forecast


def _test_window(values, start: str = "2020-01-01") -> pd.Series:
    index = pd.date_range(start, periods=len(values), freq="MS", name="date")
    return pd.Series(np.asarray(values, dtype=float), index=index, name="passengers")


def test_perfect_constant_forecast_scores_zero():
    test = _test_window([500.0] * 12)
    report = accuracy(make_forecast("flat", test.index, test.values), test)
    assert report.rmse == 0
    assert report.mae == 0
    assert report.mape == 0


def test_metrics_are_non_negative_and_rmse_at_least_mae():
    rng = np.random.default_rng(3)
    test = _test_window(1000 + rng.normal(0, 50, 12))
    fc = make_forecast("noisy", test.index, test.values + rng.normal(0, 80, 12))
    report = accuracy(fc, test)
    assert report.rmse >= report.mae >= 0
    assert report.mape >= 0
    assert 0 <= report.coverage_95 <= 1


def test_mape_fails_on_zero_actual():
    test = _test_window([10.0, 0.0, 12.0])
    with pytest.raises(EvaluationError):
        accuracy(make_forecast("m", test.index, [10.0, 1.0, 12.0]), test)


def test_short_or_misaligned_forecast_raises():
    test = _test_window([1.0] * 12)
    with pytest.raises(EvaluationError):
        accuracy(make_forecast("short", test.index[:6], [1.0] * 6), test)
    shifted = pd.date_range("2020-02-01", periods=12, freq="MS")
    with pytest.raises(EvaluationError):
        accuracy(make_forecast("shifted", shifted, [1.0] * 12), test)


def test_longer_forecast_is_scored_on_test_window_only():
    test = _test_window([100.0] * 12)
    dates = pd.date_range("2020-01-01", periods=36, freq="MS")
    values = [100.0] * 12 + [1e6] * 24
    report = accuracy(make_forecast("long", dates, values), test)
    assert report.rmse == 0


def test_scaled_errors_use_seasonal_naive():
    train = np.tile(np.arange(12, dtype=float), 3) + np.repeat([0.0, 1.0, 2.0], 12)
    # seasonal naive errors on this train are all 1
    assert mase(np.array([5.0, 7.0]), np.array([4.0, 9.0]), train) == pytest.approx(1.5)
    test = _test_window([10.0] * 12)
    report = accuracy(make_forecast("m", test.index, [11.0] * 12), test, pd.Series(train))
    assert report.mase == pytest.approx(1.0)
    assert report.rmsse == pytest.approx(1.0)


def test_accuracy_table_and_rankings():
    test = _test_window([100.0, 110.0, 120.0])
    forecasts = {
        "good": make_forecast("good", test.index, [101.0, 111.0, 119.0]),
        "bad": make_forecast("bad", test.index, [90.0, 130.0, 100.0]),
    }
    table = accuracy_table(forecasts, test)
    assert list(table["model_id"]) == ["good", "bad"]
    with pytest.raises(EvaluationError):
        accuracy_table(forecasts, test, model_ids=["good", "missing"])

    criteria = pd.DataFrame(
        {"model_id": ["good", "bad"], "family": ["ets", "arima"], "aic": [10.0, 5.0], "aicc": [11.0, 6.0], "bic": [12.0, 7.0]}
    )
    ranked = rank_models(table, criteria)
    assert ranked.iloc[0]["model_id"] == "good"
    assert list(ranked["rmse_rank"]) == [1, 2]
    # each family has a single member, so both rank first on AICc
    assert list(ranked["aicc_rank"]) == [1, 1]
    assert list(ranked["aicc_rank_all"]) == [2, 1]
    text = build_explanation(ranked, failures=["arima_exhaustive"])
    assert "failed to fit or forecast" in text
    assert "good" in text
    assert "arima_exhaustive" in text

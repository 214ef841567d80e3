from __future__ import annotations

import warnings

import numpy as np
import pandas as pd
import pytest

from passenger_forecast.services.eda import (
    autocorrelation,
    cagr,
    compute_growth_metrics,
    decompose_monthly,
    seasonal_indices,
)
from passenger_forecast.services.stationarity import (
    adf_test,
    box_cox,
    guerrero_lambda,
    inv_box_cox,
    kpss_test,
    seasonal_strength,
    stationarity_summary,
    stationarity_table,
    suggested_differencing_order,
    suggested_seasonal_differencing_order,
)


def _noise(n: int = 240, seed: int = 5) -> np.ndarray:
    return np.random.default_rng(seed).normal(0, 1, n)


def test_p_values_are_probabilities(seasonal_series):
    for result in (kpss_test(seasonal_series), adf_test(seasonal_series)):
        assert 0.0 <= result.p_value <= 1.0
    table = stationarity_table(seasonal_series)
    assert set(table["transform"]) == {
        "level",
        "first_difference",
        "seasonal_difference",
        "seasonal_then_first_difference",
    }
    assert table[["kpss_p_value", "adf_p_value"]].apply(lambda c: c.between(0, 1)).all().all()


def test_unit_root_tests_raise_no_future_warnings(seasonal_series):
    with warnings.catch_warnings():
        warnings.simplefilter("error", FutureWarning)
        kpss_test(seasonal_series)
        adf_test(seasonal_series)


def test_differencing_order_is_monotone_in_persistence():
    e = _noise()
    white = suggested_differencing_order(e)
    walk = suggested_differencing_order(np.cumsum(e))
    integrated_twice = suggested_differencing_order(np.cumsum(np.cumsum(e)))
    assert white <= walk <= integrated_twice
    assert walk >= 1
    assert integrated_twice <= 2


def test_constant_series_needs_no_differencing():
    flat = np.full(60, 5.0)
    assert suggested_differencing_order(flat) == 0
    assert kpss_test(flat).p_value == pytest.approx(0.1)


def test_seasonal_differencing_detects_strong_seasonality(seasonal_series):
    assert seasonal_strength(seasonal_series) > 0.64
    assert suggested_seasonal_differencing_order(seasonal_series) == 1
    assert suggested_seasonal_differencing_order(pd.Series(_noise(120))) == 0


def test_guerrero_lambda_within_bounds(seasonal_series):
    lam = guerrero_lambda(seasonal_series)
    assert -1.0 <= lam <= 2.0
    restored = inv_box_cox(box_cox(seasonal_series, lam), lam)
    np.testing.assert_allclose(restored, seasonal_series.values, rtol=1e-8)


def test_guerrero_rejects_non_positive_or_short_data(seasonal_series):
    with pytest.raises(ValueError):
        guerrero_lambda(seasonal_series - seasonal_series.max())
    with pytest.raises(ValueError):
        guerrero_lambda(seasonal_series.iloc[:20])


def test_stationarity_summary_keys(seasonal_series):
    summary = stationarity_summary(seasonal_series)
    assert summary["seasonal_differences"] in (0, 1)
    assert summary["differences"] in (0, 1, 2)
    assert summary["guerrero_lambda"] is not None


def test_growth_and_seasonal_profile(seasonal_series):
    growth = compute_growth_metrics(seasonal_series)
    assert growth["yoy_growth"].iloc[:12].isna().all()
    assert growth["yoy_growth"].iloc[12:].notna().all()
    idx = seasonal_indices(seasonal_series)
    assert len(idx) == 12
    assert idx["seasonality_index"].mean() == pytest.approx(1.0)


def test_cagr():
    series = pd.Series([100.0, 121.0])
    assert cagr(series, 2) == pytest.approx(0.1)
    assert cagr(series, 0) is None


def test_decomposition_and_acf(seasonal_series):
    assert decompose_monthly(seasonal_series.iloc[:20]) is None
    parts = decompose_monthly(seasonal_series)
    np.testing.assert_allclose(parts["trend"] + parts["seasonal"] + parts["resid"], parts["observed"])
    acf_df = autocorrelation(seasonal_series, nlags=24)
    assert acf_df["acf"].iloc[0] == pytest.approx(1.0)
    assert len(acf_df) == 25

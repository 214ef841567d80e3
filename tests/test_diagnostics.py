from __future__ import annotations

import numpy as np
import pytest

from passenger_forecast.core.types import ArimaSpec, EtsSpec, FittedModel
from passenger_forecast.services.diagnostics import ljung_box, ljung_box_table, residual_summary
from passenger_forecast.services.models import fit_model
from tests.factories import airline_model_series


@pytest.fixture(scope="module")
def airline_fit() -> FittedModel:
    fitted = fit_model("airline", ArimaSpec((0, 1, 1), (0, 1, 1)), airline_model_series())
    assert isinstance(fitted, FittedModel)
    return fitted


def test_airline_model_residuals_are_white_noise(airline_fit):
    result = ljung_box(airline_fit, lag=10, dof=2)
    assert result.dof == 2
    assert 0 <= result.p_value <= 1
    assert result.p_value > 0.05
    assert result.is_white_noise()


def test_dof_defaults_to_arma_parameter_count(airline_fit):
    assert ljung_box(airline_fit, lag=24).dof == 2


def test_dof_must_be_below_lag(airline_fit):
    with pytest.raises(ValueError):
        ljung_box(airline_fit, lag=2, dof=2)


def test_burn_in_residuals_are_excluded(airline_fit):
    assert len(airline_fit.residuals) <= len(airline_fit.train)
    assert np.isfinite(airline_fit.residuals).all()
    assert airline_fit.residuals.index[-1] == airline_fit.train.index[-1]


def test_table_and_residual_summary(airline_fit, seasonal_series):
    ets = fit_model("ets", EtsSpec("A", "A", "A"), seasonal_series)
    table = ljung_box_table({"airline": airline_fit, "ets": ets}, lag=24)
    assert list(table["model_id"]) == ["airline", "ets"]
    assert list(table["dof"]) == [2, 0]

    summary = residual_summary(airline_fit, nlags=24, bins=10)
    assert summary["histogram"]["count"].sum() == len(summary["residuals"])
    assert summary["acf"]["acf"].iloc[0] == pytest.approx(1.0)
    assert summary["std"] > 0

from __future__ import annotations

import pandas as pd
import pytest

from passenger_forecast.core.config import ArimaSearchSpace, FitSettings
from passenger_forecast.services.data_loader import build_template
from tests.factories import monthly_series


@pytest.fixture
def template_df() -> pd.DataFrame:
    return build_template(months=48)


@pytest.fixture
def seasonal_series() -> pd.Series:
    return monthly_series()


@pytest.fixture
def quick_fit() -> FitSettings:
    """Small search space so automatic searches finish quickly."""
    return FitSettings(
        time_budget_seconds=120.0,
        maxiter=100,
        search_space=ArimaSearchSpace(
            max_p=2, max_q=2, max_P=1, max_Q=1, max_order=3, max_steps=12, start_p=1, start_q=1, start_P=0, start_Q=1
        ),
    )

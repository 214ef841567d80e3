from __future__ import annotations

from dataclasses import dataclass, field


RANDOM_SEED = 42
SEASONAL_PERIOD = 12
MONTHLY_FREQ = "MS"
DEFAULT_HOLDOUT_MONTHS = 12
DEFAULT_HORIZON_MONTHS = 36
SIGNIFICANCE_LEVEL = 0.05
MAX_DIFFERENCES = 2
MAX_SEASONAL_DIFFERENCES = 1
SEASONAL_STRENGTH_THRESHOLD = 0.64
GUERRERO_BOUNDS = (-1.0, 2.0)
LJUNG_BOX_LAG = 2 * SEASONAL_PERIOD
LOGGER_NAME = "passenger_forecast"


@dataclass(frozen=True)
class ValidationThresholds:
    min_history_months: int = 36
    min_history_for_seasonal_models: int = 2 * SEASONAL_PERIOD


@dataclass(frozen=True)
class ArimaSearchSpace:
    max_p: int = 5
    max_q: int = 5
    max_P: int = 2
    max_Q: int = 2
    max_order: int = 6
    max_steps: int = 94
    start_p: int = 2
    start_q: int = 2
    start_P: int = 1
    start_Q: int = 1


@dataclass(frozen=True)
class FitSettings:
    max_workers: int = 1
    time_budget_seconds: float = 300.0
    maxiter: int = 200
    search_space: ArimaSearchSpace = field(default_factory=ArimaSearchSpace)


@dataclass(frozen=True)
class PipelineSettings:
    holdout: int = DEFAULT_HOLDOUT_MONTHS
    horizon: int = DEFAULT_HORIZON_MONTHS
    period: int = SEASONAL_PERIOD
    ljung_box_lag: int = LJUNG_BOX_LAG
    top_n_airlines: int = 10
    fit: FitSettings = field(default_factory=FitSettings)
    thresholds: ValidationThresholds = field(default_factory=ValidationThresholds)

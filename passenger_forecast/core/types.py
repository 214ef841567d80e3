from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

import pandas as pd

from passenger_forecast.core.config import SEASONAL_PERIOD


@dataclass
class ValidationIssue:
    level: str
    check: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationReport:
    issues: list[ValidationIssue]
    summary: dict[str, Any]
    cleaned_df: pd.DataFrame

    @property
    def has_errors(self) -> bool:
        return any(i.level == "error" for i in self.issues)


@dataclass(frozen=True)
class Split:
    train: pd.Series
    test: pd.Series


@dataclass(frozen=True)
class EtsSpec:
    """Exponential smoothing spec using ETS component codes.

    error: "A" or "M"; trend: "N", "A" or "Ad" (damped); season: "N", "A" or "M".
    A component left as None is chosen by AICc.
    """

    error: str | None = None
    trend: str | None = None
    season: str | None = None
    period: int = SEASONAL_PERIOD

    @property
    def is_auto(self) -> bool:
        return None in (self.error, self.trend, self.season)

    @property
    def label(self) -> str:
        parts = [c if c is not None else "?" for c in (self.error, self.trend, self.season)]
        return f"ETS({','.join(parts)})"


@dataclass(frozen=True)
class ArimaSpec:
    """Seasonal ARIMA spec.

    Either both orders are given, or ``order`` is None and ``search`` names the
    order search ("stepwise" or "exhaustive"). ``include_constant=None`` lets
    the fitter decide (a constant is only used when d + D < 2).
    """

    order: tuple[int, int, int] | None = None
    seasonal_order: tuple[int, int, int] | None = None
    search: str | None = None
    include_constant: bool | None = None
    period: int = SEASONAL_PERIOD

    @property
    def is_auto(self) -> bool:
        return self.order is None

    @property
    def label(self) -> str:
        if self.order is None:
            return f"ARIMA[{self.search or 'stepwise'}]"
        p, d, q = self.order
        P, D, Q = self.seasonal_order or (0, 0, 0)
        text = f"ARIMA({p},{d},{q})({P},{D},{Q})[{self.period}]"
        if self.include_constant:
            text += " w/ const"
        return text


ModelSpec = Union[EtsSpec, ArimaSpec]


@dataclass
class FittedModel:
    model_id: str
    spec: ModelSpec
    resolved_spec: ModelSpec
    result: Any
    train: pd.Series
    fitted_values: pd.Series
    residuals: pd.Series
    aic: float
    aicc: float
    bic: float
    log_likelihood: float
    coefficients: dict[str, float] = field(default_factory=dict)
    arma_param_count: int = 0
    converged: bool = True
    fit_seconds: float = 0.0
    search_trace: list[dict[str, Any]] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.resolved_spec.label

    @property
    def family(self) -> str:
        return "ets" if isinstance(self.resolved_spec, EtsSpec) else "arima"


@dataclass
class FitFailure:
    model_id: str
    spec: ModelSpec
    reason: str


FitOutcome = Union[FittedModel, FitFailure]


@dataclass
class Forecast:
    model_id: str
    forecast_df: pd.DataFrame
    label: str = ""

    @property
    def horizon(self) -> int:
        return len(self.forecast_df)


@dataclass
class AccuracyReport:
    model_id: str
    rmse: float
    mae: float
    mape: float
    me: float = float("nan")
    mpe: float = float("nan")
    mase: float = float("nan")
    rmsse: float = float("nan")
    acf1: float = float("nan")
    coverage_95: float = float("nan")

    def as_dict(self) -> dict[str, Any]:
        return {
            "model_id": self.model_id,
            "me": self.me,
            "rmse": self.rmse,
            "mae": self.mae,
            "mpe": self.mpe,
            "mape": self.mape,
            "mase": self.mase,
            "rmsse": self.rmsse,
            "acf1": self.acf1,
            "coverage_95": self.coverage_95,
        }


@dataclass
class StationarityResult:
    test: str
    statistic: float
    p_value: float
    lags: int
    critical_values: dict[str, float] = field(default_factory=dict)

    def is_stationary(self, alpha: float) -> bool:
        if self.test == "kpss":
            return self.p_value >= alpha
        return self.p_value < alpha


@dataclass
class LjungBoxResult:
    model_id: str
    statistic: float
    p_value: float
    lag: int
    dof: int

    def is_white_noise(self, alpha: float = 0.05) -> bool:
        return self.p_value > alpha

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field

import pandas as pd

from passenger_forecast.core.config import PipelineSettings
from passenger_forecast.core.types import FitOutcome, Forecast, ModelSpec, Split, ValidationReport
from passenger_forecast.services.aggregation import aggregate_passengers, top_share
from passenger_forecast.services.diagnostics import ljung_box_table
from passenger_forecast.services.evaluation import accuracy_table, information_criteria
from passenger_forecast.services.models import (
    collect_failures,
    default_catalog,
    failures_frame,
    fit_catalog,
    forecast_all,
)
from passenger_forecast.services.reporting import (
    build_forecast_table,
    build_run_summary,
    export_to_excel,
)
from passenger_forecast.services.selection import build_explanation, rank_models
from passenger_forecast.services.series import build_monthly_series, split_series
from passenger_forecast.services.stationarity import stationarity_summary, stationarity_table
from passenger_forecast.services.validation import raise_for_errors, validate_records

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    settings: PipelineSettings
    validation: ValidationReport
    records: pd.DataFrame
    series: pd.Series
    top_airlines: pd.DataFrame
    stationarity: dict[str, object]
    stationarity_table: pd.DataFrame
    split: Split
    outcomes: dict[str, FitOutcome]
    forecasts: dict[str, Forecast]
    accuracy_df: pd.DataFrame
    criteria_df: pd.DataFrame
    rank_df: pd.DataFrame
    ljung_box_df: pd.DataFrame
    failures_df: pd.DataFrame
    forecast_errors: dict[str, str] = field(default_factory=dict)
    explanation: str = ""

    def summary_table(self) -> pd.DataFrame:
        return build_run_summary(
            self.series,
            holdout=self.settings.holdout,
            horizon=self.settings.horizon,
            rank_df=self.rank_df,
            validation_summary=self.validation.summary,
            explanation=self.explanation,
            n_failures=len(self.failures_df),
        )

    def to_excel(self) -> bytes:
        issues = pd.DataFrame(
            [{**asdict(i), "details": str(i.details)} for i in self.validation.issues],
            columns=["level", "check", "message", "details"],
        )
        return export_to_excel(
            series_table=self.series.reset_index(),
            summary_table=self.summary_table(),
            accuracy_table=self.accuracy_df,
            criteria_table=self.criteria_df,
            rank_table=self.rank_df,
            forecast_table=build_forecast_table(self.series, self.forecasts),
            diagnostics_table=self.ljung_box_df,
            failures_table=self.failures_df,
            top_airlines=self.top_airlines,
            stationarity_table=self.stationarity_table,
            validation_issues=issues,
        )


def run_pipeline(
    raw_df: pd.DataFrame,
    settings: PipelineSettings | None = None,
    catalog: dict[str, ModelSpec] | None = None,
) -> PipelineResult:
    """Run every stage from raw rows to scored forecasts.

    Data errors raise ``DataIntegrityError`` before anything is fitted;
    per-model fit and forecast failures are collected in ``failures_df``.
    """
    settings = settings or PipelineSettings()
    if settings.horizon < settings.holdout:
        raise ValueError(f"horizon ({settings.horizon}) must cover the holdout ({settings.holdout})")
    catalog = catalog if catalog is not None else default_catalog(settings.period)

    report = validate_records(raw_df, settings.thresholds)
    raise_for_errors(report)
    records = report.cleaned_df
    logger.info("Validation completed. Summary=%s", report.summary)

    series = build_monthly_series(aggregate_passengers(records))
    airlines = (
        top_share(records, by="airline", n=settings.top_n_airlines)
        if "airline" in records.columns
        else pd.DataFrame(columns=["rank", "airline", "passengers", "share_pct"])
    )
    logger.info("Monthly series: %d months (%s to %s)", len(series), series.index[0], series.index[-1])

    stationarity = stationarity_summary(series, period=settings.period)
    table = stationarity_table(series, period=settings.period)
    logger.info(
        "Stationarity: KPSS p=%.3f, ADF p=%.3f, suggested d=%s D=%s",
        stationarity["kpss"].p_value,
        stationarity["adf"].p_value,
        stationarity["differences"],
        stationarity["seasonal_differences"],
    )

    split = split_series(series, settings.holdout)
    outcomes = fit_catalog(split.train, catalog, settings.fit)
    forecasts, forecast_errors = forecast_all(outcomes, settings.horizon)

    accuracy_df = accuracy_table(forecasts, split.test, split.train)
    criteria_df = information_criteria(outcomes)
    rank_df = rank_models(accuracy_df, criteria_df)
    ljung_box_df = ljung_box_table(outcomes, lag=settings.ljung_box_lag)

    failures_df = failures_frame(outcomes, forecast_errors)
    issues = [i.message for i in report.issues if i.level == "warning"]
    explanation = build_explanation(rank_df, ljung_box_df, issues, list(failures_df["model_id"]))
    logger.info(
        "Pipeline completed: %d forecasts, %d fit failures, %d forecast failures",
        len(forecasts),
        len(collect_failures(outcomes)),
        len(forecast_errors),
    )

    return PipelineResult(
        settings=settings,
        validation=report,
        records=records,
        series=series,
        top_airlines=airlines,
        stationarity=stationarity,
        stationarity_table=table,
        split=split,
        outcomes=outcomes,
        forecasts=forecasts,
        accuracy_df=accuracy_df,
        criteria_df=criteria_df,
        rank_df=rank_df,
        ljung_box_df=ljung_box_df,
        failures_df=failures_df,
        forecast_errors=forecast_errors,
        explanation=explanation,
    )

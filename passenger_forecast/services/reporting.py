from __future__ import annotations

import io
from datetime import datetime, timezone

import pandas as pd

from passenger_forecast.core.types import Forecast, StationarityResult

FORECAST_COLUMNS = ["date", "actual", "forecast", "lower_80", "upper_80", "lower_95", "upper_95", "model_id"]


def build_forecast_table(series: pd.Series, forecasts: dict[str, Forecast]) -> pd.DataFrame:
    """Observed history stacked on top of every model's forecast, long format."""
    hist = series.rename("actual").reset_index()
    hist.columns = ["date", "actual"]
    for col in FORECAST_COLUMNS[2:-1]:
        hist[col] = pd.NA
    hist["model_id"] = "actual"
    frames = [hist] + [f.forecast_df for f in forecasts.values()]
    combined = pd.concat(frames, ignore_index=True, sort=False)
    return combined[FORECAST_COLUMNS].sort_values(["date", "model_id"], kind="mergesort").reset_index(drop=True)


def stationarity_frame(summary: dict[str, object]) -> pd.DataFrame:
    rows = []
    for key, value in summary.items():
        if isinstance(value, StationarityResult):
            rows.append({"item": f"{value.test}_statistic", "value": value.statistic})
            rows.append({"item": f"{value.test}_p_value", "value": value.p_value})
        else:
            rows.append({"item": key, "value": value})
    return pd.DataFrame(rows, columns=["item", "value"])


def build_run_summary(
    series: pd.Series,
    holdout: int,
    horizon: int,
    rank_df: pd.DataFrame,
    validation_summary: dict,
    explanation: str,
    n_failures: int,
) -> pd.DataFrame:
    best = rank_df.iloc[0] if not rank_df.empty else None
    data = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "first_month": series.index.min().strftime("%Y-%m"),
        "last_month": series.index.max().strftime("%Y-%m"),
        "history_months": len(series),
        "holdout_months": holdout,
        "horizon_months": horizon,
        "methodology": "ETS and seasonal ARIMA fitted on the training window; "
        "ranked by holdout RMSE and by AICc within each model family.",
        "best_model_id": best["model_id"] if best is not None else None,
        "best_rmse": best["rmse"] if best is not None else None,
        "best_mape": best["mape"] if best is not None else None,
        "model_failures": n_failures,
        "duplicate_rows": validation_summary.get("duplicate_rows"),
        "total_passengers": validation_summary.get("total_passengers"),
        "explanation": explanation,
    }
    return pd.DataFrame([data])


def export_to_excel(
    series_table: pd.DataFrame,
    summary_table: pd.DataFrame,
    accuracy_table: pd.DataFrame,
    criteria_table: pd.DataFrame,
    rank_table: pd.DataFrame,
    forecast_table: pd.DataFrame,
    diagnostics_table: pd.DataFrame,
    failures_table: pd.DataFrame,
    top_airlines: pd.DataFrame | None = None,
    stationarity_table: pd.DataFrame | None = None,
    validation_issues: pd.DataFrame | None = None,
) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="xlsxwriter") as writer:
        summary_table.to_excel(writer, index=False, sheet_name="summary")
        series_table.to_excel(writer, index=False, sheet_name="monthly_series")
        if top_airlines is not None:
            top_airlines.to_excel(writer, index=False, sheet_name="top_airlines")
        if stationarity_table is not None:
            stationarity_table.to_excel(writer, index=False, sheet_name="stationarity")
        accuracy_table.to_excel(writer, index=False, sheet_name="accuracy")
        criteria_table.to_excel(writer, index=False, sheet_name="information_criteria")
        rank_table.to_excel(writer, index=False, sheet_name="rankings")
        forecast_table.to_excel(writer, index=False, sheet_name="forecasts")
        diagnostics_table.to_excel(writer, index=False, sheet_name="diagnostics")
        failures_table.to_excel(writer, index=False, sheet_name="model_failures")
        if validation_issues is not None and not validation_issues.empty:
            validation_issues.to_excel(writer, index=False, sheet_name="data_quality")
    buffer.seek(0)
    return buffer.read()

"""Command-line entry point.

Usage:
    python -m passenger_forecast data/air_traffic.csv --holdout 12 --horizon 36 \
        --report forecast_report.xlsx --workers 4
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

import pandas as pd

from passenger_forecast.core.config import (
    DEFAULT_HOLDOUT_MONTHS,
    DEFAULT_HORIZON_MONTHS,
    LOGGER_NAME,
    FitSettings,
    PipelineSettings,
)
from passenger_forecast.core.errors import DataIntegrityError, EvaluationError
from passenger_forecast.services.data_loader import read_records_csv
from passenger_forecast.services.pipeline import run_pipeline

logger = logging.getLogger(LOGGER_NAME)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="passenger_forecast",
        description="Fit ETS and seasonal ARIMA models to monthly airport passenger counts.",
    )
    parser.add_argument("input", type=Path, help="CSV of passenger-statistics records")
    parser.add_argument("--holdout", type=int, default=DEFAULT_HOLDOUT_MONTHS, help="months held out for scoring")
    parser.add_argument("--horizon", type=int, default=DEFAULT_HORIZON_MONTHS, help="months to forecast")
    parser.add_argument("--report", type=Path, default=None, help="write an Excel report to this path")
    parser.add_argument("--workers", type=int, default=1, help="threads used to fit models")
    parser.add_argument("--time-budget", type=float, default=FitSettings().time_budget_seconds, help="seconds per model")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(message)s")

    settings = PipelineSettings(holdout=args.holdout, horizon=args.horizon)
    settings = replace(
        settings,
        fit=replace(settings.fit, max_workers=args.workers, time_budget_seconds=args.time_budget),
    )
    try:
        raw = read_records_csv(args.input)
        result = run_pipeline(raw, settings)
    except (DataIntegrityError, EvaluationError) as ex:
        logger.error("%s", ex)
        return 1

    with pd.option_context("display.width", 160, "display.max_columns", 20):
        print("\nHoldout accuracy")
        print(result.accuracy_df.to_string(index=False, float_format=lambda v: f"{v:,.3f}"))
        print("\nInformation criteria")
        print(result.criteria_df.to_string(index=False, float_format=lambda v: f"{v:,.2f}"))
        print("\nResidual diagnostics (Ljung-Box)")
        print(result.ljung_box_df.to_string(index=False, float_format=lambda v: f"{v:,.4f}"))
        if not result.failures_df.empty:
            print("\nModel failures")
            print(result.failures_df.to_string(index=False))
        print(f"\n{result.explanation}")

    if args.report is not None:
        args.report.write_bytes(result.to_excel())
        logger.info("Report written to %s", args.report)
    return 0


if __name__ == "__main__":
    sys.exit(main())

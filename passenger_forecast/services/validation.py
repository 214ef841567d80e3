from __future__ import annotations

import logging
from dataclasses import asdict

import pandas as pd

from passenger_forecast.core.config import ValidationThresholds
from passenger_forecast.core.errors import DataIntegrityError
from passenger_forecast.core.types import ValidationIssue, ValidationReport
from passenger_forecast.services.data_loader import (
    REQUIRED_COLUMNS,
    invalid_period_mask,
    normalize_columns,
    parse_activity_period,
)

logger = logging.getLogger(__name__)


def validate_records(
    df: pd.DataFrame,
    thresholds: ValidationThresholds | None = None,
) -> ValidationReport:
    """Validate raw passenger-statistics rows and build canonical records.

    Error-level issues (missing columns, bad period codes, missing,
    non-numeric or negative passenger counts) leave ``cleaned_df`` empty: no
    partial record set is ever handed downstream. Warnings (duplicate rows,
    short history) keep the records.
    """
    thresholds = thresholds or ValidationThresholds()
    issues: list[ValidationIssue] = []
    work = normalize_columns(df)

    missing = [c for c in REQUIRED_COLUMNS if c not in work.columns]
    if missing:
        issues.append(
            ValidationIssue(
                level="error",
                check="required_columns",
                message="Required columns are missing.",
                details={"missing": missing, "found": list(df.columns)},
            )
        )
        return ValidationReport(
            issues=issues,
            summary={"rows_input": int(len(df)), "rows_cleaned": 0},
            cleaned_df=pd.DataFrame(columns=["date", *work.columns]),
        )

    bad_period = invalid_period_mask(work["activity_period"])
    if bad_period.any():
        issues.append(
            ValidationIssue(
                level="error",
                check="period_parse",
                message="Activity period codes must be six-digit YYYYMM values with a month of 01-12.",
                details={
                    "bad_rows": int(bad_period.sum()),
                    "examples": work.loc[bad_period, "activity_period"].astype(str).head(5).tolist(),
                },
            )
        )

    counts = pd.to_numeric(work["passengers"], errors="coerce")
    non_numeric = counts.isna()
    if non_numeric.any():
        issues.append(
            ValidationIssue(
                level="error",
                check="passengers_numeric",
                message="Passenger counts are missing or non-numeric.",
                details={"bad_rows": int(non_numeric.sum())},
            )
        )

    negatives = counts < 0
    if negatives.any():
        issues.append(
            ValidationIssue(
                level="error",
                check="negative_passengers",
                message="Negative passenger counts detected.",
                details={"negative_rows": int(negatives.sum())},
            )
        )

    fractional = counts.notna() & (counts % 1 != 0)
    if fractional.any():
        issues.append(
            ValidationIssue(
                level="error",
                check="passengers_integer",
                message="Passenger counts must be whole numbers.",
                details={"bad_rows": int(fractional.sum())},
            )
        )

    if any(i.level == "error" for i in issues):
        return ValidationReport(
            issues=issues,
            summary={"rows_input": int(len(df)), "rows_cleaned": 0},
            cleaned_df=pd.DataFrame(columns=["date", *work.columns]),
        )

    work["activity_period"] = work["activity_period"].astype(str).str.strip().str.replace(r"\.0$", "", regex=True)
    work.insert(0, "date", parse_activity_period(work["activity_period"]))
    work["activity_period"] = work["activity_period"].astype(int)
    work["passengers"] = counts.astype("int64")

    duplicate_mask = work.duplicated(keep=False)
    if duplicate_mask.any():
        issues.append(
            ValidationIssue(
                level="warning",
                check="duplicates",
                message="Identical rows detected; they are kept and summed during aggregation.",
                details={"duplicate_rows": int(duplicate_mask.sum())},
            )
        )

    work = work.sort_values("date", kind="mergesort").reset_index(drop=True)

    history_months = int(work["date"].nunique())
    if history_months < thresholds.min_history_months:
        issues.append(
            ValidationIssue(
                level="warning",
                check="short_history",
                message="History is short; seasonal models and 12-month holdouts may be unreliable.",
                details={"history_months": history_months, "minimum_recommended": thresholds.min_history_months},
            )
        )

    if history_months < thresholds.min_history_for_seasonal_models:
        issues.append(
            ValidationIssue(
                level="warning",
                check="seasonal_history",
                message="Fewer than two full seasonal cycles; seasonal ETS and ARIMA candidates will fail to fit.",
                details={
                    "history_months": history_months,
                    "minimum_required": thresholds.min_history_for_seasonal_models,
                },
            )
        )

    summary = {
        "rows_input": int(len(df)),
        "rows_cleaned": int(len(work)),
        "history_months": history_months,
        "first_month": work["date"].min(),
        "last_month": work["date"].max(),
        "total_passengers": int(work["passengers"].sum()),
        "duplicate_rows": int(duplicate_mask.sum()),
        "thresholds": asdict(thresholds),
    }
    return ValidationReport(issues=issues, summary=summary, cleaned_df=work)


def load_records(df: pd.DataFrame, thresholds: ValidationThresholds | None = None) -> pd.DataFrame:
    """Validate and return canonical records, raising on any error-level issue."""
    report = validate_records(df, thresholds)
    raise_for_errors(report)
    logger.info("Loaded %d records. Summary=%s", len(report.cleaned_df), report.summary)
    return report.cleaned_df


def raise_for_errors(report: ValidationReport) -> None:
    errors = [i for i in report.issues if i.level == "error"]
    if errors:
        text = "; ".join(f"{i.check}: {i.message} {i.details}" for i in errors)
        raise DataIntegrityError(f"Input records failed validation: {text}")

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from statsmodels.stats.diagnostic import acorr_ljungbox
from statsmodels.tsa.stattools import acf

from passenger_forecast.core.config import LJUNG_BOX_LAG
from passenger_forecast.core.types import FitOutcome, FittedModel, LjungBoxResult

logger = logging.getLogger(__name__)

LJUNG_BOX_COLUMNS = ["model_id", "model", "lag", "dof", "statistic", "p_value", "white_noise", "note"]


def ljung_box(fitted: FittedModel, lag: int = LJUNG_BOX_LAG, dof: int | None = None) -> LjungBoxResult:
    """Ljung-Box portmanteau test on the model residuals.

    ``dof`` defaults to the number of estimated AR/MA and seasonal AR/MA
    coefficients, which is zero for ETS models.
    """
    dof = fitted.arma_param_count if dof is None else dof
    if lag < 1:
        raise ValueError("lag must be positive")
    if dof < 0 or dof >= lag:
        raise ValueError(f"dof must be in [0, lag); got dof={dof}, lag={lag}")
    resid = fitted.residuals.dropna().to_numpy(dtype=float)
    if len(resid) <= lag:
        raise ValueError(f"Need more than {lag} residuals for a lag-{lag} test, got {len(resid)}")
    table = acorr_ljungbox(resid, lags=[lag], model_df=dof, return_df=True)
    return LjungBoxResult(
        model_id=fitted.model_id,
        statistic=float(table["lb_stat"].iloc[0]),
        p_value=float(table["lb_pvalue"].iloc[0]),
        lag=lag,
        dof=dof,
    )


def ljung_box_table(outcomes: dict[str, FitOutcome], lag: int = LJUNG_BOX_LAG) -> pd.DataFrame:
    """One Ljung-Box row per fitted model.

    A model whose residuals are too few for ``lag`` (or whose parameter count
    reaches it) gets a row with a note instead of a statistic.
    """
    rows = []
    for outcome in outcomes.values():
        if not isinstance(outcome, FittedModel):
            continue
        row = {"model_id": outcome.model_id, "model": outcome.label, "lag": lag, "dof": outcome.arma_param_count}
        try:
            result = ljung_box(outcome, lag=lag)
        except ValueError as ex:
            logger.warning("Ljung-Box skipped for %s: %s", outcome.model_id, ex)
            row.update(statistic=np.nan, p_value=np.nan, white_noise=None, note=str(ex))
        else:
            row.update(
                statistic=result.statistic,
                p_value=result.p_value,
                white_noise=result.is_white_noise(),
                note="",
            )
        rows.append(row)
    return pd.DataFrame(rows, columns=LJUNG_BOX_COLUMNS)


def residual_summary(fitted: FittedModel, nlags: int = 24, bins: int = 20) -> dict[str, object]:
    resid = fitted.residuals.dropna()
    values = resid.to_numpy(dtype=float)
    nlags = min(nlags, len(values) - 1)
    acf_values = acf(values, nlags=nlags, fft=False) if np.ptp(values) > 0 else np.zeros(nlags + 1)
    counts, edges = np.histogram(values, bins=bins)
    return {
        "residuals": resid,
        "acf": pd.DataFrame(
            {"lag": np.arange(nlags + 1), "acf": acf_values, "bound": 1.96 / np.sqrt(len(values))}
        ),
        "histogram": pd.DataFrame({"left": edges[:-1], "right": edges[1:], "count": counts}),
        "mean": float(values.mean()),
        "std": float(values.std(ddof=1)),
    }

from __future__ import annotations

import numpy as np
import pandas as pd


def rank_models(accuracy_df: pd.DataFrame, criteria_df: pd.DataFrame) -> pd.DataFrame:
    """Join holdout accuracy with information criteria and rank both ways.

    ``rmse_rank`` orders every model by holdout RMSE. ``aicc_rank`` orders
    models by AICc within their family only, since ETS and ARIMA likelihoods
    are computed on different data (levels vs differences) and are not
    comparable across families. ``aicc_rank_all`` is the plain ascending-AICc
    order over every model, kept for reference.
    """
    if accuracy_df.empty:
        return pd.DataFrame()

    criteria = criteria_df[["model_id", "family", "aic", "aicc", "bic"]]
    rank_df = accuracy_df.merge(criteria, on="model_id", how="left")
    rank_df["rmse_rank"] = rank_df["rmse"].rank(method="min").astype(int)
    rank_df["aicc_rank"] = rank_df.groupby("family")["aicc"].rank(method="min")
    rank_df["aicc_rank"] = rank_df["aicc_rank"].astype("Int64")
    rank_df["aicc_rank_all"] = rank_df["aicc"].rank(method="min").astype("Int64")
    rank_df = rank_df.sort_values(["rmse_rank", "model_id"], kind="mergesort").reset_index(drop=True)
    rank_df["rank"] = np.arange(1, len(rank_df) + 1)
    return rank_df


def best_by_family(rank_df: pd.DataFrame) -> pd.DataFrame:
    """Lowest-AICc model of each family."""
    if rank_df.empty:
        return rank_df
    ordered = rank_df.sort_values(["family", "aicc"], kind="mergesort")
    return ordered.groupby("family", as_index=False).head(1).reset_index(drop=True)


def build_explanation(
    rank_df: pd.DataFrame,
    ljung_box_df: pd.DataFrame | None = None,
    issues: list[str] | None = None,
    failures: list[str] | None = None,
) -> str:
    if rank_df.empty:
        return "No model produced a forecast that could be scored against the holdout."
    top = rank_df.iloc[0]
    text = [
        f"Lowest holdout RMSE: {top['model']} ({top['model_id']}), "
        f"RMSE {top['rmse']:,.0f} passengers and MAPE {top['mape']:.2f}%.",
    ]
    for _, row in best_by_family(rank_df).iterrows():
        text.append(f"Best {str(row['family']).upper()} by AICc: {row['model']} (AICc {row['aicc']:,.1f}).")
    if ljung_box_df is not None and not ljung_box_df.empty:
        match = ljung_box_df[ljung_box_df["model_id"] == top["model_id"]]
        if not match.empty and pd.notna(match.iloc[0]["p_value"]):
            p_value = float(match.iloc[0]["p_value"])
            verdict = "look like white noise" if p_value > 0.05 else "still show autocorrelation"
            text.append(f"Its residuals {verdict} (Ljung-Box p={p_value:.3f}).")
    if failures:
        text.append(f"Models that failed to fit or forecast: {', '.join(failures)}.")
    if issues:
        text.append(f"Data quality considerations: {'; '.join(issues)}.")
    text.append("AICc is only compared within a model family; holdout RMSE is compared across all models.")
    return " ".join(text)

"""Page 3 - Fit Models: ETS and seasonal ARIMA catalog on the training window."""
from __future__ import annotations

import streamlit as st

st.set_page_config(page_title="Fit Models | Passenger Forecasting", layout="wide")

from passenger_forecast.ui.shared import plot_forecasts, setup_page  # noqa: E402

setup_page()

import logging  # noqa: E402

import pandas as pd  # noqa: E402

from passenger_forecast.core.config import (  # noqa: E402
    DEFAULT_HOLDOUT_MONTHS,
    DEFAULT_HORIZON_MONTHS,
    LOGGER_NAME,
    FitSettings,
    PipelineSettings,
    ValidationThresholds,
)
from passenger_forecast.services.models import default_catalog, fitted_models  # noqa: E402
from passenger_forecast.services.pipeline import run_pipeline  # noqa: E402

logger = logging.getLogger(LOGGER_NAME)

st.header("3) Fit Models")

series = st.session_state.series
if series is None:
    st.info("Upload and validate data first (page 1).")
    st.stop()

catalog = default_catalog()
c1, c2 = st.columns(2)
with c1:
    holdout = st.number_input("Holdout months", 1, 60, DEFAULT_HOLDOUT_MONTHS, step=1)
    horizon = st.number_input("Forecast horizon (months)", 1, 120, DEFAULT_HORIZON_MONTHS, step=6)
with c2:
    workers = st.number_input("Parallel fits", 1, 16, 1, step=1)
    budget = st.number_input("Time budget per model (s)", 10, 3600, int(FitSettings().time_budget_seconds), step=30)

chosen = st.multiselect(
    "Models",
    options=list(catalog),
    default=[k for k in catalog if k != "arima_exhaustive"],
    format_func=lambda k: f"{k}: {catalog[k].label}",
    help="The exhaustive ARIMA search fits every order in the search space and can take several minutes.",
)

if st.button("Fit Models", type="primary"):
    if horizon < holdout:
        st.error("The forecast horizon must cover the holdout window.")
        st.stop()
    thresholds = ValidationThresholds(**st.session_state.report.summary["thresholds"])
    settings = PipelineSettings(
        holdout=int(holdout),
        horizon=int(horizon),
        fit=FitSettings(max_workers=int(workers), time_budget_seconds=float(budget)),
        thresholds=thresholds,
    )
    with st.spinner("Fitting models..."):
        try:
            st.session_state.result = run_pipeline(
                st.session_state.raw_df, settings, catalog={k: catalog[k] for k in chosen}
            )
        except ValueError as ex:
            st.error(str(ex))
            logger.exception("Model fitting failed")

result = st.session_state.result
if result is None:
    st.stop()

fitted = fitted_models(result.outcomes)
st.success(f"Fitted {len(fitted)} of {len(result.outcomes)} models.")
if not result.failures_df.empty:
    st.warning("Some models failed to fit or forecast; they are excluded from scoring.")
    st.dataframe(result.failures_df, use_container_width=True)

st.subheader("Information Criteria")
st.caption("AICc is only comparable between models of the same family (ETS vs ARIMA use different likelihoods).")
st.dataframe(result.criteria_df, use_container_width=True)

if result.forecasts:
    highlight = st.selectbox("Highlight model", options=list(result.forecasts))
    plot_forecasts(result.series, result.forecasts, highlight, test=result.split.test)

    st.subheader("Model Details")
    detail_id = st.selectbox("Show details for", options=list(fitted), key="detail_model")
    model = fitted[detail_id]
    st.write(f"**{model.label}**, fitted in {model.fit_seconds:.1f}s" + ("" if model.converged else " (did not converge)"))
    st.dataframe(pd.DataFrame({"coefficient": model.coefficients}), use_container_width=True)
    if model.search_trace:
        with st.expander(f"Search trace ({len(model.search_trace)} candidates)"):
            st.dataframe(pd.DataFrame(model.search_trace), use_container_width=True)

"""Shared UI utilities: session state initialisation, styling, sidebar."""
from __future__ import annotations

import logging

import numpy as np
import plotly.graph_objects as go
import streamlit as st

from passenger_forecast.core.config import LOGGER_NAME, RANDOM_SEED
from passenger_forecast.services.eda import cagr

np.random.seed(RANDOM_SEED)
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(LOGGER_NAME)

_STATE_DEFAULTS: dict = {
    "raw_df": None,
    "report": None,
    "records": None,
    "series": None,
    "result": None,
}

_CSS = """
<style>
div.stButton > button[kind="primary"] {
    background: linear-gradient(135deg, #0ea5e9 0%, #0284c7 100%);
    color: white;
    border: none;
    border-radius: 8px;
    padding: 0.55rem 1.6rem;
    font-weight: 600;
    box-shadow: 0 2px 6px rgba(2, 132, 199, 0.35);
}
div.stButton > button[kind="primary"]:hover {
    box-shadow: 0 5px 14px rgba(2, 132, 199, 0.45);
}
div[data-testid="stMetric"] {
    background: #f8fafc;
    border: 1px solid #e2e8f0;
    border-radius: 8px;
    padding: 0.6rem 0.9rem;
}
div[data-testid="stSidebar"] .workflow-step {
    font-size: 0.82rem;
    line-height: 1.6;
}
</style>
"""

SEVERITY_COLOR = {"error": "red", "warning": "orange", "info": "blue"}


def _init_state() -> None:
    for key, default in _STATE_DEFAULTS.items():
        if key not in st.session_state:
            st.session_state[key] = default


def reset_downstream() -> None:
    """Drop results that depend on the current records."""
    st.session_state.result = None


def render_issues(report) -> None:
    if not report.issues:
        st.success("No data quality issues detected.")
        return
    for issue in report.issues:
        color = SEVERITY_COLOR.get(issue.level, "gray")
        st.markdown(f"- :{color}[**{issue.level.upper()}**] `{issue.check}`: {issue.message} | `{issue.details}`")


def _render_sidebar() -> None:
    series = st.session_state.series
    result = st.session_state.result

    steps = [
        ("1. Upload & Validate", series is not None),
        ("2. EDA & Stationarity", series is not None),
        ("3. Fit Models", result is not None),
        ("4. Holdout Accuracy", result is not None and not result.accuracy_df.empty),
        ("5. Residual Diagnostics", result is not None and not result.ljung_box_df.empty),
        ("6. Export", result is not None),
    ]
    done_count = sum(1 for _, done in steps if done)
    pct = done_count / len(steps)

    st.sidebar.markdown("**Workflow Progress**")
    st.sidebar.progress(pct, text=f"{int(pct * 100)}% complete")
    step_lines = "<br>".join(f"{'✅' if done else '🔴'} {name}" for name, done in steps)
    st.sidebar.markdown(f"<div class='workflow-step'>{step_lines}</div>", unsafe_allow_html=True)
    st.sidebar.divider()

    st.sidebar.header("Run Controls")
    st.sidebar.write("Fits are deterministic; simulated intervals use a fixed random seed.")
    if st.sidebar.button("Reset Session"):
        for k in list(st.session_state.keys()):
            del st.session_state[k]
        st.rerun()

    if series is not None and len(series) >= 24:
        v = cagr(series, (len(series) - 1) / 12)
        st.sidebar.metric("Historical CAGR", f"{v:.2%}" if v is not None else "N/A")


def setup_page() -> None:
    """Call at the top of every page: init state, inject CSS, render sidebar."""
    _init_state()
    st.markdown(_CSS, unsafe_allow_html=True)
    _render_sidebar()


def plot_forecasts(series, forecasts: dict, highlight: str | None, test=None, title: str = "Actuals and Forecasts"):
    """Actuals with one line per model; the highlighted model gets its 80% and 95% bands."""
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=series.index, y=series.values, mode="lines", name="Actuals", line=dict(color="#1f2937")))
    if test is not None:
        fig.add_trace(
            go.Scatter(x=test.index, y=test.values, mode="markers", name="Holdout", marker=dict(color="#1f2937", size=5))
        )
    for model_id, fc in forecasts.items():
        frame = fc.forecast_df
        fig.add_trace(
            go.Scatter(
                x=frame["date"],
                y=frame["forecast"],
                mode="lines",
                name=model_id,
                line=dict(width=3 if model_id == highlight else 1),
            )
        )
    selected = forecasts.get(highlight)
    if selected is not None:
        frame = selected.forecast_df
        for level, shade in (("95", "rgba(59,130,246,0.12)"), ("80", "rgba(59,130,246,0.22)")):
            fig.add_trace(
                go.Scatter(x=frame["date"], y=frame[f"upper_{level}"], line=dict(width=0), showlegend=False, hoverinfo="skip")
            )
            fig.add_trace(
                go.Scatter(
                    x=frame["date"],
                    y=frame[f"lower_{level}"],
                    fill="tonexty",
                    fillcolor=shade,
                    line=dict(width=0),
                    name=f"{level}% interval",
                    hoverinfo="skip",
                )
            )
    fig.update_layout(title=title, xaxis_title="Month", yaxis_title="Passengers", template="plotly_white")
    st.plotly_chart(fig, use_container_width=True)

"""Page 2 - EDA & Stationarity."""
from __future__ import annotations

import streamlit as st

st.set_page_config(page_title="EDA & Stationarity | Passenger Forecasting", layout="wide")

from passenger_forecast.ui.shared import setup_page  # noqa: E402

setup_page()

import plotly.express as px  # noqa: E402
import plotly.graph_objects as go  # noqa: E402

from passenger_forecast.core.config import SIGNIFICANCE_LEVEL  # noqa: E402
from passenger_forecast.services.aggregation import aggregate_passengers, monthly_share, top_share  # noqa: E402
from passenger_forecast.services.data_loader import DIMENSION_COLUMNS  # noqa: E402
from passenger_forecast.services.eda import (  # noqa: E402
    autocorrelation,
    compute_growth_metrics,
    decompose_monthly,
    seasonal_indices,
    yearly_profile,
)
from passenger_forecast.services.reporting import stationarity_frame  # noqa: E402
from passenger_forecast.services.stationarity import box_cox, stationarity_summary, stationarity_table  # noqa: E402

st.header("2) EDA & Stationarity")

series = st.session_state.series
records = st.session_state.records
if series is None:
    st.info("Upload and validate data first (page 1).")
    st.stop()

# ─────────────────────────────────────────────────────────────────────────────
# 1. Passenger mix
# ─────────────────────────────────────────────────────────────────────────────
st.subheader("Passenger Mix")
if "airline" in records.columns:
    top = top_share(records, by="airline", n=10)
    fig_top = px.bar(top, x="airline", y="share_pct", title="Top 10 airlines by share of passengers (%)")
    fig_top.update_layout(template="plotly_white", margin=dict(t=40, b=20))
    st.plotly_chart(fig_top, use_container_width=True)

dimensions = [c for c in DIMENSION_COLUMNS if c in records.columns and c != "airline"]
if dimensions:
    by = st.selectbox("Split monthly totals by", options=dimensions)
    split_df = aggregate_passengers(records, by=by)
    fig_split = px.line(split_df, x="date", y="passengers", color=by, title=f"Monthly passengers by {by}")
    fig_split.update_layout(template="plotly_white", margin=dict(t=40, b=20))
    st.plotly_chart(fig_split, use_container_width=True)
    share = monthly_share(records, by=by).reset_index().melt(id_vars="date", value_name="share_pct")
    fig_share = px.area(share, x="date", y="share_pct", color=by, title=f"Share of monthly passengers by {by} (%)")
    fig_share.update_layout(template="plotly_white", margin=dict(t=40, b=20))
    st.plotly_chart(fig_share, use_container_width=True)

# ─────────────────────────────────────────────────────────────────────────────
# 2. Growth and seasonality
# ─────────────────────────────────────────────────────────────────────────────
st.subheader("Growth & Seasonality")
growth = compute_growth_metrics(series)
latest = growth.dropna(subset=["yoy_growth"]).tail(1)
if not latest.empty:
    c1, c2 = st.columns(2)
    c1.metric("Latest YoY growth", f"{latest['yoy_growth'].iloc[0]:.1%}")
    c2.metric("Trailing-12m growth", f"{latest['trailing_12m_growth'].iloc[0]:.1%}")

profile = yearly_profile(series)
fig_season = px.line(profile, x="month", y="y", color="year", title="Seasonal plot: passengers by month of year")
fig_season.update_layout(template="plotly_white", margin=dict(t=40, b=20))
st.plotly_chart(fig_season, use_container_width=True)

idx = seasonal_indices(series)
fig_idx = px.bar(idx, x="month", y="seasonality_index", title="Seasonality index (1.0 = average month)")
fig_idx.update_layout(template="plotly_white", margin=dict(t=40, b=20))
st.plotly_chart(fig_idx, use_container_width=True)

decomposition = decompose_monthly(series)
if decomposition is None:
    st.info("STL decomposition needs at least two full years of data.")
else:
    fig_stl = go.Figure()
    for col in ("trend", "seasonal", "resid"):
        fig_stl.add_trace(go.Scatter(x=decomposition.index, y=decomposition[col], mode="lines", name=col))
    fig_stl.update_layout(title="STL decomposition", template="plotly_white", margin=dict(t=40, b=20))
    st.plotly_chart(fig_stl, use_container_width=True)

# ─────────────────────────────────────────────────────────────────────────────
# 3. Stationarity
# ─────────────────────────────────────────────────────────────────────────────
st.subheader("Stationarity & Transformations")
st.caption(
    "KPSS tests the null of stationarity (small p-value: difference the series). "
    "ADF tests the null of a unit root (small p-value: stationary)."
)
summary = stationarity_summary(series)
c1, c2, c3, c4 = st.columns(4)
c1.metric("KPSS p-value", f"{summary['kpss'].p_value:.3f}")
c2.metric("ADF p-value", f"{summary['adf'].p_value:.3f}")
c3.metric("Suggested D / d", f"{summary['seasonal_differences']} / {summary['differences']}")
lam = summary["guerrero_lambda"]
c4.metric("Guerrero λ", f"{lam:.3f}" if lam is not None else "N/A")
if not summary["kpss"].is_stationary(SIGNIFICANCE_LEVEL):
    st.warning("KPSS rejects stationarity of the level series at the 5% level.")
st.dataframe(stationarity_table(series), use_container_width=True)
with st.expander("All stationarity figures"):
    st.dataframe(stationarity_frame(summary), use_container_width=True)

if lam is not None:
    transformed = box_cox(series, lam)
    fig_bc = px.line(transformed.reset_index(), x="date", y=transformed.name, title=f"Box-Cox transformed (λ={lam:.2f})")
    fig_bc.update_layout(template="plotly_white", margin=dict(t=40, b=20))
    st.plotly_chart(fig_bc, use_container_width=True)

transform = st.radio(
    "Autocorrelation of",
    options=["level", "seasonal difference", "seasonal then first difference"],
    horizontal=True,
)
view = {
    "level": series,
    "seasonal difference": series.diff(12),
    "seasonal then first difference": series.diff(12).diff(),
}[transform]
acf_df = autocorrelation(view)
fig_acf = go.Figure()
fig_acf.add_trace(go.Bar(x=acf_df["lag"], y=acf_df["acf"], name="ACF"))
fig_acf.add_hline(y=float(acf_df["bound"].iloc[0]), line_dash="dash", line_color="gray")
fig_acf.add_hline(y=-float(acf_df["bound"].iloc[0]), line_dash="dash", line_color="gray")
fig_acf.update_layout(title=f"ACF: {transform}", template="plotly_white", margin=dict(t=40, b=20))
st.plotly_chart(fig_acf, use_container_width=True)

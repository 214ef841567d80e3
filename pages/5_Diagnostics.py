"""Page 5 - Residual Diagnostics."""
from __future__ import annotations

import streamlit as st

st.set_page_config(page_title="Residual Diagnostics | Passenger Forecasting", layout="wide")

from passenger_forecast.ui.shared import setup_page  # noqa: E402

setup_page()

import plotly.graph_objects as go  # noqa: E402

from passenger_forecast.core.config import LJUNG_BOX_LAG  # noqa: E402
from passenger_forecast.services.diagnostics import ljung_box, residual_summary  # noqa: E402
from passenger_forecast.services.models import fitted_models  # noqa: E402

st.header("5) Residual Diagnostics")

result = st.session_state.result
if result is None or result.ljung_box_df.empty:
    st.info("Fit models first (page 3).")
    st.stop()

st.subheader("Ljung-Box")
st.caption(
    f"Portmanteau test on residuals up to lag {result.settings.ljung_box_lag}; degrees of freedom are reduced "
    "by the number of AR/MA coefficients. p > 0.05 means no evidence of remaining autocorrelation."
)
st.dataframe(result.ljung_box_df, use_container_width=True)

fitted = fitted_models(result.outcomes)
model_id = st.selectbox("Model", options=list(fitted), format_func=lambda k: f"{k}: {fitted[k].label}")
model = fitted[model_id]

c1, c2 = st.columns(2)
with c1:
    lag = st.number_input("Lag", 1, 48, LJUNG_BOX_LAG, step=1)
with c2:
    dof = st.number_input("Degrees of freedom", 0, 47, model.arma_param_count, step=1)
try:
    test = ljung_box(model, lag=int(lag), dof=int(dof))
    verdict = "white noise" if test.is_white_noise() else "autocorrelated"
    st.metric(f"Q* at lag {test.lag}", f"{test.statistic:.2f}", delta=f"p={test.p_value:.3f} ({verdict})", delta_color="off")
except ValueError as ex:
    st.error(str(ex))

summary = residual_summary(model)
resid = summary["residuals"]
c1, c2 = st.columns(2)
c1.metric("Residual mean", f"{summary['mean']:,.1f}")
c2.metric("Residual std", f"{summary['std']:,.1f}")

fig_resid = go.Figure()
fig_resid.add_trace(go.Scatter(x=resid.index, y=resid.values, mode="lines", name="Residual"))
fig_resid.add_hline(y=0, line_color="gray")
fig_resid.update_layout(title="Innovation residuals", template="plotly_white", margin=dict(t=40, b=20))
st.plotly_chart(fig_resid, use_container_width=True)

c1, c2 = st.columns(2)
with c1:
    acf_df = summary["acf"]
    fig_acf = go.Figure()
    fig_acf.add_trace(go.Bar(x=acf_df["lag"], y=acf_df["acf"], name="ACF"))
    bound = float(acf_df["bound"].iloc[0])
    fig_acf.add_hline(y=bound, line_dash="dash", line_color="gray")
    fig_acf.add_hline(y=-bound, line_dash="dash", line_color="gray")
    fig_acf.update_layout(title="Residual ACF", template="plotly_white", margin=dict(t=40, b=20))
    st.plotly_chart(fig_acf, use_container_width=True)
with c2:
    hist = summary["histogram"]
    fig_hist = go.Figure()
    fig_hist.add_trace(go.Bar(x=(hist["left"] + hist["right"]) / 2, y=hist["count"], name="Count"))
    fig_hist.update_layout(title="Residual distribution", template="plotly_white", margin=dict(t=40, b=20))
    st.plotly_chart(fig_hist, use_container_width=True)

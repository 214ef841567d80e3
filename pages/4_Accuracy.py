"""Page 4 - Holdout Accuracy and model ranking."""
from __future__ import annotations

import streamlit as st

st.set_page_config(page_title="Holdout Accuracy | Passenger Forecasting", layout="wide")

from passenger_forecast.ui.shared import plot_forecasts, setup_page  # noqa: E402

setup_page()

import plotly.express as px  # noqa: E402

from passenger_forecast.core.types import Forecast  # noqa: E402

st.header("4) Holdout Accuracy")

result = st.session_state.result
if result is None or result.accuracy_df.empty:
    st.info("Fit models first (page 3).")
    st.stop()

rank_df = result.rank_df
best = rank_df.iloc[0]
c1, c2, c3 = st.columns(3)
c1.metric("Lowest RMSE", best["model_id"])
c2.metric("RMSE", f"{best['rmse']:,.0f}")
c3.metric("MAPE", f"{best['mape']:.2f}%")

st.subheader("Rankings")
st.caption(
    "rmse_rank orders every model by holdout RMSE; aicc_rank orders models by AICc within their family. "
    "MASE and RMSSE scale errors by the in-sample seasonal naive forecast."
)
st.dataframe(rank_df, use_container_width=True)

fig_rmse = px.bar(rank_df, x="model_id", y="rmse", color="family", title="Holdout RMSE by model")
fig_rmse.update_layout(template="plotly_white", margin=dict(t=40, b=20))
st.plotly_chart(fig_rmse, use_container_width=True)

st.subheader("Holdout Window")
chosen = st.multiselect(
    "Models to compare",
    options=list(rank_df["model_id"]),
    default=list(rank_df["model_id"].head(3)),
)
window = {k: v for k, v in result.forecasts.items() if k in chosen}
if window:
    test = result.split.test
    trimmed = {}
    for model_id, fc in window.items():
        frame = fc.forecast_df.iloc[: len(test)]
        trimmed[model_id] = Forecast(model_id=model_id, forecast_df=frame, label=fc.label)
    recent = result.series.iloc[-4 * len(test) :]
    plot_forecasts(recent, trimmed, chosen[0], test=test, title="Holdout forecasts vs actuals")

st.subheader("Summary")
st.write(result.explanation)

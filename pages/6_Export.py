"""Page 6 - Export & Reporting."""
from __future__ import annotations

import streamlit as st

st.set_page_config(page_title="Export | Passenger Forecasting", layout="wide")

from passenger_forecast.ui.shared import setup_page  # noqa: E402

setup_page()

from passenger_forecast.services.reporting import build_forecast_table  # noqa: E402

st.header("6) Export & Reporting")

result = st.session_state.result
if result is None:
    st.info("Fit models first (page 3).")
    st.stop()

st.subheader("Run Summary")
summary = result.summary_table()
st.dataframe(summary.T.rename(columns={0: "value"}), use_container_width=True)

forecast_table = build_forecast_table(result.series, result.forecasts)
st.subheader("Forecast Table")
st.dataframe(forecast_table.tail(60), use_container_width=True)

st.download_button(
    "Download Excel Report",
    data=result.to_excel(),
    file_name="passenger_forecast_report.xlsx",
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    type="primary",
)
st.download_button(
    "Download Forecasts (CSV)",
    data=forecast_table.to_csv(index=False).encode("utf-8"),
    file_name="passenger_forecasts.csv",
    mime="text/csv",
)

"""Page 1 - Upload & Validate: raw passenger-statistics file, validation, monthly series."""
from __future__ import annotations

import streamlit as st

st.set_page_config(page_title="Upload & Validate | Passenger Forecasting", layout="wide")

from passenger_forecast.ui.shared import render_issues, reset_downstream, setup_page  # noqa: E402

setup_page()

import logging  # noqa: E402

import plotly.express as px  # noqa: E402

from passenger_forecast.core.config import LOGGER_NAME, ValidationThresholds  # noqa: E402
from passenger_forecast.core.errors import DataIntegrityError  # noqa: E402
from passenger_forecast.services.aggregation import aggregate_passengers  # noqa: E402
from passenger_forecast.services.data_loader import build_template, read_tabular  # noqa: E402
from passenger_forecast.services.series import build_monthly_series  # noqa: E402
from passenger_forecast.services.validation import validate_records  # noqa: E402

logger = logging.getLogger(LOGGER_NAME)

st.header("1) Upload & Validate")

template_df = build_template()
csv_bytes = template_df.to_csv(index=False).encode("utf-8")
st.download_button("Download CSV Template", data=csv_bytes, file_name="passenger_template.csv", mime="text/csv")

uploaded = st.file_uploader("Upload passenger statistics (CSV or Excel)", type=["csv", "xlsx", "xls"])
if uploaded:
    try:
        raw = read_tabular(uploaded.name, uploaded.read())
        st.session_state.raw_df = raw
        st.write("Data preview")
        st.dataframe(raw.head(20), use_container_width=True)
    except ValueError as ex:
        st.error(f"Could not read file: {ex}")

raw_df = st.session_state.raw_df
if raw_df is None:
    st.info("Upload a file, or download the template to see the expected layout.")
    st.stop()

with st.expander("Advanced: Validation Thresholds"):
    min_history = st.number_input(
        "Min history months",
        12,
        240,
        36,
        step=6,
        help="Below this a warning is raised; seasonal models and a 12-month holdout become unreliable.",
    )
    min_seasonal = st.number_input("Min history for seasonal models", 12, 120, 24, step=12)

thresholds = ValidationThresholds(min_history_months=int(min_history), min_history_for_seasonal_models=int(min_seasonal))

if st.button("Validate Data", type="primary"):
    report = validate_records(raw_df, thresholds)
    st.session_state.report = report
    st.session_state.records = None
    st.session_state.series = None
    reset_downstream()
    logger.info("Validation completed. Summary=%s", report.summary)
    if not report.has_errors:
        try:
            st.session_state.series = build_monthly_series(aggregate_passengers(report.cleaned_df))
            st.session_state.records = report.cleaned_df
        except DataIntegrityError as ex:
            st.error(str(ex))

report = st.session_state.report
if report is not None:
    render_issues(report)
    series = st.session_state.series
    if series is not None:
        c1, c2, c3 = st.columns(3)
        c1.metric("Months", len(series))
        c2.metric("First month", series.index.min().strftime("%Y-%m"))
        c3.metric("Last month", series.index.max().strftime("%Y-%m"))
        fig = px.line(
            series.reset_index(),
            x="date",
            y="passengers",
            title="Total monthly passengers",
            labels={"date": "Month", "passengers": "Passengers"},
        )
        fig.update_layout(template="plotly_white", yaxis=dict(rangemode="tozero"), margin=dict(t=40, b=20))
        st.plotly_chart(fig, use_container_width=True)
        st.success("Data validated successfully. Proceed to the EDA page.")

from __future__ import annotations

import streamlit as st

st.set_page_config(page_title="Passenger Forecasting", layout="wide")

from passenger_forecast.ui.shared import setup_page  # noqa: E402

setup_page()

from passenger_forecast.services.models import default_catalog  # noqa: E402

st.title("Passenger Forecasting")
st.caption("Monthly airport passenger forecasts with ETS and seasonal ARIMA, holdout scoring and residual diagnostics.")

st.markdown(
    """
**Workflow**

1. **Upload & Validate**: load the passenger-statistics file; activity periods are checked and monthly totals built.
2. **EDA & Stationarity**: passenger mix, seasonality, STL decomposition, KPSS/ADF tests and Box-Cox λ.
3. **Fit Models**: the ETS and ARIMA catalog is fitted on the training window; failures are reported per model.
4. **Holdout Accuracy**: RMSE, MAE and MAPE on the held-out months, with AICc ranks within each family.
5. **Residual Diagnostics**: Ljung-Box tests, residual ACF and distribution.
6. **Export**: Excel report and forecast CSV.
"""
)

st.subheader("Model Catalog")
st.dataframe(
    [{"model_id": k, "model": spec.label} for k, spec in default_catalog().items()],
    use_container_width=True,
)

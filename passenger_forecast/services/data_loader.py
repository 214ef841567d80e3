from __future__ import annotations

import io
import re
from pathlib import Path

import numpy as np
import pandas as pd

from passenger_forecast.core.errors import DataIntegrityError

# normalized raw header -> canonical column
CANONICAL_COLUMNS = {
    "activity_period": "activity_period",
    "operating_airline": "airline",
    "operating_airline_iata_code": "airline_iata",
    "published_airline": "published_airline",
    "published_airline_iata_code": "published_airline_iata",
    "geo_summary": "geo_summary",
    "geo_region": "region",
    "activity_type_code": "activity_type",
    "price_category_code": "price_category",
    "terminal": "terminal",
    "boarding_area": "boarding_area",
    "passenger_count": "passengers",
}
REQUIRED_COLUMNS = ("activity_period", "passengers")
DIMENSION_COLUMNS = [c for c in CANONICAL_COLUMNS.values() if c not in ("activity_period", "passengers")]

_PERIOD_PATTERN = r"^\d{6}$"


def read_tabular(file_name: str, file_bytes: bytes) -> pd.DataFrame:
    name = file_name.lower()
    if name.endswith(".csv"):
        df = pd.read_csv(io.BytesIO(file_bytes))
    elif name.endswith(".xlsx") or name.endswith(".xls"):
        df = pd.read_excel(io.BytesIO(file_bytes))
    else:
        raise ValueError("Unsupported file type. Please upload CSV or Excel.")
    df.columns = [str(c).strip() for c in df.columns]
    return df


def read_records_csv(path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(path)
    df.columns = [str(c).strip() for c in df.columns]
    return df


def _normalize_header(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", str(name).strip().lower()).strip("_")


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename known raw headers to canonical names and drop everything else.

    Headers are matched case-insensitively with any run of spaces or
    punctuation treated as an underscore, so ``Activity Period``,
    ``activity_period`` and ``ACTIVITY-PERIOD`` all map to ``activity_period``.
    """
    renames: dict[str, str] = {}
    for col in df.columns:
        key = _normalize_header(col)
        if key in CANONICAL_COLUMNS and CANONICAL_COLUMNS[key] not in renames.values():
            renames[col] = CANONICAL_COLUMNS[key]
    out = df[list(renames)].rename(columns=renames)
    ordered = [c for c in CANONICAL_COLUMNS.values() if c in out.columns]
    return out[ordered].copy()


def invalid_period_mask(codes: pd.Series) -> pd.Series:
    text = codes.astype(str).str.strip().str.replace(r"\.0$", "", regex=True)
    well_formed = text.str.match(_PERIOD_PATTERN)
    months = pd.to_numeric(text.str[4:6].where(well_formed), errors="coerce")
    valid = well_formed & months.between(1, 12)
    return ~valid.fillna(False).astype(bool)


def parse_activity_period(codes: pd.Series) -> pd.Series:
    """Convert YYYYMM activity-period codes to the first day of each month."""
    bad = invalid_period_mask(codes)
    if bad.any():
        examples = codes[bad].astype(str).head(5).tolist()
        raise DataIntegrityError(
            f"{int(bad.sum())} activity period code(s) are not valid YYYYMM values, e.g. {examples}"
        )
    text = codes.astype(str).str.strip().str.replace(r"\.0$", "", regex=True)
    return pd.to_datetime(text, format="%Y%m")


def build_template(start: str = "2015-01-01", months: int = 48) -> pd.DataFrame:
    """Small raw-layout sample file with a trend and yearly seasonality."""
    rng = np.random.default_rng(7)
    dates = pd.date_range(start, periods=months, freq="MS")
    airlines = [
        ("United Airlines", "UA", "Domestic", "US"),
        ("Alaska Airlines", "AS", "Domestic", "US"),
        ("British Airways", "BA", "International", "Europe"),
        ("Air Canada", "AC", "International", "Canada"),
    ]
    rows = []
    for i, d in enumerate(dates):
        seasonal = 1 + 0.2 * np.sin(2 * np.pi * (d.month - 4) / 12)
        for j, (name, code, geo, region) in enumerate(airlines):
            base = (40_000 / (j + 1)) * (1 + 0.004 * i) * seasonal
            for activity in ("Deplaned", "Enplaned"):
                rows.append(
                    {
                        "Activity Period": int(d.strftime("%Y%m")),
                        "Operating Airline": name,
                        "Operating Airline IATA Code": code,
                        "Published Airline": name,
                        "Published Airline IATA Code": code,
                        "GEO Summary": geo,
                        "GEO Region": region,
                        "Activity Type Code": activity,
                        "Price Category Code": "Other",
                        "Terminal": "International" if geo == "International" else "Terminal 3",
                        "Boarding Area": "G" if geo == "International" else "F",
                        "Passenger Count": int(base * rng.uniform(0.95, 1.05)),
                    }
                )
    return pd.DataFrame(rows)

from __future__ import annotations

import pandas as pd


def _filter_range(records: pd.DataFrame, start=None, end=None) -> pd.DataFrame:
    mask = pd.Series(True, index=records.index)
    if start is not None:
        mask &= records["date"] >= pd.Timestamp(start)
    if end is not None:
        mask &= records["date"] <= pd.Timestamp(end)
    return records.loc[mask]


def aggregate_passengers(
    records: pd.DataFrame,
    by: str | None = None,
    start=None,
    end=None,
) -> pd.DataFrame:
    """Sum passengers per month, optionally split by one categorical column.

    ``start`` and ``end`` bound the months inclusively. Groups with no rows
    after filtering simply do not appear in the output.
    """
    keys = ["date"]
    if by is not None:
        if by not in records.columns or by in ("date", "passengers"):
            raise ValueError(f"Cannot group by '{by}'; available dimensions: {list(records.columns)}")
        keys.append(by)
    work = _filter_range(records, start, end)
    out = work.groupby(keys, as_index=False, sort=True, observed=True, dropna=False)["passengers"].sum()
    out["passengers"] = out["passengers"].astype("int64")
    return out.reset_index(drop=True)


def top_share(
    records: pd.DataFrame,
    by: str = "airline",
    n: int = 10,
    start=None,
    end=None,
) -> pd.DataFrame:
    """Top-n categories by total passengers with their percentage share."""
    if by not in records.columns:
        raise ValueError(f"Cannot rank by '{by}'; available dimensions: {list(records.columns)}")
    work = _filter_range(records, start, end)
    totals = work.groupby(by, observed=True)["passengers"].sum().sort_values(ascending=False, kind="mergesort")
    grand_total = float(totals.sum())
    top = totals.head(n).reset_index()
    top["share_pct"] = top["passengers"] / grand_total * 100 if grand_total > 0 else 0.0
    top["rank"] = range(1, len(top) + 1)
    return top[["rank", by, "passengers", "share_pct"]]


def monthly_share(records: pd.DataFrame, by: str = "geo_summary") -> pd.DataFrame:
    """Month x category passenger totals with each category's share of the month."""
    agg = aggregate_passengers(records, by=by)
    wide = agg.pivot(index="date", columns=by, values="passengers").fillna(0)
    return wide.div(wide.sum(axis=1), axis=0) * 100

"""
summary.py — Grouped aggregates and exploratory statistics.

Depends only on: config.py
All functions are stateless and expect the output of cleaning.prepare_rounds().
"""
from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd
from scipy import stats

from funding_rounds.config import LETTERED_ROUNDS


_STAT_COLUMNS = ["count", "mean", "std", "sem"]


# ---------------------------------------------------------------------------
# Grouped mean / standard deviation
# ---------------------------------------------------------------------------

def grouped_stats(
    df: pd.DataFrame,
    by: str,
    value: str = "funding_total_usd",
    min_count: int = 1,
) -> pd.DataFrame:
    """
    Mean, standard deviation and standard error of ``value`` per ``by`` group.

    Parameters
    ----------
    df:
        Prepared funding table.
    by:
        Grouping column.
    value:
        Numeric column to aggregate. NaN values are ignored.
    min_count:
        Groups with fewer non-null values are dropped.

    Returns
    -------
    DataFrame with columns: [by, count, mean, std, sem], sorted by mean
    descending. std and sem are NaN for single-row groups.
    """
    if by not in df.columns or value not in df.columns:
        return pd.DataFrame(columns=[by, *_STAT_COLUMNS])

    grouped = (
        df.groupby(by, observed=True)[value]
        .agg(_STAT_COLUMNS)
        .reset_index()
    )
    grouped = grouped.loc[grouped["count"] >= min_count]
    grouped["count"] = grouped["count"].astype(int)
    return grouped.sort_values("mean", ascending=False).reset_index(drop=True)


def funding_by_category(df: pd.DataFrame, top_n: int = 15) -> pd.DataFrame:
    """Total funding stats for the ``top_n`` most common primary categories."""
    if "primary_category" not in df.columns:
        return pd.DataFrame(columns=["primary_category", *_STAT_COLUMNS])
    top = df["primary_category"].value_counts().head(top_n).index
    subset = df.loc[df["primary_category"].isin(top)]
    return grouped_stats(subset, "primary_category", "funding_total_usd")


def funding_by_status(df: pd.DataFrame) -> pd.DataFrame:
    """Total funding stats per company status (operating / acquired / closed)."""
    return grouped_stats(df, "status", "funding_total_usd")


def funding_by_year(df: pd.DataFrame, value: str = "funding_total_usd") -> pd.DataFrame:
    """
    Company count and funding stats per first-funding year.

    Returns
    -------
    DataFrame with columns: first_funding_year, companies, mean, std, median
    sorted by year.
    """
    columns = ["first_funding_year", "companies", "mean", "std", "median"]
    if "first_funding_year" not in df.columns or value not in df.columns:
        return pd.DataFrame(columns=columns)

    dated = df.loc[df["first_funding_year"].notna()]
    if dated.empty:
        return pd.DataFrame(columns=columns)

    out = (
        dated.groupby("first_funding_year")[value]
        .agg(companies="size", mean="mean", std="std", median="median")
        .reset_index()
    )
    out["first_funding_year"] = out["first_funding_year"].astype(int)
    return out.sort_values("first_funding_year").reset_index(drop=True)[columns]


def round_amount_stats(
    df: pd.DataFrame,
    rounds: Iterable[str] = LETTERED_ROUNDS,
) -> pd.DataFrame:
    """
    Per round column: how many companies raised it and the size of the raise.

    Amount stats are over companies with a positive amount only.
    """
    rows = []
    n_total = len(df)
    for r in rounds:
        if r not in df.columns:
            continue
        raised = df.loc[df[r] > 0, r]
        rows.append(
            {
                "round": r,
                "companies": int(len(raised)),
                "share": len(raised) / n_total if n_total > 0 else float("nan"),
                "mean": float(raised.mean()) if len(raised) else float("nan"),
                "std": float(raised.std()) if len(raised) > 1 else float("nan"),
                "median": float(raised.median()) if len(raised) else float("nan"),
            }
        )
    return pd.DataFrame(rows, columns=["round", "companies", "share", "mean", "std", "median"])


# ---------------------------------------------------------------------------
# Feature round vs target round
# ---------------------------------------------------------------------------

def series_b_rate_by_amount(
    df: pd.DataFrame,
    feature: str = "round_A",
    target: str = "round_B",
    n_buckets: int = 5,
) -> pd.DataFrame:
    """
    Conversion rate to the target round within quantile buckets of the
    feature-round amount.

    Only companies with a positive feature-round amount are bucketed.
    Bucket edges that coincide are merged, so fewer than ``n_buckets``
    rows may come back.

    Returns
    -------
    DataFrame with columns: bucket_index, bucket, count, conversions, rate,
    mean_amount, min_amount, max_amount
    """
    columns = [
        "bucket_index", "bucket", "count", "conversions", "rate",
        "mean_amount", "min_amount", "max_amount",
    ]
    subset = df.loc[df[feature] > 0, [feature, target]]
    if subset.empty:
        return pd.DataFrame(columns=columns)

    converted = subset[target] > 0
    n_unique = int(subset[feature].nunique())
    if n_unique < 2:
        bucket = pd.Series(f"{subset[feature].iloc[0]:,.0f}", index=subset.index)
    else:
        bucket = pd.qcut(subset[feature], q=min(n_buckets, n_unique), duplicates="drop")

    out = (
        subset.assign(bucket=bucket, converted=converted)
        .groupby("bucket", observed=True)
        .agg(
            count=("converted", "size"),
            conversions=("converted", "sum"),
            rate=("converted", "mean"),
            mean_amount=(feature, "mean"),
            min_amount=(feature, "min"),
            max_amount=(feature, "max"),
        )
        .reset_index()
    )
    out["bucket"] = out["bucket"].astype(str)
    out["conversions"] = out["conversions"].astype(int)
    out["bucket_index"] = np.arange(1, len(out) + 1)
    return out[columns]


def feature_target_correlation(
    df: pd.DataFrame,
    feature: str = "round_A",
    target: str = "round_B",
) -> dict[str, float]:
    """
    Point-biserial correlation between the feature amount and target occurrence.

    Computed over companies with a positive feature amount, on the raw
    amount (``r``) and on log1p of the amount (``r_log``).

    Returns
    -------
    dict with keys: r, p_value, r_log, p_value_log, n
    """
    subset = df.loc[df[feature] > 0]
    n = int(len(subset))
    nan = float("nan")
    result = {"r": nan, "p_value": nan, "r_log": nan, "p_value_log": nan, "n": n}

    occurred = (subset[target] > 0).astype(int)
    if n < 3 or subset[feature].nunique() < 2 or occurred.nunique() < 2:
        return result

    amounts = subset[feature].to_numpy(dtype=np.float64)
    r, p = stats.pointbiserialr(occurred, amounts)
    r_log, p_log = stats.pointbiserialr(occurred, np.log1p(amounts))
    result.update(r=float(r), p_value=float(p), r_log=float(r_log), p_value_log=float(p_log))
    return result


def describe_dataset(
    df: pd.DataFrame,
    feature: str = "round_A",
    target: str = "round_B",
) -> dict[str, float]:
    """Headline counts for the report."""
    has_feature = df[feature] > 0
    has_target = df[target] > 0
    n_feature = int(has_feature.sum())
    n_both = int((has_feature & has_target).sum())

    total = df["funding_total_usd"] if "funding_total_usd" in df.columns else pd.Series(dtype=float)
    return {
        "n_companies": int(len(df)),
        "n_feature_round": n_feature,
        "n_target_round": int(has_target.sum()),
        "n_both": n_both,
        "conversion_rate": n_both / n_feature if n_feature > 0 else float("nan"),
        "missing_funding_total": int(total.isna().sum()),
        "median_funding_total": float(total.median()) if total.notna().any() else float("nan"),
    }

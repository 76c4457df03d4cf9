"""
cleaning.py — Type coercion and derived columns for the funding export.

Depends only on: config.py
All functions return new frames; the input is never modified.
"""
from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from funding_rounds.config import LETTERED_ROUNDS, ROUND_COLUMNS


DATE_COLUMNS: tuple[str, ...] = ("founded_at", "first_funding_at", "last_funding_at")
INTEGER_COLUMNS: tuple[str, ...] = ("funding_rounds", "founded_year")
DATE_WINDOW: tuple[str, str] = ("1800-01-01", "2100-12-31")

_MISSING_TOKENS = frozenset({"", "-", "nan", "na", "n/a", "none", "null"})


# ---------------------------------------------------------------------------
# Scalar / column coercion
# ---------------------------------------------------------------------------

def parse_amount(value: object) -> float:
    """
    Parse a USD amount such as ``" 17,50,000 "`` into a float.

    Unknown markers (``-``, blanks, ``nan``) and unparseable text give NaN.
    Numbers pass through unchanged.
    """
    if value is None or isinstance(value, bool):
        return float("nan")
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)

    text = str(value).strip().replace(",", "").replace(" ", "").lstrip("$")
    if text.lower() in _MISSING_TOKENS:
        return float("nan")
    try:
        return float(text)
    except ValueError:
        return float("nan")


def coerce_amounts(
    df: pd.DataFrame,
    columns: Iterable[str],
    fill: float | None = None,
) -> pd.DataFrame:
    """Parse each present amount column to float64, optionally filling NaN."""
    df = df.copy()
    for col in columns:
        if col not in df.columns:
            continue
        parsed = df[col].map(parse_amount).astype(np.float64)
        df[col] = parsed if fill is None else parsed.fillna(fill)
    return df


def coerce_dates(df: pd.DataFrame, columns: Iterable[str] = DATE_COLUMNS) -> pd.DataFrame:
    """
    Parse ISO dates; malformed or out-of-range values become NaT.

    Dates outside ``DATE_WINDOW`` are typos in the export (e.g. ``0020-06-14``)
    and are masked whatever resolution pandas parses them at.
    """
    df = df.copy()
    lower, upper = (pd.Timestamp(bound) for bound in DATE_WINDOW)
    for col in columns:
        if col in df.columns:
            parsed = pd.to_datetime(df[col], format="%Y-%m-%d", errors="coerce")
            df[col] = parsed.where(parsed.between(lower, upper)).astype("datetime64[ns]")
    return df


def split_categories(series: pd.Series, sep: str = "|") -> pd.Series:
    """
    Split a delimited category string into a list of category names.

    ``"|Games|Mobile|"`` -> ``["Games", "Mobile"]``. Empty tokens from the
    leading/trailing separators are dropped, duplicates removed in order,
    and missing values map to an empty list.
    """

    def _split(value: object) -> list[str]:
        if not isinstance(value, str):
            return []
        tokens = (token.strip() for token in value.split(sep))
        return list(dict.fromkeys(t for t in tokens if t))

    return series.map(_split)


def _strip_text(series: pd.Series) -> pd.Series:
    stripped = series.map(lambda v: v.strip() if isinstance(v, str) else v)
    return stripped.mask(stripped == "")


# ---------------------------------------------------------------------------
# Table-level cleaning
# ---------------------------------------------------------------------------

def clean_rounds(df: pd.DataFrame) -> pd.DataFrame:
    """
    Coerce the raw export into analysis types.

    - text columns stripped, blanks become NaN
    - ``funding_total_usd`` to float (NaN when unknown)
    - per-round amount columns to float with NaN filled as 0.0
    - ``funding_rounds`` / ``founded_year`` to nullable Int64
    - founding and funding dates to datetime64
    - ``status`` to categorical
    - ``categories`` list column split from ``category_list``
    """
    df = df.copy()

    for col in df.columns:
        if df[col].dtype == object or pd.api.types.is_string_dtype(df[col]):
            df[col] = _strip_text(df[col])

    df = coerce_amounts(df, ["funding_total_usd"])
    # An absent round amount means nothing was raised in that round
    df = coerce_amounts(df, ROUND_COLUMNS, fill=0.0)

    for col in INTEGER_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce").round().astype("Int64")

    df = coerce_dates(df, DATE_COLUMNS)

    if "status" in df.columns:
        df["status"] = df["status"].astype("category")

    if "category_list" in df.columns:
        df["categories"] = split_categories(df["category_list"])
    else:
        df["categories"] = [[] for _ in range(len(df))]

    return df


def derive_columns(
    df: pd.DataFrame,
    rounds: Iterable[str] = LETTERED_ROUNDS,
) -> pd.DataFrame:
    """
    Add the summary columns used by the report.

    Expects the output of clean_rounds().
    """
    df = df.copy()
    present = [r for r in rounds if r in df.columns]

    for r in present:
        df[f"has_{r}"] = df[r].fillna(0.0) > 0

    df["lettered_rounds"] = (df[present] > 0).sum(axis=1).astype(int)
    df["lettered_total_usd"] = df[present].sum(axis=1).astype(np.float64)

    if "categories" in df.columns:
        df["n_categories"] = df["categories"].map(len).astype(int)
        first = df["categories"].map(lambda cats: cats[0] if cats else np.nan)
    else:
        df["n_categories"] = 0
        first = pd.Series(np.nan, index=df.index, dtype=object)

    if "market" in df.columns:
        first = first.fillna(df["market"])
    df["primary_category"] = first.fillna("Unknown").astype(str)

    if "first_funding_at" in df.columns:
        df["first_funding_year"] = df["first_funding_at"].dt.year.astype("Int64")
        if "founded_at" in df.columns:
            days = (df["first_funding_at"] - df["founded_at"]).dt.days.astype(np.float64)
            df["days_to_first_funding"] = days.where(days >= 0)
        if "last_funding_at" in df.columns:
            span = (df["last_funding_at"] - df["first_funding_at"]).dt.days.astype(np.float64)
            df["funding_span_days"] = span.where(span >= 0)

    return df


def prepare_rounds(df: pd.DataFrame) -> pd.DataFrame:
    """clean_rounds() followed by derive_columns()."""
    return derive_columns(clean_rounds(df))

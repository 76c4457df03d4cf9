"""Tests for funding_rounds.summary — grouped aggregates and statistics."""
from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest

from funding_rounds.summary import (
    describe_dataset,
    feature_target_correlation,
    funding_by_category,
    funding_by_status,
    funding_by_year,
    grouped_stats,
    round_amount_stats,
    series_b_rate_by_amount,
)


@pytest.fixture
def small_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "sector": ["a", "a", "a", "b", "b", "c"],
            "funding_total_usd": [10.0, 20.0, 30.0, 100.0, np.nan, 5.0],
            "round_A": [1.0, 2.0, 3.0, 4.0, 0.0, 0.0],
            "round_B": [0.0, 0.0, 5.0, 6.0, 0.0, 1.0],
        }
    )


class TestGroupedStats:
    def test_columns_and_order(self, small_frame):
        out = grouped_stats(small_frame, "sector")
        assert list(out.columns) == ["sector", "count", "mean", "std", "sem"]
        # sorted by mean descending
        assert out["sector"].tolist() == ["b", "a", "c"]

    def test_values(self, small_frame):
        out = grouped_stats(small_frame, "sector").set_index("sector")
        assert out.loc["a", "count"] == 3
        assert out.loc["a", "mean"] == pytest.approx(20.0)
        assert out.loc["a", "std"] == pytest.approx(10.0)
        assert out.loc["a", "sem"] == pytest.approx(10.0 / np.sqrt(3))

    def test_single_row_group_has_nan_std(self, small_frame):
        out = grouped_stats(small_frame, "sector").set_index("sector")
        # group b has one non-null value
        assert out.loc["b", "count"] == 1
        assert math.isnan(out.loc["b", "std"])
        assert math.isnan(out.loc["c", "sem"])

    def test_min_count(self, small_frame):
        out = grouped_stats(small_frame, "sector", min_count=2)
        assert out["sector"].tolist() == ["a"]

    def test_missing_column_gives_empty(self, small_frame):
        out = grouped_stats(small_frame, "nope")
        assert out.empty
        assert list(out.columns) == ["nope", "count", "mean", "std", "sem"]


class TestReportTables:
    def test_funding_by_category_top_n(self, prepared):
        out = funding_by_category(prepared, top_n=3)
        assert len(out) <= 3
        top = prepared["primary_category"].value_counts().head(3).index
        assert set(out["primary_category"]).issubset(set(top))

    def test_funding_by_status(self, prepared):
        out = funding_by_status(prepared)
        assert set(out["status"].astype(str)) == {"operating", "acquired", "closed"}
        assert (out["count"] > 0).all()

    def test_funding_by_year_sorted(self, prepared):
        out = funding_by_year(prepared)
        assert list(out.columns) == ["first_funding_year", "companies", "mean", "std", "median"]
        assert out["first_funding_year"].is_monotonic_increasing
        assert out["companies"].sum() == len(prepared)

    def test_funding_by_year_without_dates(self, small_frame):
        assert funding_by_year(small_frame).empty

    def test_round_amount_stats(self, small_frame):
        out = round_amount_stats(small_frame, ["round_A", "round_B", "round_Z"]).set_index("round")
        assert list(out.index) == ["round_A", "round_B"]
        assert out.loc["round_A", "companies"] == 4
        assert out.loc["round_A", "share"] == pytest.approx(4 / 6)
        assert out.loc["round_A", "mean"] == pytest.approx(2.5)
        assert out.loc["round_B", "median"] == pytest.approx(5.0)


class TestConversionByAmount:
    def test_counts_add_up(self, small_frame):
        out = series_b_rate_by_amount(small_frame, n_buckets=2)
        assert out["count"].sum() == 4
        assert out["conversions"].sum() == 2
        assert out["bucket_index"].tolist() == list(range(1, len(out) + 1))

    def test_rate_is_conversions_over_count(self, prepared):
        out = series_b_rate_by_amount(prepared, n_buckets=5)
        assert len(out) == 5
        np.testing.assert_allclose(out["rate"], out["conversions"] / out["count"])
        assert out["min_amount"].is_monotonic_increasing

    def test_larger_rounds_convert_more(self, prepared):
        out = series_b_rate_by_amount(prepared, n_buckets=3)
        assert out["rate"].iloc[-1] > out["rate"].iloc[0]

    def test_constant_amount_single_bucket(self):
        df = pd.DataFrame({"round_A": [5.0, 5.0, 5.0], "round_B": [1.0, 0.0, 0.0]})
        out = series_b_rate_by_amount(df)
        assert len(out) == 1
        assert out["rate"].iloc[0] == pytest.approx(1 / 3)

    def test_no_feature_round_gives_empty(self):
        df = pd.DataFrame({"round_A": [0.0, 0.0], "round_B": [1.0, 0.0]})
        assert series_b_rate_by_amount(df).empty


class TestCorrelation:
    def test_positive_relationship(self, prepared):
        result = feature_target_correlation(prepared)
        assert result["n"] == int((prepared["round_A"] > 0).sum())
        assert result["r"] > 0
        assert result["r_log"] > 0
        assert 0 <= result["p_value"] <= 1

    def test_too_few_rows_is_nan(self):
        df = pd.DataFrame({"round_A": [1.0, 2.0], "round_B": [0.0, 1.0]})
        result = feature_target_correlation(df)
        assert result["n"] == 2
        assert math.isnan(result["r"])

    def test_single_outcome_is_nan(self):
        df = pd.DataFrame({"round_A": [1.0, 2.0, 3.0, 4.0], "round_B": [0.0] * 4})
        assert math.isnan(feature_target_correlation(df)["r_log"])


class TestDescribeDataset:
    def test_counts(self, small_frame):
        out = describe_dataset(small_frame)
        assert out["n_companies"] == 6
        assert out["n_feature_round"] == 4
        assert out["n_target_round"] == 3
        assert out["n_both"] == 2
        assert out["conversion_rate"] == pytest.approx(0.5)
        assert out["missing_funding_total"] == 1
        assert out["median_funding_total"] == pytest.approx(20.0)

    def test_synthetic_export(self, prepared):
        out = describe_dataset(prepared)
        # every 25th synthetic company has an unknown total
        assert out["missing_funding_total"] == 12
        assert 0 < out["conversion_rate"] < 1

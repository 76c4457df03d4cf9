"""
conftest.py — Shared pytest fixtures for funding_rounds test suite.
"""
from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from funding_rounds.cleaning import prepare_rounds
from funding_rounds.config import AnalysisConfig
from funding_rounds.logs import PACKAGE_LOGGER
from funding_rounds.model import SeriesBModel


_CATEGORIES = ["Software", "Biotechnology", "Mobile", "E-Commerce", "Games", "Health Care"]
_STATUSES = ["operating", "acquired", "closed"]
_OTHER_ROUNDS = [
    "venture", "equity_crowdfunding", "undisclosed", "convertible_note",
    "debt_financing", "angel", "grant", "private_equity", "post_ipo_equity",
    "post_ipo_debt", "secondary_market", "product_crowdfunding",
    "round_C", "round_D", "round_E", "round_F", "round_G", "round_H",
]


def make_raw_export(n: int = 300, seed: int = 7) -> pd.DataFrame:
    """
    Synthetic export in the raw text layout: padded headers and market
    names, comma-formatted totals, ``-`` for unknown totals.

    Larger Series A rounds make a Series B more likely.
    Every 25th company has an unknown total.
    """
    rng = np.random.default_rng(seed)
    rows = []
    for i in range(n):
        seed_amount = float(np.round(rng.lognormal(13.0, 0.6), -3)) if rng.uniform() < 0.5 else 0.0
        round_a = 0.0
        round_b = 0.0
        if rng.uniform() < 0.6:
            round_a = float(np.round(rng.lognormal(15.5, 0.8), -3))
            p_b = 1.0 / (1.0 + np.exp(-2.0 * (np.log(round_a) - 15.5)))
            if rng.uniform() < p_b:
                round_b = float(np.round(round_a * rng.uniform(1.5, 3.0), -3))

        n_cats = int(rng.integers(1, 4))
        cats = list(rng.choice(_CATEGORIES, size=n_cats, replace=False))
        founded = int(rng.integers(2000, 2012))
        total = seed_amount + round_a + round_b

        row = {
            "permalink": f"/organization/company-{i}",
            "name": f"Company {i}",
            "homepage_url": f"http://company{i}.com",
            "category_list": "|" + "|".join(cats) + "|",
            " market ": f" {cats[0]} ",
            " funding_total_usd ": " -   " if i % 25 == 0 else f" {total:,.0f} ",
            "status": _STATUSES[i % 3],
            "country_code": "USA",
            "state_code": "CA",
            "region": "SF Bay Area",
            "city": "San Francisco",
            "funding_rounds": str(1 + int(round_a > 0) + int(round_b > 0)),
            "founded_at": f"{founded}-01-15",
            "founded_month": f"{founded}-01",
            "founded_quarter": f"{founded}-Q1",
            "founded_year": str(founded),
            "first_funding_at": f"{founded + 1}-06-01",
            "last_funding_at": f"{founded + 3}-06-01",
            "seed": f"{seed_amount:.0f}",
            "round_A": f"{round_a:.0f}",
            "round_B": f"{round_b:.0f}",
        }
        for col in _OTHER_ROUNDS:
            row[col] = "0"
        rows.append(row)
    return pd.DataFrame(rows)


@pytest.fixture(scope="session")
def raw_export() -> pd.DataFrame:
    """300-company synthetic export with padded headers."""
    df = make_raw_export()
    df.columns = [c.strip() for c in df.columns]
    return df


@pytest.fixture(scope="session")
def prepared(raw_export: pd.DataFrame) -> pd.DataFrame:
    """Cleaned export with derived columns."""
    return prepare_rounds(raw_export)


@pytest.fixture
def raw_small() -> pd.DataFrame:
    """Four hand-written records with known cleaned values."""
    return pd.DataFrame(
        {
            "name": ["Alpha", "Beta", "Gamma", "Delta"],
            "category_list": ["|Software|Mobile|", "|Games|", "", "|Health Care|Health Care|"],
            "market": [" Software ", " Games ", " Biotechnology ", ""],
            "funding_total_usd": [" 17,50,000 ", " 4,000,000 ", " -   ", "250000"],
            "status": ["operating", "acquired", "closed", ""],
            "funding_rounds": ["2", "3", "1", "1"],
            "founded_at": ["2010-01-01", "0020-06-14", "2012-03-01", ""],
            "first_funding_at": ["2011-01-01", "2013-05-01", "2011-03-01", "2014-01-01"],
            "last_funding_at": ["2012-01-01", "2014-05-01", "2011-03-01", "2014-01-01"],
            "founded_year": ["2010", "", "2012", ""],
            "seed": ["500000", "", "0", "250000"],
            "round_A": ["1250000", "1000000", "", "0"],
            "round_B": ["0", "3000000", "", "0"],
        }
    )


@pytest.fixture
def fast_config(tmp_path: Path) -> AnalysisConfig:
    """Small forest and few folds so model tests stay quick."""
    return AnalysisConfig(
        output_dir=tmp_path / "report",
        n_estimators=25,
        cv_folds=3,
        random_state=0,
    )


@pytest.fixture
def export_csv(tmp_path: Path) -> Path:
    """The synthetic export written to disk with its original padded headers."""
    path = tmp_path / "investments_VC.csv"
    make_raw_export().to_csv(path, index=False, encoding="latin-1")
    return path


@pytest.fixture
def raw_export_padded() -> pd.DataFrame:
    """Synthetic export with the original padded headers left in place."""
    return make_raw_export()


@pytest.fixture
def fitted(prepared: pd.DataFrame, fast_config: AnalysisConfig) -> SeriesBModel:
    return SeriesBModel(fast_config).prepare(prepared).split().fit()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers the CLI installs so they don't outlive captured stdout."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)

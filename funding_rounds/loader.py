"""
loader.py — Read the funding-round CSV export into a DataFrame.

Depends only on: config.py
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Union

import pandas as pd

from funding_rounds.config import REQUIRED_COLUMNS

logger = logging.getLogger(__name__)


class SchemaError(ValueError):
    """Raised when the export lacks columns the report needs."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = sorted(missing)
        super().__init__(f"Missing required columns: {', '.join(self.missing)}")


def check_columns(df: pd.DataFrame, required: Iterable[str] = REQUIRED_COLUMNS) -> None:
    """Raise SchemaError if any required column is absent."""
    missing = set(required) - set(df.columns)
    if missing:
        raise SchemaError(missing)


def load_rounds(
    path: Union[str, Path],
    encoding: str = "latin-1",
    required: Iterable[str] = REQUIRED_COLUMNS,
) -> pd.DataFrame:
    """
    Load the raw export with every column kept as text.

    Type coercion is left to cleaning.clean_rounds so that the raw
    markers (``-`` for unknown amounts, padded market names) survive
    until they are handled explicitly.

    Parameters
    ----------
    path:
        CSV file location.
    encoding:
        File encoding. The public export is Latin-1, not UTF-8.
    required:
        Columns that must be present after header whitespace is stripped.

    Returns
    -------
    DataFrame of str values ("" for empty cells).

    Raises
    ------
    FileNotFoundError
        If the CSV doesn't exist.
    SchemaError
        If a required column is missing.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")

    df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding=encoding)

    # The export pads some headers, e.g. " market " and " funding_total_usd "
    df.columns = [str(c).strip() for c in df.columns]
    check_columns(df, required)

    # Trailing all-blank lines come through as rows of empty strings
    blank = (df == "").all(axis=1)
    if blank.any():
        df = df.loc[~blank].reset_index(drop=True)

    logger.info("Loaded %d records with %d columns from %s", len(df), df.shape[1], path)
    return df

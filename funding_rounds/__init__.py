"""
funding_rounds — Does the Series A amount predict a Series B?

Public API surface:

    from funding_rounds import AnalysisConfig, FundingReport
    from funding_rounds import load_rounds, prepare_rounds
    from funding_rounds import SeriesBModel
    from funding_rounds import summary
    from funding_rounds import visualization as viz
"""
from __future__ import annotations

# Configuration and loading
from funding_rounds.config import (
    LETTERED_ROUNDS,
    REQUIRED_COLUMNS,
    ROUND_COLUMNS,
    AnalysisConfig,
)
from funding_rounds.loader import SchemaError, load_rounds
from funding_rounds.cleaning import clean_rounds, derive_columns, prepare_rounds
from funding_rounds.model import SeriesBModel
from funding_rounds.report import FundingReport, ReportResults

# Submodules available for direct import
from funding_rounds import summary
from funding_rounds import visualization

__version__ = "0.1.0"

__all__ = [
    # Config
    "AnalysisConfig",
    "LETTERED_ROUNDS",
    "REQUIRED_COLUMNS",
    "ROUND_COLUMNS",
    # Loading and cleaning
    "SchemaError",
    "load_rounds",
    "clean_rounds",
    "derive_columns",
    "prepare_rounds",
    # Model
    "SeriesBModel",
    # Report
    "FundingReport",
    "ReportResults",
    # Submodules
    "summary",
    "visualization",
    # Version
    "__version__",
]

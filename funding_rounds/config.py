"""
config.py — Run configuration for the Series-B report.

No imports from within this library.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union


# Lettered venture rounds in the Crunchbase investments export
LETTERED_ROUNDS: tuple[str, ...] = (
    "round_A",
    "round_B",
    "round_C",
    "round_D",
    "round_E",
    "round_F",
    "round_G",
    "round_H",
)

# Every per-round-type amount column in the export
ROUND_COLUMNS: tuple[str, ...] = (
    "seed",
    "venture",
    "equity_crowdfunding",
    "undisclosed",
    "convertible_note",
    "debt_financing",
    "angel",
    "grant",
    "private_equity",
    "post_ipo_equity",
    "post_ipo_debt",
    "secondary_market",
    "product_crowdfunding",
) + LETTERED_ROUNDS

REQUIRED_COLUMNS: tuple[str, ...] = ("name", "funding_total_usd", "round_A", "round_B")


@dataclass
class AnalysisConfig:
    """Configuration for one run of the funding report."""

    csv_path: Optional[Union[str, Path]] = None
    output_dir: Union[str, Path] = "report"
    feature_round: str = "round_A"
    target_round: str = "round_B"
    extra_features: tuple[str, ...] = field(default_factory=tuple)
    log_transform: bool = True
    require_feature_round: bool = True  # model only companies that raised the feature round
    test_size: float = 0.3
    random_state: int = 42
    n_estimators: int = 500
    max_depth: Optional[int] = None
    min_samples_leaf: int = 1
    class_weight: Optional[str] = None
    cv_folds: int = 10
    top_n_categories: int = 15
    n_amount_buckets: int = 5
    encoding: str = "latin-1"

    @property
    def target_column(self) -> str:
        return f"has_{self.target_round}"

    @property
    def feature_columns(self) -> list[str]:
        return [self.feature_round, *self.extra_features]

    def validate(self) -> "AnalysisConfig":
        """
        Check value ranges.

        Returns
        -------
        self (for chaining)

        Raises
        ------
        ValueError
            If any setting is out of range.
        """
        if not 0.0 < self.test_size < 1.0:
            raise ValueError(f"test_size must be in (0, 1), got {self.test_size}")
        if self.cv_folds < 2:
            raise ValueError(f"cv_folds must be at least 2, got {self.cv_folds}")
        if self.n_estimators < 1:
            raise ValueError("n_estimators must be positive")
        if self.min_samples_leaf < 1:
            raise ValueError("min_samples_leaf must be positive")
        if self.n_amount_buckets < 1:
            raise ValueError("n_amount_buckets must be positive")
        if self.top_n_categories < 1:
            raise ValueError("top_n_categories must be positive")
        if self.feature_round == self.target_round:
            raise ValueError("feature_round and target_round must differ")
        if self.target_round in self.extra_features:
            raise ValueError("target_round cannot also be a feature")
        return self

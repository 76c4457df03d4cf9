"""
model.py — Random-forest test of whether the Series-A amount predicts a Series B.

Depends on: config.py, loader.py
"""
from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from sklearn import metrics, model_selection
from sklearn.ensemble import RandomForestClassifier

from funding_rounds.config import ROUND_COLUMNS, AnalysisConfig
from funding_rounds.loader import SchemaError

logger = logging.getLogger(__name__)

# Columns holding USD amounts; these get log1p when log_transform is on
AMOUNT_COLUMNS = frozenset(ROUND_COLUMNS) | {"funding_total_usd", "lettered_total_usd"}


class SeriesBModel:
    """
    Binary classifier: does a company that raised the feature round go on to
    raise the target round?

    Steps run in order and support method chaining:

        model = (
            SeriesBModel(config)
            .prepare(prepared_df)
            .split()
            .fit()
        )
        model.confusion_matrix()
        model.cross_validate()

    Calling a step before its prerequisite raises RuntimeError.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = (config or AnalysisConfig()).validate()
        self._X: Optional[pd.DataFrame] = None
        self._y: Optional[pd.Series] = None
        self._X_train: Optional[pd.DataFrame] = None
        self._X_test: Optional[pd.DataFrame] = None
        self._y_train: Optional[pd.Series] = None
        self._y_test: Optional[pd.Series] = None
        self._estimator: Optional[RandomForestClassifier] = None
        self._transformed: list[str] = []
        self._cv_results: Optional[dict[str, object]] = None

    # ------------------------------------------------------------------
    # Pipeline steps (method chaining)
    # ------------------------------------------------------------------

    def prepare(self, df: pd.DataFrame) -> "SeriesBModel":
        """
        Build the feature matrix and target vector.

        Parameters
        ----------
        df:
            Output of cleaning.prepare_rounds().

        Returns
        -------
        self (for chaining)

        Raises
        ------
        SchemaError
            If a feature or the target round column is missing.
        ValueError
            If the population has a single class, its smaller class is
            too small for stratified cross-validation, or test_size leaves
            fewer train or test rows than there are classes.
        """
        cfg = self.config
        missing = [c for c in [*cfg.feature_columns, cfg.target_round] if c not in df.columns]
        if missing:
            raise SchemaError(missing)

        data = df
        if cfg.require_feature_round:
            data = data.loc[data[cfg.feature_round] > 0]

        X = data[cfg.feature_columns].apply(pd.to_numeric, errors="coerce").astype(np.float64)
        keep = X.notna().all(axis=1)
        X = X.loc[keep].copy()
        y = (data.loc[keep, cfg.target_round] > 0).astype(int).rename(cfg.target_column)

        self._transformed = []
        if cfg.log_transform:
            renames = {}
            for col in X.columns:
                if col in AMOUNT_COLUMNS:
                    X[col] = np.log1p(X[col].clip(lower=0.0))
                    renames[col] = f"log_{col}"
            X = X.rename(columns=renames)
            self._transformed = list(renames.values())

        counts = y.value_counts()
        if len(counts) < 2:
            raise ValueError(
                f"Population of {len(y)} rows has only one outcome for {cfg.target_round}; "
                "cannot fit a classifier"
            )
        if int(counts.min()) < cfg.cv_folds:
            raise ValueError(
                f"Smallest class has {int(counts.min())} rows; "
                f"need at least cv_folds={cfg.cv_folds}"
            )
        n_test = math.ceil(cfg.test_size * len(y))
        n_train = len(y) - n_test
        if min(n_test, n_train) < len(counts):
            raise ValueError(
                f"test_size={cfg.test_size} splits {len(y)} rows into {n_train} train / "
                f"{n_test} test; each side needs at least one row per class"
            )

        self._X, self._y = X, y
        self._X_train = self._X_test = self._y_train = self._y_test = None
        self._estimator = None
        self._cv_results = None

        logger.info(
            "Model population: %d companies, %.1f%% raised %s",
            len(y), 100.0 * y.mean(), cfg.target_round,
        )
        return self

    def split(self) -> "SeriesBModel":
        """Stratified train/test partition; class proportions are preserved."""
        self._require(self._X is not None, "prepare")
        cfg = self.config
        (
            self._X_train,
            self._X_test,
            self._y_train,
            self._y_test,
        ) = model_selection.train_test_split(
            self._X,
            self._y,
            test_size=cfg.test_size,
            stratify=self._y,
            random_state=cfg.random_state,
        )
        self._estimator = None
        logger.info("Split: %d train / %d test", len(self._y_train), len(self._y_test))
        return self

    def fit(self) -> "SeriesBModel":
        """Fit the random forest on the training partition."""
        self._require(self._X_train is not None, "split")
        self._estimator = self._build_estimator(oob_score=True)
        self._estimator.fit(self._X_train, self._y_train)
        logger.info(
            "Fitted random forest: %d trees, OOB error %.3f",
            self.config.n_estimators, 1.0 - self._estimator.oob_score_,
        )
        return self

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def confusion_matrix(self) -> pd.DataFrame:
        """Confusion matrix on the test partition (rows actual, columns predicted)."""
        self._require_fitted()
        predicted = self._estimator.predict(self._X_test)
        cm = metrics.confusion_matrix(self._y_test, predicted, labels=[0, 1])
        return pd.DataFrame(
            cm,
            index=["actual_0", "actual_1"],
            columns=["predicted_0", "predicted_1"],
        )

    def evaluate(self) -> dict[str, float]:
        """
        Test-partition metrics.

        Returns
        -------
        dict with keys: accuracy, error_rate, precision, recall, f1, auc,
        oob_error, baseline_error (always predicting the majority class)
        """
        self._require_fitted()
        y_true = self._y_test
        predicted = self._estimator.predict(self._X_test)
        proba = self._positive_proba(self._X_test)

        accuracy = float(metrics.accuracy_score(y_true, predicted))
        positive_rate = float(y_true.mean())
        if y_true.nunique() > 1:
            auc = float(metrics.roc_auc_score(y_true, proba))
        else:
            auc = float("nan")

        return {
            "accuracy": accuracy,
            "error_rate": 1.0 - accuracy,
            "precision": float(metrics.precision_score(y_true, predicted, zero_division=0)),
            "recall": float(metrics.recall_score(y_true, predicted, zero_division=0)),
            "f1": float(metrics.f1_score(y_true, predicted, zero_division=0)),
            "auc": auc,
            "oob_error": float(1.0 - self._estimator.oob_score_),
            "baseline_error": min(positive_rate, 1.0 - positive_rate),
        }

    def cross_validate(self) -> dict[str, object]:
        """
        Stratified k-fold cross-validated error rate and AUC over the whole population.

        Returns
        -------
        dict with keys:
            cv_error_mean, cv_error_std, cv_auc_mean, cv_auc_std : float
            cv_errors, cv_aucs : ndarray of per-fold values
        """
        self._require(self._X is not None, "prepare")
        cfg = self.config
        folds = model_selection.StratifiedKFold(
            n_splits=cfg.cv_folds, shuffle=True, random_state=cfg.random_state
        )
        scores = model_selection.cross_validate(
            self._build_estimator(oob_score=False),
            self._X,
            self._y,
            cv=folds,
            scoring=["accuracy", "roc_auc"],
        )
        errors = 1.0 - scores["test_accuracy"]
        aucs = scores["test_roc_auc"]
        self._cv_results = {
            "cv_error_mean": float(np.mean(errors)),
            "cv_error_std": float(np.std(errors)),
            "cv_auc_mean": float(np.mean(aucs)),
            "cv_auc_std": float(np.std(aucs)),
            "cv_errors": errors,
            "cv_aucs": aucs,
        }
        logger.info(
            "%d-fold CV: error %.3f (+/- %.3f), AUC %.3f (+/- %.3f)",
            cfg.cv_folds,
            self._cv_results["cv_error_mean"], self._cv_results["cv_error_std"],
            self._cv_results["cv_auc_mean"], self._cv_results["cv_auc_std"],
        )
        return self._cv_results

    def roc_curve(self) -> pd.DataFrame:
        """ROC curve points on the test partition: fpr, tpr, threshold."""
        self._require_fitted()
        fpr, tpr, thresholds = metrics.roc_curve(self._y_test, self._positive_proba(self._X_test))
        return pd.DataFrame({"fpr": fpr, "tpr": tpr, "threshold": thresholds})

    def feature_importances(self) -> pd.DataFrame:
        """Impurity-based importances, largest first."""
        self._require_fitted()
        return (
            pd.DataFrame(
                {
                    "feature": list(self._X.columns),
                    "importance": self._estimator.feature_importances_,
                }
            )
            .sort_values("importance", ascending=False)
            .reset_index(drop=True)
        )

    def predict_proba_curve(self, n_points: int = 100) -> pd.DataFrame:
        """
        Predicted target-round probability across the first feature's range.

        Other features are held at their median. ``amount`` is the feature on
        its original scale (log1p undone).

        Returns
        -------
        DataFrame with columns: feature_value, amount, probability
        """
        self._require_fitted()
        first = self._X.columns[0]
        grid = np.linspace(self._X[first].min(), self._X[first].max(), n_points)
        frame = pd.DataFrame(
            {col: np.full(n_points, float(self._X[col].median())) for col in self._X.columns}
        )
        frame[first] = grid
        amount = np.expm1(grid) if first in self._transformed else grid
        return pd.DataFrame(
            {
                "feature_value": grid,
                "amount": amount,
                "probability": self._positive_proba(frame),
            }
        )

    def summary(self) -> dict[str, object]:
        """Flat dict of population sizes, test metrics and CV metrics (if run)."""
        self._require_fitted()
        out: dict[str, object] = {
            "feature_round": self.config.feature_round,
            "target_round": self.config.target_round,
            "features": ", ".join(self._X.columns),
            "n_population": int(len(self._y)),
            "n_train": int(len(self._y_train)),
            "n_test": int(len(self._y_test)),
            "positive_rate": float(self._y.mean()),
        }
        out.update(self.evaluate())
        if self._cv_results is not None:
            out.update(
                {k: v for k, v in self._cv_results.items() if not isinstance(v, np.ndarray)}
            )
        return out

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def X(self) -> Optional[pd.DataFrame]:
        return self._X

    @property
    def y(self) -> Optional[pd.Series]:
        return self._y

    @property
    def train_test(self) -> tuple[pd.DataFrame, pd.DataFrame, pd.Series, pd.Series]:
        self._require(self._X_train is not None, "split")
        return self._X_train, self._X_test, self._y_train, self._y_test

    @property
    def estimator(self) -> Optional[RandomForestClassifier]:
        return self._estimator

    @property
    def is_fitted(self) -> bool:
        return self._estimator is not None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_estimator(self, oob_score: bool) -> RandomForestClassifier:
        cfg = self.config
        return RandomForestClassifier(
            n_estimators=cfg.n_estimators,
            max_depth=cfg.max_depth,
            min_samples_leaf=cfg.min_samples_leaf,
            class_weight=cfg.class_weight,
            oob_score=oob_score,
            random_state=cfg.random_state,
            n_jobs=-1,
        )

    def _positive_proba(self, X: pd.DataFrame) -> np.ndarray:
        classes = list(self._estimator.classes_)
        return self._estimator.predict_proba(X)[:, classes.index(1)]

    def _require_fitted(self) -> None:
        self._require(self._estimator is not None, "fit")

    @staticmethod
    def _require(condition: bool, step: str) -> None:
        if not condition:
            raise RuntimeError(f"Call {step}() first")

    def __repr__(self) -> str:
        n = 0 if self._y is None else len(self._y)
        return (
            f"SeriesBModel(feature={self.config.feature_round!r}, "
            f"target={self.config.target_round!r}, n_population={n}, "
            f"fitted={self.is_fitted})"
        )

"""
report.py — Orchestration layer: load, clean, summarise, model, write.

Depends on: loader.py, cleaning.py, summary.py, model.py, visualization.py
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from funding_rounds import visualization as viz
from funding_rounds.cleaning import prepare_rounds
from funding_rounds.config import LETTERED_ROUNDS, REQUIRED_COLUMNS, AnalysisConfig
from funding_rounds.loader import check_columns, load_rounds
from funding_rounds.model import SeriesBModel
from funding_rounds.summary import (
    describe_dataset,
    feature_target_correlation,
    funding_by_category,
    funding_by_status,
    funding_by_year,
    round_amount_stats,
    series_b_rate_by_amount,
)

logger = logging.getLogger(__name__)

# Tables whose row labels carry meaning and are written with the index
_INDEXED_TABLES = frozenset({"confusion_matrix"})


def _json_safe(value: object) -> object:
    """NumPy scalars and arrays to builtins; NaN and inf to None."""
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, np.ndarray)):
        return [_json_safe(v) for v in value]
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class ReportResults:
    """Everything one report run produced."""

    config: AnalysisConfig
    data: pd.DataFrame
    tables: dict[str, pd.DataFrame] = field(default_factory=dict)
    statistics: dict[str, dict[str, float]] = field(default_factory=dict)
    model_summary: dict[str, object] = field(default_factory=dict)
    figures: dict[str, go.Figure] = field(default_factory=dict)

    def summary(self) -> dict[str, object]:
        """Flat dict of dataset statistics, correlation and model metrics."""
        out: dict[str, object] = {}
        out.update(self.statistics.get("dataset", {}))
        out.update({f"corr_{k}": v for k, v in self.statistics.get("correlation", {}).items()})
        out.update(self.model_summary)
        return out

    def to_markdown(self) -> str:
        """Human-readable text report."""
        cfg = self.config
        s = self.summary()
        feature, target = cfg.feature_round, cfg.target_round

        lines = [
            f"# Does the {feature} amount predict a {target}?",
            "",
            "## Dataset",
            "",
            f"- Companies: {s.get('n_companies', 0):,}",
            f"- Raised {feature}: {s.get('n_feature_round', 0):,}",
            f"- Raised {target}: {s.get('n_target_round', 0):,}",
            f"- Raised both: {s.get('n_both', 0):,} "
            f"(conversion {s.get('conversion_rate', float('nan')):.1%})",
            f"- Unknown total funding: {s.get('missing_funding_total', 0):,}",
            "",
            "## Correlation",
            "",
            f"- Point-biserial r (amount): {s.get('corr_r', float('nan')):.3f} "
            f"(p = {s.get('corr_p_value', float('nan')):.3g})",
            f"- Point-biserial r (log amount): {s.get('corr_r_log', float('nan')):.3f} "
            f"(p = {s.get('corr_p_value_log', float('nan')):.3g})",
            "",
        ]

        if self.model_summary:
            lines += [
                "## Random forest",
                "",
                f"- Features: {s['features']}",
                f"- Population: {s['n_population']:,} "
                f"({s['n_train']:,} train / {s['n_test']:,} test), "
                f"positive rate {s['positive_rate']:.1%}",
                f"- Test error: {s['error_rate']:.3f} "
                f"(majority-class baseline {s['baseline_error']:.3f})",
                f"- Test AUC: {s['auc']:.3f}",
                f"- OOB error: {s['oob_error']:.3f}",
            ]
            if "cv_error_mean" in s:
                lines += [
                    f"- {cfg.cv_folds}-fold CV error: {s['cv_error_mean']:.3f} "
                    f"(± {s['cv_error_std']:.3f})",
                    f"- {cfg.cv_folds}-fold CV AUC: {s['cv_auc_mean']:.3f} "
                    f"(± {s['cv_auc_std']:.3f})",
                ]
            lines.append("")

        for name in ("confusion_matrix", "conversion_by_amount", "funding_by_status"):
            table = self.tables.get(name)
            if table is None or table.empty:
                continue
            lines += [
                f"## {name.replace('_', ' ').capitalize()}",
                "",
                "```",
                table.to_string(index=name in _INDEXED_TABLES),
                "```",
                "",
            ]
        return "\n".join(lines)

    def write(self, output_dir: Optional[Union[str, Path]] = None) -> list[Path]:
        """
        Write tables (CSV), figures (standalone HTML), summary.json and report.md.

        Returns
        -------
        list of written paths
        """
        out = Path(output_dir if output_dir is not None else self.config.output_dir)
        out.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []

        for name, table in self.tables.items():
            path = out / f"{name}.csv"
            table.to_csv(path, index=name in _INDEXED_TABLES)
            written.append(path)

        for name, fig in self.figures.items():
            path = out / f"{name}.html"
            fig.write_html(str(path), include_plotlyjs="cdn")
            written.append(path)

        summary_path = out / "summary.json"
        with summary_path.open("w", encoding="utf-8") as fh:
            json.dump(_json_safe(self.summary()), fh, indent=2, allow_nan=False)
        written.append(summary_path)

        report_path = out / "report.md"
        report_path.write_text(self.to_markdown(), encoding="utf-8")
        written.append(report_path)

        logger.info("Wrote %d files to %s", len(written), out)
        return written


# ---------------------------------------------------------------------------
# FundingReport
# ---------------------------------------------------------------------------

class FundingReport:
    """
    Runs the whole analysis once, top to bottom.

    Usage:
        results = FundingReport(AnalysisConfig(csv_path="investments.csv")).run()
        results.write("report/")
    """

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = (config or AnalysisConfig()).validate()

    def run(self, df: Optional[pd.DataFrame] = None) -> ReportResults:
        """
        Execute every step.

        Parameters
        ----------
        df:
            Raw export already in memory. If None, config.csv_path is loaded.

        Raises
        ------
        ValueError
            If neither a frame nor csv_path is given, or the data cannot
            support the model (see SeriesBModel.prepare).
        """
        cfg = self.config
        required = [*REQUIRED_COLUMNS, cfg.feature_round, cfg.target_round]
        if df is None:
            if cfg.csv_path is None:
                raise ValueError("No input: pass a DataFrame or set csv_path")
            df = load_rounds(cfg.csv_path, encoding=cfg.encoding, required=required)
        else:
            df = df.rename(columns=lambda c: str(c).strip())
            check_columns(df, required)

        logger.info("Cleaning %d records", len(df))
        data = prepare_rounds(df)

        feature, target = cfg.feature_round, cfg.target_round
        logger.info("Computing summaries")
        by_category = funding_by_category(data, top_n=cfg.top_n_categories)
        by_status = funding_by_status(data)
        by_year = funding_by_year(data)
        conversion = series_b_rate_by_amount(data, feature, target, n_buckets=cfg.n_amount_buckets)
        tables: dict[str, pd.DataFrame] = {
            "funding_by_category": by_category,
            "funding_by_status": by_status,
            "funding_by_year": by_year,
            "round_amounts": round_amount_stats(data, LETTERED_ROUNDS),
            "conversion_by_amount": conversion,
        }
        statistics = {
            "dataset": describe_dataset(data, feature, target),
            "correlation": feature_target_correlation(data, feature, target),
        }

        logger.info("Fitting random forest: %s -> %s", ", ".join(cfg.feature_columns), target)
        model = SeriesBModel(cfg).prepare(data).split().fit()
        evaluation = model.evaluate()
        model.cross_validate()

        confusion = model.confusion_matrix()
        roc = model.roc_curve()
        importances = model.feature_importances()
        curve = model.predict_proba_curve()
        tables.update(
            {
                "confusion_matrix": confusion,
                "roc_curve": roc,
                "feature_importances": importances,
                "probability_curve": curve,
            }
        )

        figures = {
            "funding_distribution": viz.plot_amount_distribution(data, "funding_total_usd"),
            "feature_round_distribution": viz.plot_amount_distribution(data, feature),
            "funding_by_category": viz.plot_grouped_stats(by_category, "primary_category"),
            "funding_by_status": viz.plot_grouped_stats(by_status, "status"),
            "funding_by_year": viz.plot_funding_by_year(by_year),
            "conversion_by_amount": viz.plot_conversion_by_amount(conversion, feature, target),
            "feature_vs_target": viz.plot_feature_vs_target(data, feature, target),
            "confusion_matrix": viz.plot_confusion_matrix(confusion),
            "roc_curve": viz.plot_roc_curve(roc, evaluation["auc"]),
            "feature_importances": viz.plot_feature_importance(importances),
            "probability_curve": viz.plot_probability_curve(curve, target),
        }

        return ReportResults(
            config=cfg,
            data=data,
            tables=tables,
            statistics=statistics,
            model_summary=model.summary(),
            figures=figures,
        )

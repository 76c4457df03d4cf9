"""
cli.py — Command-line entry point.

Run:
    python -m funding_rounds investments_VC.csv --output-dir report/
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from funding_rounds.config import AnalysisConfig
from funding_rounds.logs import configure_logging
from funding_rounds.report import FundingReport

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="funding_rounds",
        description="Test whether the Series A amount predicts a Series B round",
    )
    parser.add_argument("csv", type=Path, help="Crunchbase investments export (CSV)")
    parser.add_argument("--output-dir", type=Path, default=Path("report"),
                        help="Directory for tables, figures and report.md")
    parser.add_argument("--folds", type=int, default=10, help="Cross-validation folds")
    parser.add_argument("--trees", type=int, default=500, help="Random forest size")
    parser.add_argument("--test-size", type=float, default=0.3,
                        help="Held-out fraction for the confusion matrix")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--feature-round", default="round_A")
    parser.add_argument("--target-round", default="round_B")
    parser.add_argument("--no-log", action="store_true",
                        help="Model the raw amount instead of log1p(amount)")
    parser.add_argument("--encoding", default="latin-1")
    parser.add_argument("--log-file", type=Path, default=None,
                        help="Also write the run log to this file")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=args.log_file,
    )

    try:
        config = AnalysisConfig(
            csv_path=args.csv,
            output_dir=args.output_dir,
            feature_round=args.feature_round,
            target_round=args.target_round,
            log_transform=not args.no_log,
            test_size=args.test_size,
            random_state=args.seed,
            n_estimators=args.trees,
            cv_folds=args.folds,
            encoding=args.encoding,
        )
        results = FundingReport(config).run()
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Error: %s", exc)
        return 2

    results.write(args.output_dir)
    summary = results.summary()
    logger.info(
        "CV error %.3f, CV AUC %.3f over %d companies",
        summary["cv_error_mean"], summary["cv_auc_mean"], summary["n_population"],
    )
    return 0

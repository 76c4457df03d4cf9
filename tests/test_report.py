"""Tests for funding_rounds.report and the command-line entry point."""
from __future__ import annotations

import json
import logging
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from funding_rounds.cli import main
from funding_rounds.config import AnalysisConfig
from funding_rounds.loader import SchemaError
from funding_rounds.logs import PACKAGE_LOGGER, configure_logging
from funding_rounds.report import FundingReport, ReportResults


@pytest.fixture
def results(raw_export: pd.DataFrame, fast_config: AnalysisConfig) -> ReportResults:
    return FundingReport(fast_config).run(raw_export)


class TestFundingReport:
    def test_returns_results(self, results):
        assert isinstance(results, ReportResults)
        assert len(results.data) == 300

    def test_tables_present(self, results):
        expected = {
            "funding_by_category", "funding_by_status", "funding_by_year",
            "round_amounts", "conversion_by_amount", "confusion_matrix",
            "roc_curve", "feature_importances", "probability_curve",
        }
        assert expected == set(results.tables)

    def test_figures_present(self, results):
        assert "confusion_matrix" in results.figures
        assert "roc_curve" in results.figures
        assert "funding_by_category" in results.figures

    def test_summary_flat(self, results):
        s = results.summary()
        assert s["n_companies"] == 300
        assert "corr_r" in s
        assert "cv_error_mean" in s
        assert "cv_auc_mean" in s
        assert s["n_population"] == s["n_feature_round"]

    def test_markdown(self, results):
        text = results.to_markdown()
        assert text.startswith("# Does the round_A amount predict a round_B?")
        assert "3-fold CV AUC" in text
        assert "predicted_1" in text

    def test_loads_from_csv(self, export_csv: Path, fast_config: AnalysisConfig):
        fast_config.csv_path = export_csv
        results = FundingReport(fast_config).run()
        assert len(results.data) == 300

    def test_padded_headers_in_memory(self, raw_export_padded, fast_config: AnalysisConfig):
        results = FundingReport(fast_config).run(raw_export_padded)
        assert "funding_total_usd" in results.data.columns

    def test_no_input(self, fast_config: AnalysisConfig):
        with pytest.raises(ValueError, match="No input"):
            FundingReport(fast_config).run()

    def test_missing_target_round(self, raw_export, fast_config):
        fast_config.target_round = "round_Z"
        with pytest.raises(SchemaError):
            FundingReport(fast_config).run(raw_export)


class TestWrite:
    def test_writes_artifacts(self, results, tmp_path: Path):
        out = tmp_path / "out"
        written = results.write(out)
        names = {p.name for p in written}
        assert "summary.json" in names
        assert "report.md" in names
        assert "confusion_matrix.csv" in names
        assert "roc_curve.html" in names
        assert all(p.exists() for p in written)

    def test_summary_json_readable(self, results, tmp_path: Path):
        results.write(tmp_path)
        data = json.loads((tmp_path / "summary.json").read_text())
        assert data["n_companies"] == 300
        assert 0.0 <= data["cv_error_mean"] <= 1.0

    def test_summary_json_has_no_nan_tokens(self, results, tmp_path: Path):
        results.statistics["correlation"]["r"] = float("nan")
        results.statistics["correlation"]["p_value"] = np.float64("inf")
        results.write(tmp_path)

        def reject(token):
            raise ValueError(f"non-standard JSON constant {token}")

        data = json.loads((tmp_path / "summary.json").read_text(), parse_constant=reject)
        assert data["corr_r"] is None
        assert data["corr_p_value"] is None
        assert isinstance(data["corr_n"], int)

    def test_confusion_matrix_keeps_labels(self, results, tmp_path: Path):
        results.write(tmp_path)
        cm = pd.read_csv(tmp_path / "confusion_matrix.csv", index_col=0)
        assert list(cm.index) == ["actual_0", "actual_1"]

    def test_defaults_to_config_dir(self, results, fast_config):
        written = results.write()
        assert all(p.parent == Path(fast_config.output_dir) for p in written)


class TestCli:
    def test_success(self, export_csv: Path, tmp_path: Path):
        out = tmp_path / "cli_report"
        code = main([str(export_csv), "--output-dir", str(out), "--folds", "3", "--trees", "20"])
        assert code == 0
        assert (out / "report.md").exists()
        assert (out / "summary.json").exists()

    def test_missing_file(self, tmp_path: Path):
        assert main([str(tmp_path / "absent.csv"), "--output-dir", str(tmp_path)]) == 2

    def test_bad_config(self, export_csv: Path, tmp_path: Path):
        assert main([str(export_csv), "--folds", "1", "--output-dir", str(tmp_path)]) == 2

    def test_log_file(self, export_csv: Path, tmp_path: Path):
        log_file = tmp_path / "logs" / "run.log"
        main([
            str(export_csv), "--output-dir", str(tmp_path / "r"),
            "--folds", "3", "--trees", "10", "--log-file", str(log_file),
        ])
        assert log_file.exists()
        assert "Loaded 300 records" in log_file.read_text()


class TestConfigureLogging:
    def test_no_duplicate_handlers(self):
        configure_logging()
        logger = configure_logging()
        assert logger.name == PACKAGE_LOGGER
        assert len(logger.handlers) == 1

    def test_level(self):
        logger = configure_logging(level=logging.DEBUG)
        assert logger.level == logging.DEBUG

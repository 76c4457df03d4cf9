"""
series_b_report.py — Runs the Series A -> Series B analysis step by step.

Run:
    python examples/series_b_report.py investments_VC.csv
"""
from __future__ import annotations

import sys

from funding_rounds import AnalysisConfig, SeriesBModel, load_rounds, prepare_rounds
from funding_rounds import summary
from funding_rounds import visualization as viz


def main(csv_path: str) -> None:
    # -------------------------------------------------------------------
    # 1. Load and clean
    # -------------------------------------------------------------------
    config = AnalysisConfig(csv_path=csv_path, n_estimators=500, cv_folds=10)
    df = prepare_rounds(load_rounds(config.csv_path, encoding=config.encoding))

    stats = summary.describe_dataset(df)
    print("=" * 60)
    print("  Crunchbase export — Dataset Summary")
    print("=" * 60)
    print(f"  Companies:          {stats['n_companies']:>12,}")
    print(f"  Raised Series A:    {stats['n_feature_round']:>12,}")
    print(f"  Raised Series B:    {stats['n_target_round']:>12,}")
    print(f"  A -> B conversion:  {stats['conversion_rate']:>12.1%}")
    print("=" * 60)

    # -------------------------------------------------------------------
    # 2. Grouped means / standard deviations
    # -------------------------------------------------------------------
    by_category = summary.funding_by_category(df, top_n=10)
    print("\nMean total funding, top 10 categories:")
    print(
        by_category.to_string(
            index=False,
            float_format=lambda x: f"${x:>14,.0f}",
        )
    )

    buckets = summary.series_b_rate_by_amount(df, n_buckets=5)
    print("\nSeries B rate by Series A quintile:")
    print(buckets[["bucket", "count", "rate"]].to_string(index=False))

    # -------------------------------------------------------------------
    # 3. Random forest
    # -------------------------------------------------------------------
    model = SeriesBModel(config).prepare(df).split().fit()
    print("\nConfusion matrix (test set):")
    print(model.confusion_matrix().to_string())

    cv = model.cross_validate()
    print(f"\n{config.cv_folds}-fold CV error: {cv['cv_error_mean']:.3f} (± {cv['cv_error_std']:.3f})")
    print(f"{config.cv_folds}-fold CV AUC:   {cv['cv_auc_mean']:.3f} (± {cv['cv_auc_std']:.3f})")

    # -------------------------------------------------------------------
    # 4. Visualize
    # -------------------------------------------------------------------
    print("\nOpening conversion chart...")
    viz.plot_conversion_by_amount(buckets).show()

    print("\nOpening ROC curve...")
    viz.plot_roc_curve(model.roc_curve(), model.evaluate()["auc"]).show()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit("usage: python examples/series_b_report.py investments_VC.csv")
    main(sys.argv[1])

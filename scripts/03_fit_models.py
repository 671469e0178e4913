from __future__ import annotations

import argparse
import sys
from pathlib import Path

import joblib
import pandas as pd


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from reviewmix.config import (  # noqa: E402
    CI_LEVEL,
    DATASET_VERSION,
    EXPERIMENT_NAMESPACE,
    MODELING_FILE,
    REML,
    YEAR_COL,
)
from reviewmix.errors import InsufficientDataError  # noqa: E402
from reviewmix.evaluation.trends import genre_fitted_lines  # noqa: E402
from reviewmix.models.comparison import compare_models  # noqa: E402
from reviewmix.reporting.figures import plot_genre_trends, plot_model_comparison  # noqa: E402
from reviewmix.reporting.tables import write_comparison_summary, write_comparison_tables  # noqa: E402
from reviewmix.utils.logging import run_metadata, sha256_file, write_json  # noqa: E402


REQUIRED_COLUMNS = ["score", "genre", "author", YEAR_COL]


def main() -> None:
    parser = argparse.ArgumentParser(description="Fit and rank the genre/year mixed-effects model family.")
    parser.add_argument("--in-parquet", type=Path, default=MODELING_FILE, help="Modeling table from 01_build_dataset.")
    parser.add_argument("--outdir", type=Path, default=Path("outputs"), help="Output directory (default: outputs/).")
    parser.add_argument(
        "--reml",
        action="store_true",
        default=REML,
        help="Fit mixed models by REML (AICc is then not comparable across fixed-effect structures).",
    )
    parser.add_argument("--ci-level", type=float, default=CI_LEVEL, help="Confidence level for genre trends.")
    args = parser.parse_args()

    if not 0.0 < args.ci_level < 1.0:
        raise SystemExit("--ci-level must be in (0, 1).")
    if not args.in_parquet.exists():
        raise SystemExit(f"Modeling input not found: {args.in_parquet}. Run scripts/01_build_dataset.py first.")

    df = pd.read_parquet(args.in_parquet)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise SystemExit(f"Missing required columns in parquet: {missing}")
    if df.empty:
        raise SystemExit("Modeling table is empty.")

    try:
        report = compare_models(df, reml=args.reml, ci_level=args.ci_level)
    except InsufficientDataError as exc:
        raise SystemExit(f"{exc}. Rebuild with scripts/01_build_dataset.py to drop these genre levels.")

    outdir = args.outdir
    out_tables = outdir / "tables"
    out_figures = outdir / "figures"
    out_models = outdir / "models"
    out_logs = outdir / "logs"
    for d in [out_tables, out_figures, out_models, out_logs]:
        d.mkdir(parents=True, exist_ok=True)

    table_paths = write_comparison_tables(report, out_tables)
    r2_rows = [{"model_id": m, **v} for m, v in report.r2.items()]
    pd.DataFrame(r2_rows).to_csv(out_tables / "model_r2.csv", index=False)
    summary_path = write_comparison_summary(report, out_logs / "model_comparison.json")

    if not report.ranking.empty:
        plot_model_comparison(report.ranking, out_figures / "model_comparison_aicc.png")
    years = df[YEAR_COL].dropna().unique().tolist()
    for label, model_id in [("interaction", "interaction"), ("selected", report.selected)]:
        if model_id not in report.fits:
            continue
        lines = genre_fitted_lines(
            report.fits[model_id],
            report.genres,
            years,
            year_mean=report.year_mean,
            year_scale=report.year_scale,
            ci_level=args.ci_level,
        )
        lines.to_csv(out_tables / f"genre_fitted_lines_{label}.csv", index=False)
        plot_genre_trends(lines, out_figures / f"genre_trends_{label}.png")

    model_path = None
    if report.selected is not None:
        model_path = out_models / f"{report.selected}.joblib"
        joblib.dump(report.fits[report.selected].result, model_path)

    meta = run_metadata(
        dataset_version=DATASET_VERSION,
        experiment=EXPERIMENT_NAMESPACE,
        input_parquet=str(args.in_parquet),
        input_sha256=sha256_file(args.in_parquet),
        n_rows=int(len(df)),
        reml=bool(args.reml),
        ci_level=args.ci_level,
        year_scaling={"mean": report.year_mean, "scale": report.year_scale},
        selected_model=report.selected,
        failures=report.failures,
        tables={k: str(v) for k, v in table_paths.items()},
        summary_json=str(summary_path),
        model_artifact=str(model_path) if model_path else None,
    )
    write_json(out_logs / "fit_run_metadata.json", meta)

    for model_id, reason in sorted(report.failures.items()):
        print(f"Model {model_id} FAILED and was excluded from ranking: {reason}")
    print(f"Selected model: {report.selected}")
    print(report.interaction_vs_null["message"])
    if report.random_effect_test is not None:
        t = report.random_effect_test
        verdict = "justified" if t["justified"] else "not justified"
        print(f"Author random intercept {verdict} (LR={t['lr_stat']:.2f}, p={t['p_value']:.4g})")
    print(f"Wrote modeling artifacts to {outdir}/")


if __name__ == "__main__":
    main()

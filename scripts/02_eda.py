from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from reviewmix.config import LOW_SCORE_THRESHOLD, MODELING_FILE  # noqa: E402
from reviewmix.data.coding import summarize_missingness  # noqa: E402
from reviewmix.evaluation.descriptive import (  # noqa: E402
    genre_mix_by_year,
    low_score_rate,
    low_score_rate_by_year,
    score_summary_by_genre,
)
from reviewmix.reporting.figures import plot_genre_mix, plot_low_score_rate  # noqa: E402
from reviewmix.utils.logging import run_metadata, sha256_file, write_json  # noqa: E402


REQUIRED_COLUMNS = [
    "review_id",
    "genre",
    "score",
    "is_best_new_music",
    "author",
    "publication_year",
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Descriptive aggregates: genre mix and low-score rate over time.")
    parser.add_argument("--in-parquet", type=Path, default=MODELING_FILE, help="Modeling table from 01_build_dataset.")
    parser.add_argument("--outdir", type=Path, default=Path("outputs"), help="Output directory (default: outputs/).")
    parser.add_argument(
        "--low-threshold",
        type=float,
        default=LOW_SCORE_THRESHOLD,
        help="Scores strictly below this count as low.",
    )
    args = parser.parse_args()

    if not args.in_parquet.exists():
        raise SystemExit(f"Modeling table not found: {args.in_parquet}. Run scripts/01_build_dataset.py first.")

    df = pd.read_parquet(args.in_parquet)
    missing_required = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing_required:
        raise SystemExit(f"Missing required columns in modeling table: {missing_required}")
    if df.empty:
        raise SystemExit("Modeling table is empty.")

    tables_dir = args.outdir / "tables"
    figures_dir = args.outdir / "figures"
    logs_dir = args.outdir / "logs"
    for d in [tables_dir, figures_dir, logs_dir]:
        d.mkdir(parents=True, exist_ok=True)

    summarize_missingness(df).to_csv(tables_dir / "missingness_modeling.csv", index=False)

    mix = genre_mix_by_year(df)
    mix.to_csv(tables_dir / "genre_mix_by_year.csv", index=False)

    low_by_year = low_score_rate_by_year(df, threshold=args.low_threshold)
    low_by_year.to_csv(tables_dir / "low_score_rate_by_year.csv", index=False)

    low_score_rate(df, by="genre", threshold=args.low_threshold).to_csv(
        tables_dir / "low_score_rate_by_genre.csv", index=False
    )
    low_score_rate(df, by=["publication_year", "genre"], threshold=args.low_threshold).to_csv(
        tables_dir / "low_score_rate_by_year_genre.csv", index=False
    )
    score_summary_by_genre(df).to_csv(tables_dir / "score_summary_by_genre.csv", index=False)

    plot_genre_mix(mix, figures_dir / "genre_mix_by_year.png")
    plot_low_score_rate(low_by_year, args.low_threshold, figures_dir / "low_score_rate_by_year.png")

    meta = run_metadata(
        input_parquet=str(args.in_parquet),
        input_sha256=sha256_file(args.in_parquet),
        n_rows=int(len(df)),
        low_score_threshold=args.low_threshold,
        outdir=str(args.outdir),
        notes=["Descriptive context only; no model fitting."],
    )
    write_json(logs_dir / "eda_run_metadata.json", meta)

    print(f"Wrote EDA artifacts to {args.outdir}/")


if __name__ == "__main__":
    main()

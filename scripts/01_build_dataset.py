import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import argparse
import hashlib

import pandas as pd

from reviewmix.config import (  # noqa: E402
    DATASET_VERSION,
    LOGS_DIR,
    MIN_GENRE_AUTHORS,
    MIN_GENRE_OBS,
    MODELING_FILE,
    RANDOM_SEED,
    RAW_DB_FILE,
    TABLES_DIR,
    YEAR_CUTOFF,
)
from reviewmix.data.clean import build_modeling_table  # noqa: E402
from reviewmix.data.coding import summarize_missingness  # noqa: E402
from reviewmix.data.ingest import join_tables, load_tables, open_dataset  # noqa: E402
from reviewmix.data.synthetic import make_synthetic_tables  # noqa: E402
from reviewmix.utils.logging import sha256_file, write_json  # noqa: E402


def _sha256_df(df: pd.DataFrame) -> str:
    h = hashlib.sha256()
    h.update("||".join(df.columns.astype(str).tolist()).encode("utf-8"))
    h.update("||".join(map(str, df.dtypes.tolist())).encode("utf-8"))
    row_hashes = pd.util.hash_pandas_object(df, index=True).to_numpy()
    h.update(row_hashes.tobytes())
    return h.hexdigest()


def main() -> None:
    parser = argparse.ArgumentParser(description="Join and clean review tables into an analysis-ready modeling table.")
    parser.add_argument("--db", type=Path, default=RAW_DB_FILE, help="Review sqlite database (read-only).")
    parser.add_argument(
        "--synthetic",
        action="store_true",
        help="Use generated synthetic tables instead of --db (dry runs without the dataset).",
    )
    parser.add_argument("--seed", type=int, default=RANDOM_SEED, help="Seed for --synthetic.")
    parser.add_argument("--year-cutoff", type=int, default=YEAR_CUTOFF, help="Keep publication_year < cutoff.")
    parser.add_argument("--out-parquet", type=Path, default=MODELING_FILE, help="Output parquet path.")
    parser.add_argument(
        "--audit-csv",
        type=Path,
        default=TABLES_DIR / "modeling_table_audit.csv",
        help="Output audit CSV path.",
    )
    parser.add_argument(
        "--missingness-csv",
        type=Path,
        default=TABLES_DIR / "missingness_joined.csv",
        help="Output missingness summary CSV path (joined table, before cleaning).",
    )
    parser.add_argument(
        "--decisions-json",
        type=Path,
        default=LOGS_DIR / "decisions.json",
        help="Output JSON file for filter decisions and year scaling.",
    )
    args = parser.parse_args()

    if args.synthetic:
        tables = make_synthetic_tables(seed=args.seed)
        input_desc = f"synthetic(seed={args.seed})"
        input_sha = ""
    else:
        if not args.db.exists():
            raise SystemExit(f"Input database not found: {args.db}")
        with open_dataset(args.db) as conn:
            tables = load_tables(conn)
        input_desc = str(args.db)
        input_sha = sha256_file(args.db)

    joined = join_tables(tables)

    # Missingness of the raw join (genre/artist gaps show up here before filtering).
    args.missingness_csv.parent.mkdir(parents=True, exist_ok=True)
    summarize_missingness(joined).to_csv(args.missingness_csv, index=False)

    try:
        modeling, decisions = build_modeling_table(
            joined,
            year_cutoff=args.year_cutoff,
            min_authors=MIN_GENRE_AUTHORS,
            min_obs=MIN_GENRE_OBS,
        )
    except ValueError as exc:
        raise SystemExit(f"Could not build modeling table: {exc}")

    content_hash = _sha256_df(modeling)

    decisions_payload = {
        **decisions,
        "dataset_version": DATASET_VERSION,
        "input": input_desc,
        "input_sha256": input_sha,
        "table_rows": {name: int(len(df)) for name, df in tables.items()},
        "joined_rows": int(len(joined)),
        "modeling_cols": modeling.columns.tolist(),
        "output_parquet": str(args.out_parquet),
        "missingness_csv": str(args.missingness_csv),
        "content_hash_sha256": content_hash,
    }
    write_json(args.decisions_json, decisions_payload)

    args.out_parquet.parent.mkdir(parents=True, exist_ok=True)
    modeling.to_parquet(args.out_parquet, index=False)

    args.audit_csv.parent.mkdir(parents=True, exist_ok=True)
    audit = pd.DataFrame(
        [
            {
                "joined_rows": int(len(joined)),
                "modeling_rows": int(len(modeling)),
                "n_genres": int(modeling["genre"].nunique()),
                "n_authors": int(modeling["author"].nunique()),
                "year_min": int(modeling["publication_year"].min()),
                "year_max": int(modeling["publication_year"].max()),
                "score_mean": round(float(modeling["score"].mean()), 6),
                "dropped_inadequate_genres": ";".join(sorted(decisions["inadequate_genres"])),
                "content_hash_sha256": content_hash,
                "decisions_json": str(args.decisions_json),
            }
        ]
    )
    audit.to_csv(args.audit_csv, index=False)

    for f in decisions["row_filters"]:
        print(f"Filter {f['rule']}: dropped {f['dropped_rows']} rows ({f['dropped_reviews']} reviews)")
    print(f"Wrote {args.out_parquet}")
    print(f"Wrote {args.audit_csv}")
    print(f"Wrote {args.missingness_csv}")
    print(f"Wrote {args.decisions_json}")


if __name__ == "__main__":
    main()

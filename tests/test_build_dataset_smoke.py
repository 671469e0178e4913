import json
import subprocess
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest


def _run_build(repo_root: Path, tmp_path: Path, *source_args: str) -> dict:
    paths = {
        "out_parquet": tmp_path / "reviews_modeling.parquet",
        "audit_csv": tmp_path / "modeling_table_audit.csv",
        "missingness_csv": tmp_path / "missingness_joined.csv",
        "decisions_json": tmp_path / "decisions.json",
    }
    cmd = [
        sys.executable,
        str(repo_root / "scripts" / "01_build_dataset.py"),
        *source_args,
        "--out-parquet",
        str(paths["out_parquet"]),
        "--audit-csv",
        str(paths["audit_csv"]),
        "--missingness-csv",
        str(paths["missingness_csv"]),
        "--decisions-json",
        str(paths["decisions_json"]),
    ]
    subprocess.run(cmd, cwd=repo_root, check=True)
    return paths


def test_build_dataset_smoke(tmp_path: Path, synthetic_db: Path):
    repo_root = Path(__file__).resolve().parents[1]
    paths = _run_build(repo_root, tmp_path, "--db", str(synthetic_db))

    assert paths["out_parquet"].exists()
    df = pd.read_parquet(paths["out_parquet"])

    expected_cols = [
        "review_id",
        "title",
        "artist",
        "genre",
        "score",
        "is_best_new_music",
        "author",
        "author_type",
        "publication_year",
        "year_z",
    ]
    assert df.columns.tolist() == expected_cols
    assert df["review_id"].is_unique
    assert df["genre"].notna().all()
    assert abs(df["year_z"].mean()) < 1e-9
    assert np.std(df["year_z"], ddof=0) == pytest.approx(1.0, abs=1e-9)

    assert paths["audit_csv"].exists()
    assert paths["missingness_csv"].exists()

    payload = json.loads(paths["decisions_json"].read_text(encoding="utf-8"))
    rules = [f["rule"] for f in payload["row_filters"]]
    assert rules == [
        "drop_missing_genre",
        "drop_multi_genre",
        "drop_missing_score_author_year",
        "keep_publication_year_lt_2017",
        "drop_inadequate_genres",
    ]
    assert payload["modeling_rows"] == len(df)
    assert set(payload["year_scaling"]) == {"mean", "scale"}
    assert payload["inadequate_genres"] == {}


def test_build_dataset_synthetic_flag(tmp_path: Path):
    repo_root = Path(__file__).resolve().parents[1]
    paths = _run_build(repo_root, tmp_path, "--synthetic", "--seed", "5")
    payload = json.loads(paths["decisions_json"].read_text(encoding="utf-8"))
    assert payload["input"] == "synthetic(seed=5)"
    assert len(pd.read_parquet(paths["out_parquet"])) == payload["modeling_rows"]


def test_build_dataset_missing_db(tmp_path: Path):
    repo_root = Path(__file__).resolve().parents[1]
    cmd = [
        sys.executable,
        str(repo_root / "scripts" / "01_build_dataset.py"),
        "--db",
        str(tmp_path / "absent.sqlite"),
    ]
    proc = subprocess.run(cmd, cwd=repo_root, capture_output=True, text=True)
    assert proc.returncode != 0
    assert "Input database not found" in proc.stderr

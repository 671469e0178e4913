from __future__ import annotations

from typing import Sequence, Union

import numpy as np
import pandas as pd

from reviewmix.config import GENRE_COL, GROUP_COL, LOW_SCORE_THRESHOLD, TARGET_COL, YEAR_COL


def genre_mix_by_year(df: pd.DataFrame) -> pd.DataFrame:
    """Share of each year's reviews that falls in each genre (percent)."""

    counts = (
        df.groupby([YEAR_COL, GENRE_COL], observed=True)
        .size()
        .rename("n")
        .reset_index()
    )
    counts["year_total"] = counts.groupby(YEAR_COL)["n"].transform("sum")
    counts["share_pct"] = 100.0 * counts["n"] / counts["year_total"]
    counts[GENRE_COL] = counts[GENRE_COL].astype(str)
    return counts.sort_values([YEAR_COL, GENRE_COL], kind="mergesort").reset_index(drop=True)


def low_score_rate(
    df: pd.DataFrame,
    by: Union[str, Sequence[str]] = GENRE_COL,
    *,
    threshold: float = LOW_SCORE_THRESHOLD,
) -> pd.DataFrame:
    """Count and percent of reviews scoring strictly below ``threshold`` per group."""

    keys = [by] if isinstance(by, str) else list(by)
    tmp = df[keys].copy()
    tmp["_low"] = (df[TARGET_COL] < threshold).astype(int)

    out = tmp.groupby(keys, observed=True)["_low"].agg(n="size", n_low="sum").reset_index()
    out["n"] = out["n"].astype(int)
    out["n_low"] = out["n_low"].astype(int)
    # Multiply before dividing so simple ratios stay exact (3 of 10 -> 30.0).
    out["percent_low"] = (100.0 * out["n_low"]) / out["n"]
    for key in keys:
        if isinstance(out[key].dtype, pd.CategoricalDtype):
            out[key] = out[key].astype(str)
    return out.sort_values(keys, kind="mergesort").reset_index(drop=True)


def low_score_rate_by_year(df: pd.DataFrame, *, threshold: float = LOW_SCORE_THRESHOLD) -> pd.DataFrame:
    return low_score_rate(df, by=YEAR_COL, threshold=threshold)


def score_summary_by_genre(df: pd.DataFrame) -> pd.DataFrame:
    rows = []
    for genre, gdf in df.groupby(GENRE_COL, observed=True, sort=True):
        scores = gdf[TARGET_COL].to_numpy(dtype=float)
        bnm = gdf["is_best_new_music"].astype("boolean")
        n_bnm = int(bnm.fillna(False).sum())
        rows.append(
            {
                "genre": str(genre),
                "n": int(len(gdf)),
                "n_authors": int(gdf[GROUP_COL].nunique()),
                "mean": round(float(np.mean(scores)), 6),
                "median": round(float(np.median(scores)), 6),
                "sd": round(float(np.std(scores, ddof=1)), 6) if len(scores) > 1 else np.nan,
                "best_new_music_pct": round(100.0 * n_bnm / len(gdf), 6),
            }
        )
    return pd.DataFrame(rows)

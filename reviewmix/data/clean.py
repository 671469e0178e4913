from __future__ import annotations

from typing import Dict, Tuple

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler

from reviewmix.config import (
    GENRE_COL,
    MIN_GENRE_AUTHORS,
    MIN_GENRE_OBS,
    MODELING_COLUMNS,
    REVIEW_COLUMNS,
    YEAR_COL,
    YEAR_CUTOFF,
    YEAR_Z_COL,
)
from reviewmix.data.coding import coerce_bool_flag, coerce_categorical
from reviewmix.data.validate import assert_required_columns
from reviewmix.evaluation.adequacy import evaluate_genre_adequacy
from reviewmix.utils.logging import get_logger

logger = get_logger(__name__)

ARTIST_SEPARATOR = "; "


def _apply_filter(df: pd.DataFrame, keep: pd.Series, rule: str, decisions: dict) -> pd.DataFrame:
    kept = df.loc[keep]
    dropped_rows = int(len(df) - len(kept))
    dropped_reviews = int(df["review_id"].nunique() - kept["review_id"].nunique())
    decisions["row_filters"].append(
        {"rule": rule, "dropped_rows": dropped_rows, "dropped_reviews": dropped_reviews}
    )
    logger.info("Filter %s: dropped %d rows (%d reviews)", rule, dropped_rows, dropped_reviews)
    return kept


def _collapse_artists(df: pd.DataFrame) -> pd.DataFrame:
    """Reduce the artist fan-out of the join to one row per review."""

    artists = (
        df.groupby("review_id", sort=False)["artist"]
        .agg(lambda s: ARTIST_SEPARATOR.join(sorted(s.dropna().astype(str).unique())) or pd.NA)
        .rename("artist")
    )
    first = df.drop(columns=["artist"]).drop_duplicates(subset="review_id", keep="first")
    return first.merge(artists, left_on="review_id", right_index=True, how="left")


def clean_reviews(joined: pd.DataFrame, *, year_cutoff: int = YEAR_CUTOFF) -> Tuple[pd.DataFrame, dict]:
    """Filter the joined review table down to one single-genre row per review.

    Returns the cleaned table and a decisions dict recording each filter's
    dropped row/review counts. Data-quality problems are filtered, never raised.
    """

    assert_required_columns(joined, REVIEW_COLUMNS + ["artist", GENRE_COL])

    decisions: dict = {
        "input_rows": int(len(joined)),
        "input_reviews": int(joined["review_id"].nunique()),
        "year_cutoff": int(year_cutoff),
        "row_filters": [],
    }

    df = joined.copy()
    genre = df[GENRE_COL].astype("string").str.strip()
    df[GENRE_COL] = genre.replace("", pd.NA)

    df = _apply_filter(df, df[GENRE_COL].notna(), "drop_missing_genre", decisions)

    # Group-and-count: keep reviews carrying exactly one distinct genre.
    genre_counts = df.groupby("review_id")[GENRE_COL].transform("nunique")
    df = _apply_filter(df, genre_counts == 1, "drop_multi_genre", decisions)

    df["score"] = pd.to_numeric(df["score"], errors="coerce")
    df[YEAR_COL] = pd.to_numeric(df[YEAR_COL], errors="coerce")
    required = df["score"].notna() & df["author"].notna() & df[YEAR_COL].notna()
    df = _apply_filter(df, required, "drop_missing_score_author_year", decisions)

    df = _apply_filter(df, df[YEAR_COL] < year_cutoff, f"keep_{YEAR_COL}_lt_{int(year_cutoff)}", decisions)

    df = _collapse_artists(df)

    df["score"] = df["score"].astype(float)
    df[YEAR_COL] = df[YEAR_COL].astype(int)
    df["is_best_new_music"] = coerce_bool_flag(df["is_best_new_music"])
    for col in [GENRE_COL, "author", "author_type"]:
        df[col] = coerce_categorical(df[col])

    df = df.sort_values("review_id", kind="mergesort").reset_index(drop=True)

    decisions["output_rows"] = int(len(df))
    decisions["output_reviews"] = int(df["review_id"].nunique())
    return df, decisions


def drop_inadequate_genres(
    df: pd.DataFrame,
    decisions: dict,
    *,
    min_authors: int = MIN_GENRE_AUTHORS,
    min_obs: int = MIN_GENRE_OBS,
) -> pd.DataFrame:
    """Remove genre levels that cannot support a per-author random intercept.

    The removed levels and their reasons are recorded in
    ``decisions["inadequate_genres"]``.
    """

    adequacy = evaluate_genre_adequacy(df, min_authors=min_authors, min_obs=min_obs)
    failing = {g: a.reason for g, a in adequacy.items() if not a.adequate}
    decisions["inadequate_genres"] = failing
    if failing:
        logger.warning("Dropping inadequate genre levels: %s", failing)

    keep = ~df[GENRE_COL].astype("string").isin(list(failing))
    out = _apply_filter(df, keep.fillna(False).astype(bool), "drop_inadequate_genres", decisions)
    out = out.reset_index(drop=True)
    out[GENRE_COL] = out[GENRE_COL].cat.remove_unused_categories()
    out["author"] = out["author"].cat.remove_unused_categories()
    return out


def standardize_year(df: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, float]]:
    """Add ``year_z``: publication year at zero mean and unit (population) SD."""

    if len(df) == 0:
        raise ValueError("Cannot standardize publication year of an empty table.")

    scaler = StandardScaler(with_mean=True, with_std=True)
    years = df[[YEAR_COL]].to_numpy(dtype=float)
    out = df.copy()
    out[YEAR_Z_COL] = scaler.fit_transform(years).ravel()

    # StandardScaler leaves scale at 1.0 for a constant column.
    scaling = {"mean": float(scaler.mean_[0]), "scale": float(scaler.scale_[0])}
    if not np.isfinite(scaling["scale"]):
        raise ValueError("Publication year scale is not finite.")
    return out, scaling


def build_modeling_table(
    joined: pd.DataFrame,
    *,
    year_cutoff: int = YEAR_CUTOFF,
    min_authors: int = MIN_GENRE_AUTHORS,
    min_obs: int = MIN_GENRE_OBS,
) -> Tuple[pd.DataFrame, dict]:
    """Clean, drop inadequate genres, then standardize year on what remains."""

    cleaned, decisions = clean_reviews(joined, year_cutoff=year_cutoff)
    cleaned = drop_inadequate_genres(cleaned, decisions, min_authors=min_authors, min_obs=min_obs)
    if len(cleaned) == 0:
        raise ValueError("No reviews remain after cleaning.")

    modeling, scaling = standardize_year(cleaned)
    decisions["year_scaling"] = scaling
    decisions["modeling_rows"] = int(len(modeling))
    return modeling[MODELING_COLUMNS], decisions

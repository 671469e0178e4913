"""Synthetic review tables for tests and dry runs without the real dataset."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from reviewmix.config import RANDOM_SEED

# Public dataset spelling, so the sqlite file looks like the real export.
_SQLITE_RENAMES = {
    "review_id": "reviewid",
    "is_best_new_music": "best_new_music",
    "publication_date": "pub_date",
    "publication_year": "pub_year",
}


def _cell_authors(genre_idx: int, year_idx: int, authors_per_genre: int, shared_authors: int) -> List[int]:
    if shared_authors:
        # Rotate through a shared pool so authors cross genres and years.
        start = genre_idx * authors_per_genre + year_idx
        return [(start + i) % shared_authors for i in range(authors_per_genre)]
    return [genre_idx * authors_per_genre + i for i in range(authors_per_genre)]


def make_synthetic_tables(
    *,
    genres: Sequence[str] = ("Electronic", "Rock", "Rap"),
    years: Sequence[int] = tuple(range(2010, 2015)),
    authors_per_genre: int = 2,
    shared_authors: int = 0,
    reviews_per_cell: int = 8,
    genre_baselines: Optional[Mapping[str, float]] = None,
    genre_slopes: Optional[Mapping[str, float]] = None,
    base_score: float = 7.0,
    author_sd: float = 0.5,
    noise_sd: float = 1.0,
    seed: int = RANDOM_SEED,
) -> Dict[str, pd.DataFrame]:
    """Build reviews/artists/genres tables with known genre and year effects.

    Each (genre, year) cell has ``authors_per_genre`` authors writing
    ``reviews_per_cell`` reviews each. Authors are dedicated to one genre
    unless ``shared_authors`` gives the size of a pool rotated across genres
    and years. The expected score is ``base_score + baseline[genre] +
    slope[genre] * (year - first year) + author offset``; scores are rounded
    to 0.1 and clipped to [0, 10].
    """

    if shared_authors and shared_authors < authors_per_genre:
        raise ValueError("shared_authors must be at least authors_per_genre")

    rng = np.random.default_rng(seed)
    genre_baselines = dict(genre_baselines or {})
    genre_slopes = dict(genre_slopes or {})
    years = [int(y) for y in years]
    first_year = min(years)

    n_authors = shared_authors or len(genres) * authors_per_genre
    offsets = rng.normal(0.0, author_sd, size=n_authors)

    review_rows = []
    artist_rows = []
    genre_rows = []
    review_id = 0

    for g_idx, genre in enumerate(genres):
        for y_idx, year in enumerate(years):
            for a_idx in _cell_authors(g_idx, y_idx, authors_per_genre, shared_authors):
                for _ in range(reviews_per_cell):
                    review_id += 1
                    mean = (
                        base_score
                        + genre_baselines.get(genre, 0.0)
                        + genre_slopes.get(genre, 0.0) * (year - first_year)
                        + offsets[a_idx]
                    )
                    score = float(np.clip(round(rng.normal(mean, noise_sd), 1), 0.0, 10.0))
                    review_rows.append(
                        {
                            "review_id": review_id,
                            "title": f"Album {review_id}",
                            "score": score,
                            "is_best_new_music": int(score >= 8.5),
                            "author": f"author_{a_idx}",
                            "author_type": "contributor",
                            "publication_date": f"{year}-06-01",
                            "publication_year": year,
                        }
                    )
                    artist_rows.append({"review_id": review_id, "artist": f"Artist {review_id % 97}"})
                    genre_rows.append({"review_id": review_id, "genre": genre})

    return {
        "reviews": pd.DataFrame(review_rows),
        "artists": pd.DataFrame(artist_rows),
        "genres": pd.DataFrame(genre_rows),
    }


def write_sqlite(tables: Mapping[str, pd.DataFrame], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        for name, df in tables.items():
            df.rename(columns=_SQLITE_RENAMES).to_sql(name, conn, index=False, if_exists="replace")
        conn.commit()
    finally:
        conn.close()

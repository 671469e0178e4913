from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

import pandas as pd

from reviewmix.config import ARTIST_COLUMNS, COLUMN_ALIASES, GENRE_COLUMNS, REVIEW_COLUMNS
from reviewmix.data.coding import canonicalize_columns
from reviewmix.data.validate import assert_required_columns
from reviewmix.utils.logging import get_logger

logger = get_logger(__name__)

TABLE_COLUMNS = {
    "reviews": REVIEW_COLUMNS,
    "artists": ARTIST_COLUMNS,
    "genres": GENRE_COLUMNS,
}


@contextmanager
def open_dataset(path: Path) -> Iterator[sqlite3.Connection]:
    """Open the review database read-only; the connection is closed on exit."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")
    conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
    logger.info("Opened dataset %s", path)
    try:
        yield conn
    finally:
        conn.close()


def load_table(conn: sqlite3.Connection, table: str) -> pd.DataFrame:
    if table not in TABLE_COLUMNS:
        raise ValueError(f"Unknown table: {table}")
    df = pd.read_sql_query(f"SELECT * FROM {table}", conn)
    df = canonicalize_columns(df, COLUMN_ALIASES)
    required = TABLE_COLUMNS[table]
    assert_required_columns(df, required)
    logger.info("Loaded %d rows from '%s'", len(df), table)
    return df[required].copy()


def load_tables(conn: sqlite3.Connection) -> Dict[str, pd.DataFrame]:
    return {table: load_table(conn, table) for table in TABLE_COLUMNS}


def join_tables(tables: Dict[str, pd.DataFrame]) -> pd.DataFrame:
    """Left-join reviews <- artists <- genres on review_id.

    The result has one row per (review_id, artist, genre) combination; reviews
    without artists or genres keep a single row with NA in those columns.
    """

    reviews = tables["reviews"].drop_duplicates()
    artists = tables["artists"][ARTIST_COLUMNS].drop_duplicates()
    genres = tables["genres"][GENRE_COLUMNS].drop_duplicates()

    joined = reviews.merge(artists, on="review_id", how="left")
    joined = joined.merge(genres, on="review_id", how="left")
    return joined.reset_index(drop=True)

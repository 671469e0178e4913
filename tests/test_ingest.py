import sqlite3
from pathlib import Path

import pandas as pd
import pytest

from reviewmix.config import ARTIST_COLUMNS, GENRE_COLUMNS, REVIEW_COLUMNS
from reviewmix.data.coding import canonicalize_columns, coerce_bool_flag, coerce_categorical
from reviewmix.data.ingest import join_tables, load_tables, open_dataset
from reviewmix.data.validate import assert_non_empty, assert_required_columns


def test_load_tables_canonicalizes_public_spelling(synthetic_db: Path):
    with open_dataset(synthetic_db) as conn:
        tables = load_tables(conn)

    assert tables["reviews"].columns.tolist() == REVIEW_COLUMNS
    assert tables["artists"].columns.tolist() == ARTIST_COLUMNS
    assert tables["genres"].columns.tolist() == GENRE_COLUMNS
    assert len(tables["reviews"]) == 3 * 5 * 2 * 8


def test_dataset_handle_is_read_only_and_released(synthetic_db: Path):
    with open_dataset(synthetic_db) as conn:
        with pytest.raises(sqlite3.OperationalError):
            conn.execute("DELETE FROM reviews")
    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")


def test_open_dataset_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        with open_dataset(tmp_path / "missing.sqlite"):
            pass


def test_join_keeps_reviews_without_genre(synthetic_db: Path):
    with open_dataset(synthetic_db) as conn:
        tables = load_tables(conn)
    tables["genres"] = tables["genres"].iloc[1:]
    joined = join_tables(tables)
    assert len(joined) == len(tables["reviews"])
    assert joined["genre"].isna().sum() == 1


def test_canonicalize_columns_rejects_collisions():
    df = pd.DataFrame(columns=["pub_year", "publication_year"])
    with pytest.raises(ValueError):
        canonicalize_columns(df, {"pub_year": "publication_year"})


def test_coerce_bool_flag():
    out = coerce_bool_flag(pd.Series([1, 0, "True", "no", None, 1.0]))
    assert out.tolist() == [True, False, True, False, pd.NA, True]
    with pytest.raises(ValueError):
        coerce_bool_flag(pd.Series([1, 2]))


def test_coerce_categorical_sorts_levels():
    out = coerce_categorical(pd.Series(["Rock", " Jazz", "", None, "Rock"]))
    assert list(out.cat.categories) == ["Jazz", "Rock"]
    assert out.isna().tolist() == [False, False, True, True, False]


def test_validation_helpers():
    df = pd.DataFrame({"score": [7.5]})
    assert_required_columns(df, ["score"])
    with pytest.raises(ValueError, match="author"):
        assert_required_columns(df, ["score", "author"])
    with pytest.raises(ValueError, match="Empty reviews"):
        assert_non_empty(df.iloc[0:0], "reviews")

import pandas as pd
import pytest

from reviewmix.evaluation.descriptive import (
    genre_mix_by_year,
    low_score_rate,
    low_score_rate_by_year,
    score_summary_by_genre,
)


@pytest.fixture
def small_reviews():
    scores_g = [1.0, 2.5, 3.9, 4.0, 5.0, 6.0, 7.0, 8.0, 9.0, 10.0]
    scores_h = [3.0, 8.0]
    return pd.DataFrame(
        {
            "genre": pd.Categorical(["G"] * 10 + ["H"] * 2),
            "score": scores_g + scores_h,
            "publication_year": [2001] * 5 + [2002] * 5 + [2001, 2002],
            "author": ["a", "b"] * 6,
            "is_best_new_music": pd.array([False] * 9 + [True, False, True], dtype="boolean"),
        }
    )


def test_percent_low_exact(small_reviews):
    rate = low_score_rate(small_reviews, by="genre", threshold=4.0).set_index("genre")
    assert rate.loc["G", "n"] == 10
    assert rate.loc["G", "n_low"] == 3
    assert rate.loc["G", "percent_low"] == 30.0
    assert rate.loc["H", "percent_low"] == 50.0


def test_low_score_threshold_is_strict(small_reviews):
    rate = low_score_rate(small_reviews, by="genre", threshold=3.9).set_index("genre")
    assert rate.loc["G", "n_low"] == 2


def test_low_score_rate_by_year(small_reviews):
    rate = low_score_rate_by_year(small_reviews, threshold=4.0)
    assert rate["publication_year"].tolist() == [2001, 2002]
    assert rate["n"].tolist() == [6, 6]
    assert rate["n_low"].tolist() == [4, 0]


def test_genre_mix_shares_sum_to_100(small_reviews):
    mix = genre_mix_by_year(small_reviews)
    totals = mix.groupby("publication_year")["share_pct"].sum()
    assert totals.tolist() == pytest.approx([100.0, 100.0])
    row = mix[(mix["publication_year"] == 2001) & (mix["genre"] == "H")].iloc[0]
    assert row["n"] == 1
    assert row["share_pct"] == pytest.approx(100.0 / 6)


def test_score_summary_by_genre(small_reviews):
    summary = score_summary_by_genre(small_reviews).set_index("genre")
    assert summary.loc["G", "n"] == 10
    assert summary.loc["G", "best_new_music_pct"] == pytest.approx(10.0)
    assert summary.loc["H", "mean"] == pytest.approx(5.5)

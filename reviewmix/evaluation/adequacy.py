from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

import pandas as pd

from reviewmix.config import GENRE_COL, GROUP_COL, MIN_GENRE_AUTHORS, MIN_GENRE_OBS
from reviewmix.errors import InsufficientDataError


@dataclass(frozen=True)
class GenreAdequacy:
    genre: str
    n: int
    n_authors: int
    adequate: bool
    reason: str


def evaluate_genre_adequacy(
    df: pd.DataFrame,
    *,
    min_authors: int = MIN_GENRE_AUTHORS,
    min_obs: int = MIN_GENRE_OBS,
) -> Dict[str, GenreAdequacy]:
    """Check that each observed genre level can support a random-intercept fit."""

    out: Dict[str, GenreAdequacy] = {}
    for genre, gdf in df.groupby(GENRE_COL, observed=True, sort=True):
        n = int(len(gdf))
        n_authors = int(gdf[GROUP_COL].nunique(dropna=True))

        reasons = []
        if n < int(min_obs):
            reasons.append(f"n<{int(min_obs)}")
        if n_authors < int(min_authors):
            reasons.append(f"authors<{int(min_authors)}")

        out[str(genre)] = GenreAdequacy(
            genre=str(genre),
            n=n,
            n_authors=n_authors,
            adequate=(len(reasons) == 0),
            reason=";".join(reasons),
        )
    return out


def assert_genre_adequacy(
    df: pd.DataFrame,
    *,
    min_authors: int = MIN_GENRE_AUTHORS,
    min_obs: int = MIN_GENRE_OBS,
) -> None:
    adequacy = evaluate_genre_adequacy(df, min_authors=min_authors, min_obs=min_obs)
    failing = {g: a.reason for g, a in adequacy.items() if not a.adequate}
    if failing:
        raise InsufficientDataError(failing)

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from reviewmix.data.clean import build_modeling_table
from reviewmix.data.ingest import join_tables
from reviewmix.data.synthetic import make_synthetic_tables, write_sqlite
from reviewmix.models.mixed import FitResult
from reviewmix.models.specs import ModelSpec


def modeling_table(**kwargs) -> pd.DataFrame:
    modeling, _ = build_modeling_table(join_tables(make_synthetic_tables(**kwargs)))
    return modeling


@pytest.fixture(scope="session")
def null_effect_data() -> pd.DataFrame:
    # 3 genres x 5 years x 2 authors per cell (pool of 6 crossing genres); no genre or year effect.
    return modeling_table(
        genres=("A", "B", "C"),
        years=range(2010, 2015),
        authors_per_genre=2,
        shared_authors=6,
        reviews_per_cell=8,
        author_sd=0.6,
        noise_sd=1.0,
        seed=11,
    )


@pytest.fixture(scope="session")
def homogeneous_data() -> pd.DataFrame:
    # Every score from one distribution: no genre, year or author effect.
    return modeling_table(
        genres=("A", "B", "C"),
        years=range(2010, 2015),
        authors_per_genre=2,
        shared_authors=6,
        reviews_per_cell=8,
        author_sd=0.0,
        noise_sd=1.0,
        seed=1,
    )


@pytest.fixture(scope="session")
def trend_data() -> pd.DataFrame:
    # Genre X rises with year, genre Y is flat.
    return modeling_table(
        genres=("X", "Y"),
        years=range(2000, 2010),
        authors_per_genre=4,
        reviews_per_cell=6,
        base_score=6.0,
        genre_slopes={"X": 0.25},
        author_sd=0.4,
        noise_sd=0.7,
        seed=7,
    )


@pytest.fixture
def synthetic_db(tmp_path: Path) -> Path:
    path = tmp_path / "reviews.sqlite"
    write_sqlite(make_synthetic_tables(seed=3), path)
    return path


def fake_fit(
    spec: ModelSpec,
    *,
    aicc: float = 100.0,
    k_params: int = 3,
    llf: float = -50.0,
    fe_params: dict = None,
    fe_cov: np.ndarray = None,
    random_var: float = 0.0,
    residual_var: float = 1.0,
    fixed_var: float = 0.0,
) -> FitResult:
    params = pd.Series(fe_params or {"Intercept": 0.0}, dtype=float)
    names = list(params.index)
    cov = fe_cov if fe_cov is not None else np.eye(len(names)) * 0.01
    return FitResult(
        spec=spec,
        n_obs=100,
        n_groups=10,
        k_params=k_params,
        llf=llf,
        aic=aicc,
        aicc=aicc,
        bic=aicc,
        fe_params=params,
        fe_cov=pd.DataFrame(cov, index=names, columns=names),
        random_intercept_var=random_var,
        residual_var=residual_var,
        fixed_part_var=fixed_var,
        reml=False,
    )


@pytest.fixture
def make_fit():
    return fake_fit

"""Model comparison engine: fit the candidate family, rank by AICc, report."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from reviewmix.config import (
    CI_LEVEL,
    GENRE_COL,
    GROUP_COL,
    MIN_GENRE_AUTHORS,
    MIN_GENRE_OBS,
    MIXEDLM_MAXITER,
    REML,
    TARGET_COL,
    YEAR_COL,
    YEAR_Z_COL,
)
from reviewmix.data.clean import standardize_year
from reviewmix.data.validate import assert_non_empty, assert_required_columns
from reviewmix.evaluation.adequacy import assert_genre_adequacy
from reviewmix.evaluation.selection import interaction_vs_null, rank_models, select_best
from reviewmix.evaluation.trends import genre_trends
from reviewmix.evaluation.variance import r_squared, random_intercept_test
from reviewmix.models import mixed
from reviewmix.models.mixed import FitResult
from reviewmix.models.specs import MODEL_SPECS, ModelSpec
from reviewmix.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ComparisonReport:
    fits: Dict[str, FitResult]
    failures: Dict[str, str]
    ranking: pd.DataFrame
    selected: Optional[str]
    r2: Dict[str, Dict[str, float]]
    genres: List[str]
    year_mean: float
    year_scale: float
    genre_trends: pd.DataFrame = field(default_factory=pd.DataFrame)
    interaction_trends: pd.DataFrame = field(default_factory=pd.DataFrame)
    random_effect_test: Optional[Dict[str, object]] = None
    interaction_vs_null: Dict[str, object] = field(default_factory=dict)

    def model_table(self) -> pd.DataFrame:
        """Ranked models with R^2, followed by failed models (status=failed)."""

        table = self.ranking[["rank", "model_id", "formula", "k_params", "aicc", "delta_aicc", "akaike_weight"]].copy()
        table["r2_marginal"] = table["model_id"].map(lambda m: self.r2[m]["r2_marginal"])
        table["r2_conditional"] = table["model_id"].map(lambda m: self.r2[m]["r2_conditional"])
        table["status"] = "ok"

        if self.failures:
            failed = pd.DataFrame(
                [
                    {
                        "rank": np.nan,
                        "model_id": model_id,
                        "formula": ModelSpec.from_id(model_id).formula,
                        "status": f"failed: {reason}",
                    }
                    for model_id, reason in sorted(self.failures.items())
                ]
            )
            table = pd.concat([table, failed], ignore_index=True)
        return table

    def summary(self) -> Dict[str, object]:
        return {
            "selected_model": self.selected,
            "ranking": self.ranking.to_dict(orient="records"),
            "failures": dict(self.failures),
            "r2": self.r2,
            "random_effect_test": self.random_effect_test,
            "interaction_vs_null": self.interaction_vs_null,
            "genres": list(self.genres),
            "year_mean": self.year_mean,
            "year_scale": self.year_scale,
            "warnings": {m: list(f.warnings) for m, f in self.fits.items() if f.warnings},
        }


def prepare_model_data(data: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, float]]:
    """Restrict to model columns with observed-only, sorted genre levels.

    ``year_z`` is recomputed from publication year on the rows that remain, so
    it is standardized on exactly the data being fit. Returns the table and the
    year scaling (``mean``, ``scale``).
    """

    columns = [TARGET_COL, GENRE_COL, YEAR_COL, GROUP_COL]
    assert_required_columns(data, columns)
    df = data[columns].copy()
    n_before = len(df)
    df = df.dropna().reset_index(drop=True)
    if len(df) < n_before:
        logger.warning("Dropped %d rows with missing model fields", n_before - len(df))
    assert_non_empty(df, "model data")

    levels = sorted(df[GENRE_COL].astype(str).unique().tolist())
    df[GENRE_COL] = pd.Categorical(df[GENRE_COL].astype(str), categories=levels)
    df[GROUP_COL] = df[GROUP_COL].astype(str)
    df[TARGET_COL] = df[TARGET_COL].astype(float)
    df[YEAR_COL] = df[YEAR_COL].astype(float)
    df, scaling = standardize_year(df)
    df[YEAR_Z_COL] = df[YEAR_Z_COL].astype(float)
    return df, scaling


def compare_models(
    data: pd.DataFrame,
    specs: Sequence[ModelSpec] = MODEL_SPECS,
    *,
    reml: bool = REML,
    maxiter: int = MIXEDLM_MAXITER,
    ci_level: float = CI_LEVEL,
    min_authors: int = MIN_GENRE_AUTHORS,
    min_obs: int = MIN_GENRE_OBS,
) -> ComparisonReport:
    """Fit every spec, rank by AICc and describe the selected model.

    ``data`` holds review records (score, genre, author, publication year).
    Raises InsufficientDataError when a genre level has too few authors or
    observations. A model that fails to converge is left out of the ranking
    and listed in ``failures``; the others are still compared.
    """

    df, scaling = prepare_model_data(data)
    year_scale = scaling["scale"]
    assert_genre_adequacy(df, min_authors=min_authors, min_obs=min_obs)
    genres = list(df[GENRE_COL].cat.categories)

    logger.info("Fitting %d models on %d reviews, %d genres, %d authors",
                len(specs), len(df), len(genres), df[GROUP_COL].nunique())
    fits, failures = mixed.fit_models(specs, df, reml=reml, maxiter=maxiter)

    ranking = rank_models(fits)
    selected = select_best(ranking)
    r2 = {model_id: r_squared(fit) for model_id, fit in fits.items()}

    report = ComparisonReport(
        fits=fits,
        failures=failures,
        ranking=ranking,
        selected=selected,
        r2=r2,
        genres=genres,
        year_mean=scaling["mean"],
        year_scale=year_scale,
        interaction_vs_null=interaction_vs_null(fits, failures),
    )

    if selected is not None:
        report.genre_trends = genre_trends(fits[selected], genres, year_scale=year_scale, ci_level=ci_level)
        logger.info("Selected model: %s", selected)
    else:
        logger.warning("No model could be fitted; nothing to select.")

    inter_id = ModelSpec.INTERACTION.model_id
    if inter_id in fits:
        report.interaction_trends = genre_trends(fits[inter_id], genres, year_scale=year_scale, ci_level=ci_level)

    fixed_id = ModelSpec.FIXED_EFFECTS_ONLY.model_id
    if inter_id in fits and fixed_id in fits:
        if fits[inter_id].reml:
            logger.warning("Skipping random-intercept test: REML likelihoods are not comparable with OLS.")
        else:
            report.random_effect_test = random_intercept_test(fits[inter_id], fits[fixed_id], ci_level=ci_level)

    logger.info(report.interaction_vs_null["message"])
    return report

from __future__ import annotations

from typing import Dict, Iterable, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from reviewmix.config import CI_LEVEL, GENRE_COL, YEAR_COL, YEAR_Z_COL
from reviewmix.models.mixed import FitResult

INTERCEPT_TERM = "Intercept"


def _genre_term(genre: str) -> str:
    # Treatment coding names, e.g. "genre[T.Rock]".
    return f"{GENRE_COL}[T.{genre}]"


def _contrast(fit: FitResult, weights: Dict[str, float]) -> np.ndarray:
    names = list(fit.fe_params.index)
    c = np.zeros(len(names), dtype=float)
    for term, w in weights.items():
        if term in names:
            c[names.index(term)] = w
    return c


def _estimate(fit: FitResult, c: np.ndarray, z: float) -> Dict[str, float]:
    est = float(c @ fit.fe_params.to_numpy())
    var = float(c @ fit.fe_cov.to_numpy() @ c)
    se = float(np.sqrt(max(var, 0.0)))
    return {"estimate": est, "se": se, "ci_low": est - z * se, "ci_high": est + z * se}


def genre_trends(
    fit: FitResult,
    genres: Sequence[str],
    *,
    year_scale: float = 1.0,
    ci_level: float = CI_LEVEL,
) -> pd.DataFrame:
    """Per-genre intercept (at mean year) and year slope with normal CIs.

    Each estimate is a linear contrast of the fixed effects: the reference
    level's term plus the genre's offset (or interaction) term when the model
    has one. ``year_slope`` is per SD of publication year; the ``_per_year``
    columns divide by ``year_scale``. Models without a year term get NaN slopes.
    """

    if not year_scale > 0:
        raise ValueError(f"year_scale must be positive, got {year_scale}")

    z = float(stats.norm.ppf(0.5 + ci_level / 2.0))
    rows = []
    for genre in genres:
        g_term = _genre_term(str(genre))
        intercept = _estimate(fit, _contrast(fit, {INTERCEPT_TERM: 1.0, g_term: 1.0}), z)

        row = {
            "model_id": fit.model_id,
            "genre": str(genre),
            "intercept": intercept["estimate"],
            "intercept_se": intercept["se"],
            "intercept_ci_low": intercept["ci_low"],
            "intercept_ci_high": intercept["ci_high"],
        }

        if fit.spec.uses_year:
            slope = _estimate(fit, _contrast(fit, {YEAR_Z_COL: 1.0, f"{g_term}:{YEAR_Z_COL}": 1.0}), z)
        else:
            slope = {"estimate": np.nan, "se": np.nan, "ci_low": np.nan, "ci_high": np.nan}

        row.update(
            {
                "year_slope": slope["estimate"],
                "year_slope_se": slope["se"],
                "year_slope_ci_low": slope["ci_low"],
                "year_slope_ci_high": slope["ci_high"],
                "year_slope_per_year": slope["estimate"] / year_scale,
                "year_slope_per_year_ci_low": slope["ci_low"] / year_scale,
                "year_slope_per_year_ci_high": slope["ci_high"] / year_scale,
            }
        )
        rows.append(row)
    return pd.DataFrame(rows)


def slopes_distinguishable(trends: pd.DataFrame, genre_a: str, genre_b: str) -> bool:
    """True when the two genres' year-slope confidence intervals do not overlap."""

    by_genre = trends.set_index("genre")
    a = by_genre.loc[genre_a]
    b = by_genre.loc[genre_b]
    if np.isnan(a["year_slope"]) or np.isnan(b["year_slope"]):
        return False
    return bool(a["year_slope_ci_low"] > b["year_slope_ci_high"] or b["year_slope_ci_low"] > a["year_slope_ci_high"])


def genre_fitted_lines(
    fit: FitResult,
    genres: Sequence[str],
    years: Iterable[int],
    *,
    year_mean: float,
    year_scale: float,
    ci_level: float = CI_LEVEL,
) -> pd.DataFrame:
    """Fitted score per genre and publication year with pointwise normal CIs.

    Each point is the contrast intercept + year_z * slope for its genre, so the
    band carries the intercept and slope uncertainty and their covariance.
    """

    if not year_scale > 0:
        raise ValueError(f"year_scale must be positive, got {year_scale}")

    z = float(stats.norm.ppf(0.5 + ci_level / 2.0))
    grid = sorted({int(y) for y in years})
    rows = []
    for genre in genres:
        g_term = _genre_term(str(genre))
        for year in grid:
            weights = {INTERCEPT_TERM: 1.0, g_term: 1.0}
            if fit.spec.uses_year:
                year_z = (year - year_mean) / year_scale
                weights[YEAR_Z_COL] = year_z
                weights[f"{g_term}:{YEAR_Z_COL}"] = year_z
            point = _estimate(fit, _contrast(fit, weights), z)
            rows.append(
                {
                    "model_id": fit.model_id,
                    "genre": str(genre),
                    YEAR_COL: year,
                    "fitted": point["estimate"],
                    "fitted_se": point["se"],
                    "ci_low": point["ci_low"],
                    "ci_high": point["ci_high"],
                }
            )
    return pd.DataFrame(rows)

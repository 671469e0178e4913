from __future__ import annotations

from typing import Dict, Mapping, Optional

import numpy as np
import pandas as pd

from reviewmix.models.mixed import FitResult
from reviewmix.models.specs import ModelSpec

RANKING_COLUMNS = [
    "rank",
    "model_id",
    "formula",
    "random_intercept",
    "n_obs",
    "k_params",
    "llf",
    "aic",
    "aicc",
    "bic",
    "delta_aicc",
    "akaike_weight",
]


def rank_models(fits: Mapping[str, FitResult]) -> pd.DataFrame:
    """Rank fitted models by AICc (lower is better).

    Ties go to the model with fewer parameters, then to the lower complexity
    rank of its spec. Failed fits are never passed in, so they are never ranked.
    """

    if not fits:
        return pd.DataFrame(columns=RANKING_COLUMNS)

    rows = []
    for fit in fits.values():
        rows.append(
            {
                "model_id": fit.model_id,
                "formula": fit.spec.formula,
                "random_intercept": fit.spec.random_intercept,
                "n_obs": fit.n_obs,
                "k_params": fit.k_params,
                "llf": fit.llf,
                "aic": fit.aic,
                "aicc": fit.aicc,
                "bic": fit.bic,
                "_complexity": fit.spec.complexity,
            }
        )
    df = pd.DataFrame(rows)
    df = df.sort_values(["aicc", "k_params", "_complexity"], kind="mergesort").reset_index(drop=True)

    best = float(df["aicc"].iloc[0])
    df["delta_aicc"] = df["aicc"] - best
    rel = np.exp(-0.5 * df["delta_aicc"].to_numpy(dtype=float))
    total = float(np.nansum(rel))
    df["akaike_weight"] = rel / total if total > 0 else np.nan
    df["rank"] = np.arange(1, len(df) + 1)
    return df[RANKING_COLUMNS]


def select_best(ranking: pd.DataFrame) -> Optional[str]:
    if ranking.empty:
        return None
    return str(ranking["model_id"].iloc[0])


def interaction_vs_null(fits: Mapping[str, FitResult], failures: Mapping[str, str]) -> Dict[str, object]:
    """Explicit verdict on whether genre x year interaction beats the null model."""

    inter_id = ModelSpec.INTERACTION.model_id
    null_id = ModelSpec.NULL.model_id
    verdict: Dict[str, object] = {
        "interaction_aicc": np.nan,
        "null_aicc": np.nan,
        "delta": np.nan,
        "interaction_preferred": None,
    }

    missing = [m for m in (inter_id, null_id) if m not in fits]
    if missing:
        reasons = "; ".join(f"{m}: {failures.get(m, 'not fitted')}" for m in missing)
        verdict["message"] = f"Cannot compare interaction and null models; failed fits: {reasons}."
        return verdict

    inter = fits[inter_id].aicc
    null = fits[null_id].aicc
    delta = inter - null
    preferred = bool(inter < null)
    verdict.update(
        {
            "interaction_aicc": float(inter),
            "null_aicc": float(null),
            "delta": float(delta),
            "interaction_preferred": preferred,
        }
    )
    if preferred:
        verdict["message"] = (
            f"Interaction model improves on the null model (AICc {inter:.2f} vs {null:.2f}, delta {delta:.2f})."
        )
    else:
        verdict["message"] = (
            "Interaction model does NOT improve on the null model "
            f"(AICc {inter:.2f} vs {null:.2f}, delta {delta:+.2f}); "
            "genre x year terms are not justified by AICc."
        )
    return verdict

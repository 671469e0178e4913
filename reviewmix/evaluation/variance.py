from __future__ import annotations

from typing import Dict

import numpy as np
from scipy import stats

from reviewmix.config import CI_LEVEL
from reviewmix.models.mixed import FitResult


def r_squared(fit: FitResult) -> Dict[str, float]:
    """Marginal and conditional R^2 (Nakagawa & Schielzeth, random intercept).

    marginal = var_f / (var_f + var_a + var_e)
    conditional = (var_f + var_a) / (var_f + var_a + var_e)
    """

    var_f = fit.fixed_part_var
    var_a = fit.random_intercept_var
    var_e = fit.residual_var
    total = var_f + var_a + var_e
    if not total > 0:
        return {"r2_marginal": np.nan, "r2_conditional": np.nan}
    return {
        "r2_marginal": float(var_f / total),
        "r2_conditional": float((var_f + var_a) / total),
    }


def intraclass_correlation(fit: FitResult) -> float:
    denom = fit.random_intercept_var + fit.residual_var
    if not denom > 0:
        return np.nan
    return float(fit.random_intercept_var / denom)


def random_intercept_test(mixed: FitResult, fixed: FitResult, *, ci_level: float = CI_LEVEL) -> Dict[str, object]:
    """Likelihood-ratio test of the per-author random intercept.

    Both fits must share the same fixed part and be fit by ML. The variance
    is tested on the boundary of its space, so the p-value uses the 50:50
    mixture of chi2(0) and chi2(1).
    """

    if not mixed.spec.random_intercept or fixed.spec.random_intercept:
        raise ValueError("random_intercept_test expects (mixed, fixed-effects-only) fits.")
    if mixed.spec.rhs != fixed.spec.rhs:
        raise ValueError(
            f"Fixed parts differ: {mixed.spec.formula!r} vs {fixed.spec.formula!r}."
        )
    if mixed.reml:
        raise ValueError("Likelihood-ratio test needs ML fits; refit the mixed model with reml=False.")

    lr = max(0.0, 2.0 * (mixed.llf - fixed.llf))
    p_value = 1.0 if lr == 0 else 0.5 * float(stats.chi2.sf(lr, df=1))
    alpha = 1.0 - ci_level
    return {
        "mixed_model": mixed.model_id,
        "fixed_model": fixed.model_id,
        "lr_stat": float(lr),
        "df": 1,
        "p_value": p_value,
        "alpha": float(alpha),
        "justified": bool(p_value < alpha),
        "icc": intraclass_correlation(mixed),
    }

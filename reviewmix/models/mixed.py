from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from reviewmix.config import GROUP_COL, MIXEDLM_FALLBACK_METHODS, MIXEDLM_MAXITER, MIXEDLM_METHODS, REML
from reviewmix.errors import ConvergenceError
from reviewmix.models.specs import ModelSpec
from reviewmix.utils.logging import get_logger

logger = get_logger(__name__)

# Optimizer failures statsmodels surfaces as exceptions rather than converged=False.
_FIT_ERRORS = (np.linalg.LinAlgError, ValueError, FloatingPointError, OverflowError)


@dataclass(frozen=True, eq=False)
class FitResult:
    spec: ModelSpec
    n_obs: int
    n_groups: int
    k_params: int
    llf: float
    aic: float
    aicc: float
    bic: float
    fe_params: pd.Series
    fe_cov: pd.DataFrame
    random_intercept_var: float
    residual_var: float
    fixed_part_var: float
    reml: bool
    warnings: Tuple[str, ...] = ()
    result: object = field(default=None, repr=False)

    @property
    def model_id(self) -> str:
        return self.spec.model_id


def information_criteria(llf: float, k: int, n: int) -> Dict[str, float]:
    """AIC, small-sample corrected AICc and BIC from a log-likelihood."""

    aic = -2.0 * llf + 2.0 * k
    bic = -2.0 * llf + k * np.log(n)
    denom = n - k - 1
    aicc = aic + (2.0 * k * (k + 1)) / denom if denom > 0 else np.inf
    return {"aic": float(aic), "aicc": float(aicc), "bic": float(bic)}


def _check_design_rank(spec: ModelSpec, exog: np.ndarray) -> None:
    rank = int(np.linalg.matrix_rank(exog))
    if rank < exog.shape[1]:
        raise ConvergenceError(spec.model_id, f"collinear design matrix (rank {rank} < {exog.shape[1]} columns)")


def _usable(result) -> bool:
    return bool(getattr(result, "converged", False)) and bool(np.isfinite(result.llf))


def _fit_mixedlm(
    spec: ModelSpec,
    data: pd.DataFrame,
    reml: bool,
    methods: Sequence[str],
    maxiter: int,
    fallback: Sequence[str],
) -> Tuple[object, List[str]]:
    """Fit with ``methods``; retry once with ``fallback`` when the first fit is unusable.

    Gradient optimizers can stop at a zero random-intercept variance with an
    infinite log-likelihood or a singular Hessian; the derivative-free
    ``fallback`` chain reaches the same boundary estimate with a finite one.
    """

    model = smf.mixedlm(spec.formula, data, groups=data[GROUP_COL].astype(str))
    _check_design_rank(spec, np.asarray(model.exog, dtype=float))

    notes: List[str] = []
    if list(fallback) and list(fallback) != list(methods):
        try:
            result = model.fit(reml=reml, method=list(methods), maxiter=maxiter)
        except _FIT_ERRORS as exc:
            reason = f"{type(exc).__name__}: {exc}"
        else:
            if _usable(result):
                return result, notes
            reason = f"converged={bool(getattr(result, 'converged', False))}, llf={float(result.llf)}"
        notes.append(f"{'/'.join(methods)} unusable ({reason}); refit with {'/'.join(fallback)}")
        methods = fallback

    result = model.fit(reml=reml, method=list(methods), maxiter=maxiter)
    if not bool(getattr(result, "converged", False)):
        raise ConvergenceError(spec.model_id, "optimizer did not report convergence")
    return result, notes


def _fit_ols(spec: ModelSpec, data: pd.DataFrame):
    model = smf.ols(spec.formula, data)
    _check_design_rank(spec, np.asarray(model.exog, dtype=float))
    return model.fit()


def _fixed_effect_covariance(result, names: List[str]) -> pd.DataFrame:
    k = len(names)
    cov = np.asarray(result.cov_params(), dtype=float)[:k, :k]
    return pd.DataFrame(cov, index=names, columns=names)


def fit_model(
    spec: ModelSpec,
    data: pd.DataFrame,
    *,
    reml: bool = REML,
    methods: Sequence[str] = tuple(MIXEDLM_METHODS),
    maxiter: int = MIXEDLM_MAXITER,
    fallback: Sequence[str] = tuple(MIXEDLM_FALLBACK_METHODS),
) -> FitResult:
    """Fit one candidate model.

    Mixed specs use a linear mixed model with a per-author random intercept;
    the fixed-effects-only spec uses OLS. Raises ConvergenceError when the fit
    is unusable. A mixed fit that stops at the zero-variance boundary with
    ``methods`` is refit with ``fallback``. Boundary warnings and refits are
    recorded on the result, not raised.
    """

    notes: List[str] = []
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            if spec.random_intercept:
                result, notes = _fit_mixedlm(spec, data, reml, methods, maxiter, fallback)
            else:
                result = _fit_ols(spec, data)
        except _FIT_ERRORS as exc:
            raise ConvergenceError(spec.model_id, f"{type(exc).__name__}: {exc}") from exc

    messages = tuple(sorted({str(w.message) for w in caught})) + tuple(notes)
    for msg in messages:
        logger.info("Model %s warning: %s", spec.model_id, msg)

    llf = float(result.llf)
    if not np.isfinite(llf):
        raise ConvergenceError(spec.model_id, f"non-finite log-likelihood ({llf})")

    exog = np.asarray(result.model.exog, dtype=float)
    n_obs = int(exog.shape[0])

    if spec.random_intercept:
        fe_params = pd.Series(np.asarray(result.fe_params, dtype=float), index=list(result.model.exog_names))
        random_var = float(np.asarray(result.cov_re, dtype=float)[0, 0])
        residual_var = float(result.scale)
        n_groups = int(result.model.n_groups)
        # fixed effects + residual variance + random-intercept variance
        k_params = int(len(fe_params)) + 2
    else:
        fe_params = pd.Series(np.asarray(result.params, dtype=float), index=list(result.model.exog_names))
        random_var = 0.0
        residual_var = float(result.scale)
        n_groups = int(data[GROUP_COL].nunique())
        k_params = int(len(fe_params)) + 1

    fe_cov = _fixed_effect_covariance(result, list(fe_params.index))
    if not np.all(np.isfinite(fe_cov.to_numpy())):
        raise ConvergenceError(spec.model_id, "singular fixed-effect covariance")
    if not (np.isfinite(random_var) and np.isfinite(residual_var)):
        raise ConvergenceError(spec.model_id, "non-finite variance components")

    fixed_part = exog @ fe_params.to_numpy()
    ic = information_criteria(llf, k_params, n_obs)

    return FitResult(
        spec=spec,
        n_obs=n_obs,
        n_groups=n_groups,
        k_params=k_params,
        llf=llf,
        aic=ic["aic"],
        aicc=ic["aicc"],
        bic=ic["bic"],
        fe_params=fe_params,
        fe_cov=fe_cov,
        random_intercept_var=max(random_var, 0.0),
        residual_var=residual_var,
        fixed_part_var=float(np.var(fixed_part, ddof=0)),
        reml=bool(reml) if spec.random_intercept else False,
        warnings=messages,
        result=result,
    )


def fit_models(
    specs: Sequence[ModelSpec],
    data: pd.DataFrame,
    *,
    reml: bool = REML,
    methods: Optional[Sequence[str]] = None,
    maxiter: int = MIXEDLM_MAXITER,
) -> Tuple[Dict[str, FitResult], Dict[str, str]]:
    """Fit each spec independently; a failed fit is recorded and skipped."""

    fits: Dict[str, FitResult] = {}
    failures: Dict[str, str] = {}
    for spec in specs:
        try:
            fits[spec.model_id] = fit_model(
                spec, data, reml=reml, methods=tuple(methods or MIXEDLM_METHODS), maxiter=maxiter
            )
        except ConvergenceError as exc:
            failures[spec.model_id] = exc.reason
            logger.warning("Excluding model %s from ranking: %s", spec.model_id, exc.reason)
    return fits, failures

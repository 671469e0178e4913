from __future__ import annotations

from typing import Dict


class ReviewMixError(Exception):
    """Base class for analysis errors raised by reviewmix."""


class ConvergenceError(ReviewMixError):
    """A model fit did not reach a usable optimum.

    A fit that raises this is excluded from model ranking; the caller records
    ``model_id`` and ``reason`` and carries on with the remaining models.
    """

    def __init__(self, model_id: str, reason: str):
        self.model_id = model_id
        self.reason = reason
        super().__init__(f"Model '{model_id}' failed to converge: {reason}")


class InsufficientDataError(ReviewMixError):
    """One or more genre levels cannot support a random-intercept fit."""

    def __init__(self, levels: Dict[str, str]):
        # genre level -> reason, e.g. {"Jazz": "authors<2"}
        self.levels = dict(levels)
        detail = ", ".join(f"{k} ({v})" for k, v in sorted(self.levels.items()))
        super().__init__(f"Insufficient data for genre levels: {detail}")

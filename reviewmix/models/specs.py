from __future__ import annotations

from enum import Enum
from typing import List

from reviewmix.config import GENRE_COL, TARGET_COL, YEAR_Z_COL


class ModelSpec(Enum):
    """The fixed family of candidate models.

    Value: (model_id, right-hand side, random intercept per author, complexity).
    Lower complexity is simpler and wins AICc ties.
    """

    INTERACTION = ("interaction", f"{GENRE_COL} * {YEAR_Z_COL}", True, 6)
    ADDITIVE = ("additive", f"{GENRE_COL} + {YEAR_Z_COL}", True, 4)
    GENRE_ONLY = ("genre_only", GENRE_COL, True, 3)
    YEAR_ONLY = ("year_only", YEAR_Z_COL, True, 2)
    NULL = ("null", "1", True, 1)
    FIXED_EFFECTS_ONLY = ("fixed_effects_only", f"{GENRE_COL} * {YEAR_Z_COL}", False, 5)

    def __init__(self, model_id: str, rhs: str, random_intercept: bool, complexity: int):
        self.model_id = model_id
        self.rhs = rhs
        self.random_intercept = random_intercept
        self.complexity = complexity

    @property
    def formula(self) -> str:
        return f"{TARGET_COL} ~ {self.rhs}"

    @property
    def uses_genre(self) -> bool:
        return GENRE_COL in self.rhs

    @property
    def uses_year(self) -> bool:
        return YEAR_Z_COL in self.rhs

    @property
    def has_interaction(self) -> bool:
        return "*" in self.rhs

    @classmethod
    def from_id(cls, model_id: str) -> "ModelSpec":
        for spec in cls:
            if spec.model_id == model_id:
                return spec
        raise ValueError(f"Unknown model id: {model_id}")


MODEL_SPECS: List[ModelSpec] = [
    ModelSpec.INTERACTION,
    ModelSpec.ADDITIVE,
    ModelSpec.GENRE_ONLY,
    ModelSpec.YEAR_ONLY,
    ModelSpec.NULL,
    ModelSpec.FIXED_EFFECTS_ONLY,
]

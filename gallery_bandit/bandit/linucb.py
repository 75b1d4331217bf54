"""LinUCB scoring against a per-user model."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ..errors import DimensionMismatch
from ..types import UCBScore
from .model import LinUCBModel
from .utils import ensure_1d, ensure_2d

DEFAULT_ALPHA = 0.3


class LinUCBScorer:
    """Expected reward ``theta . x`` plus ``alpha`` times ``sqrt(x^T A^-1 x)``."""

    def __init__(self, alpha: float = DEFAULT_ALPHA) -> None:
        if alpha < 0:
            raise ValueError("alpha must be non-negative")
        self._alpha = float(alpha)

    @property
    def alpha(self) -> float:
        return self._alpha

    def score(self, features: Sequence[float], model: LinUCBModel) -> UCBScore:
        vec = ensure_1d(features)
        self._check_dim(vec.shape[0], model)

        expected = float(model.theta @ vec)
        quad = float(vec @ model.a_inverse @ vec)
        uncertainty = float(np.sqrt(max(0.0, quad)))
        return UCBScore(
            expected_reward=expected,
            uncertainty=uncertainty,
            ucb_score=expected + self._alpha * uncertainty,
            low_confidence=model.low_confidence,
        )

    def score_many(
        self, features: Sequence[Sequence[float]], model: LinUCBModel
    ) -> list[UCBScore]:
        matrix = ensure_2d(features)
        self._check_dim(matrix.shape[1], model)

        means = matrix @ model.theta
        quads = np.einsum("ij,jk,ik->i", matrix, model.a_inverse, matrix)
        uncertainties = np.sqrt(np.maximum(0.0, quads))
        scores = means + self._alpha * uncertainties
        return [
            UCBScore(
                expected_reward=float(mean),
                uncertainty=float(unc),
                ucb_score=float(score),
                low_confidence=model.low_confidence,
            )
            for mean, unc, score in zip(means, uncertainties, scores)
        ]

    @staticmethod
    def _check_dim(dim: int, model: LinUCBModel) -> None:
        if dim != model.dim:
            raise DimensionMismatch(
                f"Feature dimension {dim} mismatched with model dimension {model.dim}",
                expected=model.dim,
                actual=dim,
            )

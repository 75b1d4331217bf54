"""Exploit/explore split over UCB-scored candidates."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..types import BanditRecommendation, Reason, UCBScore
from .utils import shuffle


@dataclass
class ScoredArm:
    artwork_id: str
    features: list[float]
    score: UCBScore


def clamp_ratio(ratio: float) -> float:
    if math.isnan(ratio):
        return 0.0
    return max(0.0, min(1.0, float(ratio)))


def split_counts(count: int, available: int, exploration_ratio: float) -> tuple[int, int]:
    """Return ``(num_exploit, num_explore)`` for ``count`` slots.

    When fewer candidates are available than requested, the split is applied
    to the available number instead.
    """

    total = max(0, min(count, available))
    ratio = clamp_ratio(exploration_ratio)
    # floor of the float product, so 10 slots at ratio 0.9 yield 0 exploit picks
    num_exploit = int(math.floor(total * (1.0 - ratio)))
    num_exploit = min(num_exploit, total)
    return num_exploit, total - num_exploit


class RecommendationSelector:
    """Rank scored arms and interleave exploit and explore picks."""

    def __init__(self, random_state: int | None = None) -> None:
        self._rng = np.random.default_rng(random_state)

    def select(
        self,
        scored: Sequence[ScoredArm],
        count: int,
        exploration_ratio: float = 0.2,
    ) -> list[BanditRecommendation]:
        if count <= 0 or not scored:
            return []

        num_exploit, num_explore = split_counts(count, len(scored), exploration_ratio)

        # sorted() is stable, so ties keep candidate order within this call
        by_ucb = sorted(scored, key=lambda arm: arm.score.ucb_score, reverse=True)
        exploit = by_ucb[:num_exploit]
        remaining = by_ucb[num_exploit:]
        explore = sorted(remaining, key=lambda arm: arm.score.uncertainty, reverse=True)[
            :num_explore
        ]

        picks = [_to_recommendation(arm, "exploit") for arm in exploit]
        picks.extend(_to_recommendation(arm, "explore") for arm in explore)
        return shuffle(picks, self._rng)


def _to_recommendation(arm: ScoredArm, reason: Reason) -> BanditRecommendation:
    return BanditRecommendation(
        artwork_id=arm.artwork_id,
        confidence=arm.score.expected_reward,
        reason=reason,
        expected_reward=arm.score.expected_reward,
        uncertainty=arm.score.uncertainty,
        features=list(arm.features),
        low_confidence=arm.score.low_confidence,
    )

from __future__ import annotations

import pytest

from gallery_bandit.bandit.selector import RecommendationSelector, ScoredArm, clamp_ratio, split_counts
from gallery_bandit.types import UCBScore


def _scored(idx: int, expected: float, uncertainty: float, alpha: float = 0.3) -> ScoredArm:
    return ScoredArm(
        artwork_id=f"art-{idx}",
        features=[float(idx)],
        score=UCBScore(
            expected_reward=expected,
            uncertainty=uncertainty,
            ucb_score=expected + alpha * uncertainty,
        ),
    )


@pytest.mark.parametrize(
    ("count", "available", "ratio", "expected"),
    [
        (10, 20, 0.2, (8, 2)),
        (10, 10, 0.3, (7, 3)),
        (10, 10, 0.9, (0, 10)),
        (10, 5, 0.2, (4, 1)),
        (10, 3, 0.0, (3, 0)),
        (10, 10, 1.5, (0, 10)),
        (10, 10, -0.5, (10, 0)),
        (0, 10, 0.2, (0, 0)),
    ],
)
def test_split_counts(count, available, ratio, expected):
    assert split_counts(count, available, ratio) == expected


def test_clamp_ratio_handles_nan():
    assert clamp_ratio(float("nan")) == 0.0


def test_exploit_and_explore_sets():
    arms = [_scored(i, expected=i / 10.0, uncertainty=(12 - i) / 10.0) for i in range(12)]
    picks = RecommendationSelector(random_state=0).select(arms, count=10, exploration_ratio=0.2)

    assert len(picks) == 10
    assert len({p.artwork_id for p in picks}) == 10
    exploit = {p.artwork_id for p in picks if p.reason == "exploit"}
    explore = {p.artwork_id for p in picks if p.reason == "explore"}
    assert len(exploit) == 8
    assert len(explore) == 2

    by_ucb = sorted(arms, key=lambda a: a.score.ucb_score, reverse=True)
    assert exploit == {a.artwork_id for a in by_ucb[:8]}
    rest = sorted(by_ucb[8:], key=lambda a: a.score.uncertainty, reverse=True)
    assert explore == {a.artwork_id for a in rest[:2]}

    for pick in picks:
        assert pick.confidence == pick.expected_reward
        assert pick.features


def test_fewer_candidates_than_requested():
    arms = [_scored(i, expected=0.0, uncertainty=float(i)) for i in range(4)]
    picks = RecommendationSelector(random_state=1).select(arms, count=10, exploration_ratio=0.5)
    assert sorted(p.artwork_id for p in picks) == sorted(a.artwork_id for a in arms)
    assert sum(1 for p in picks if p.reason == "exploit") == 2
    assert sum(1 for p in picks if p.reason == "explore") == 2


def test_empty_inputs():
    selector = RecommendationSelector()
    assert selector.select([], count=5) == []
    assert selector.select([_scored(0, 0.0, 1.0)], count=0) == []


def test_output_is_shuffled_but_complete():
    arms = [_scored(i, expected=i / 100.0, uncertainty=0.0) for i in range(30)]
    orders = {
        tuple(p.artwork_id for p in RecommendationSelector(random_state=seed).select(arms, 30, 0.0))
        for seed in range(5)
    }
    assert len(orders) > 1
    for order in orders:
        assert sorted(order) == sorted(a.artwork_id for a in arms)

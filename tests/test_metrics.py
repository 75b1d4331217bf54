from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from gallery_bandit.metrics import compute_bandit_analytics, top_features

NOW = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)


def _record(user_id: str, days_ago: float, reward: float, reason: str | None) -> dict:
    stamp = (NOW - timedelta(days=days_ago)).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"
    return {"user_id": user_id, "timestamp": stamp, "reward": reward, "reason": reason}


RECORDS = [
    _record("u1", 0.5, 1.0, "exploit"),
    _record("u1", 3, 0.5, "explore"),
    _record("u1", 10, 0.1, "exploit"),
    _record("u1", 45, 0.8, "exploit"),
    _record("u2", 0.1, 0.0, None),
    {"user_id": "u1", "timestamp": "garbage", "reward": 1.0},
]


@pytest.mark.parametrize(("timeframe", "expected"), [("day", 1), ("week", 2), ("month", 3)])
def test_window_filters_by_timeframe(timeframe, expected):
    result = compute_bandit_analytics(RECORDS, "u1", timeframe, now=NOW)
    assert result.total_interactions == expected


def test_rates_and_average_reward():
    result = compute_bandit_analytics(RECORDS, "u1", "week", now=NOW)
    assert result.exploitation_rate == pytest.approx(0.5)
    assert result.exploration_rate == pytest.approx(0.5)
    assert result.average_reward == pytest.approx(0.75)
    assert result.recommendation_accuracy == pytest.approx(0.75)


def test_all_users_and_untagged_records():
    result = compute_bandit_analytics(RECORDS, None, "day", now=NOW)
    assert result.total_interactions == 2
    assert result.exploitation_rate == pytest.approx(0.5)
    assert result.exploration_rate == 0.0


def test_empty_and_invalid_windows():
    assert compute_bandit_analytics([], "u1").total_interactions == 0
    with pytest.raises(ValueError):
        compute_bandit_analytics(RECORDS, "u1", "year", now=NOW)


def test_top_features_ranked_by_magnitude():
    ranked = top_features([0.1, -0.9, 0.0, 0.4], ["a", "b", "c", "d"], limit=2)
    assert ranked == [{"feature": "b", "impact": -0.9}, {"feature": "d", "impact": 0.4}]

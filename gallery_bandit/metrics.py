"""Utilities for computing bandit analytics from interaction logs."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from statistics import mean
from typing import Any, Iterable, Sequence

from .types import BanditAnalytics

TIMEFRAME_DAYS = {"day": 1, "week": 7, "month": 30}


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def window_start(timeframe: str, now: datetime | None = None) -> datetime:
    if timeframe not in TIMEFRAME_DAYS:
        raise ValueError(f"timeframe must be one of {', '.join(TIMEFRAME_DAYS)}")
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment - timedelta(days=TIMEFRAME_DAYS[timeframe])


def top_features(
    theta: Sequence[float], names: Sequence[str], limit: int = 5
) -> list[dict[str, Any]]:
    """Largest-magnitude parameter components, named by feature slot."""

    ranked = sorted(
        (
            {"feature": name, "impact": float(weight)}
            for name, weight in zip(names, theta)
            if weight
        ),
        key=lambda item: abs(item["impact"]),
        reverse=True,
    )
    return ranked[:limit]


def compute_bandit_analytics(
    records: Iterable[dict[str, Any]],
    user_id: str | None = None,
    timeframe: str = "week",
    now: datetime | None = None,
) -> BanditAnalytics:
    """Aggregate logged interactions over a trailing window.

    Records without a parseable timestamp or outside the window are ignored.
    ``user_id=None`` aggregates across all users.
    """

    start = window_start(timeframe, now)
    selected = []
    for record in records:
        if user_id is not None and record.get("user_id") != user_id:
            continue
        stamp = _parse_timestamp(record.get("timestamp"))
        if stamp is None or stamp < start:
            continue
        selected.append(record)

    total = len(selected)
    if total == 0:
        return BanditAnalytics()

    rewards = [float(r.get("reward") or 0.0) for r in selected]
    average_reward = mean(rewards)
    explore = sum(1 for r in selected if r.get("reason") == "explore")
    exploit = sum(1 for r in selected if r.get("reason") == "exploit")

    return BanditAnalytics(
        exploration_rate=explore / total,
        exploitation_rate=exploit / total,
        average_reward=average_reward,
        total_interactions=total,
        recommendation_accuracy=average_reward,
    )


__all__ = ["compute_bandit_analytics", "top_features", "window_start", "TIMEFRAME_DAYS"]

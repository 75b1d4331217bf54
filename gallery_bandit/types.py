"""Shared dataclasses and type aliases for the recommendation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

DeviceType = Literal["mobile", "desktop", "tablet"]
Reason = Literal["exploit", "explore"]

ACTION_REWARDS: dict[str, float] = {
    "skip": 0.0,
    "view": 0.1,
    "save": 0.5,
    "inquiry": 0.8,
    "purchase": 1.0,
}


@dataclass
class BanditContext:
    """Request-scoped state describing who is asking and when."""

    user_id: str
    time_of_day: str = "00:00"
    day_of_week: str = "monday"
    season: str = "winter"
    recent_views: list[str] = field(default_factory=list)
    recent_searches: list[str] = field(default_factory=list)
    current_budget: float | None = None
    session_duration: float = 0.0
    device_type: DeviceType = "desktop"

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "time_of_day": self.time_of_day,
            "day_of_week": self.day_of_week,
            "season": self.season,
            "recent_views": list(self.recent_views),
            "recent_searches": list(self.recent_searches),
            "current_budget": self.current_budget,
            "session_duration": self.session_duration,
            "device_type": self.device_type,
        }


@dataclass
class ArmMetadata:
    """Catalog attributes of an artwork used for feature extraction."""

    medium: str = ""
    genre: str = ""
    price: float = 0.0
    colors: list[str] = field(default_factory=list)
    artist_id: str | None = None
    popularity_score: float = 0.0
    recency_score: float = 0.0


@dataclass
class BanditArm:
    """A candidate artwork; a read-only view over the catalog."""

    artwork_id: str
    metadata: ArmMetadata = field(default_factory=ArmMetadata)


@dataclass
class UCBScore:
    """Output of the UCB scorer for a single feature vector."""

    expected_reward: float
    uncertainty: float
    ucb_score: float
    low_confidence: bool = False


@dataclass
class BanditRecommendation:
    """A single recommended artwork returned to the caller."""

    artwork_id: str
    confidence: float
    reason: Reason
    expected_reward: float
    uncertainty: float
    features: list[float] = field(default_factory=list)
    low_confidence: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "artwork_id": self.artwork_id,
            "confidence": self.confidence,
            "reason": self.reason,
            "expected_reward": self.expected_reward,
            "uncertainty": self.uncertainty,
            "features": list(self.features),
            "low_confidence": self.low_confidence,
        }


@dataclass
class BanditReward:
    """Append-only record of an observed reward."""

    user_id: str
    artwork_id: str
    action: str
    reward: float
    context: BanditContext
    features: list[float]
    timestamp: str
    reason: Reason | None = None


@dataclass
class RewardOutcome:
    """What happened to a recorded reward."""

    status: Literal["applied", "queued"]
    reward: BanditReward
    pending: int = 0


@dataclass
class BanditAnalytics:
    """Aggregate view over logged interactions."""

    exploration_rate: float = 0.0
    exploitation_rate: float = 0.0
    average_reward: float = 0.0
    total_interactions: int = 0
    recommendation_accuracy: float = 0.0
    top_performing_features: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "exploration_rate": self.exploration_rate,
            "exploitation_rate": self.exploitation_rate,
            "average_reward": self.average_reward,
            "total_interactions": self.total_interactions,
            "recommendation_accuracy": self.recommendation_accuracy,
            "top_performing_features": list(self.top_performing_features),
        }

"""Resolution of artwork ids to bandit arms."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Protocol

from .types import ArmMetadata, BanditArm


class ArmCatalog(Protocol):
    def get_arm(self, arm_id: str) -> BanditArm | None:
        ...


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def popularity_score(view_count: Any, like_count: Any) -> float:
    engagement = float(view_count or 0) + float(like_count or 0) * 5.0
    return max(0.0, min(1.0, engagement / 100.0))


def recency_score(created_at: Any, now: datetime | None = None) -> float:
    created = _parse_timestamp(created_at)
    if created is None:
        return 0.0
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    days = (moment - created).total_seconds() / 86400.0
    return max(0.0, min(1.0, 1.0 - days / 365.0))


def arm_from_record(record: Mapping[str, Any], now: datetime | None = None) -> BanditArm:
    """Build an arm from a raw artwork row of the marketplace catalog."""

    metadata = ArmMetadata(
        medium=str(record.get("medium") or ""),
        genre=str(record.get("genre") or ""),
        price=float(record.get("price") or 0.0),
        colors=list(record.get("dominant_colors") or []),
        artist_id=record.get("user_id"),
        popularity_score=popularity_score(record.get("view_count"), record.get("like_count")),
        recency_score=recency_score(record.get("created_at"), now),
    )
    return BanditArm(artwork_id=str(record["id"]), metadata=metadata)


class InMemoryArmCatalog:
    """Arms seen by the engine, keyed by artwork id."""

    def __init__(self, arms: Iterable[BanditArm] = ()) -> None:
        self._arms: dict[str, BanditArm] = {}
        self._lock = threading.Lock()
        self.register(arms)

    def register(self, arms: Iterable[BanditArm]) -> None:
        with self._lock:
            for arm in arms:
                self._arms[arm.artwork_id] = arm

    def get_arm(self, arm_id: str) -> BanditArm | None:
        with self._lock:
            return self._arms.get(arm_id)

    def __len__(self) -> int:
        return len(self._arms)

"""Feature extraction for (artwork, request context) pairs."""

from __future__ import annotations

import math
from dataclasses import dataclass

from ..types import BanditArm, BanditContext

# Bump FEATURE_SCHEMA_VERSION whenever a slot or category list changes.
FEATURE_SCHEMA_VERSION = 1
DEFAULT_DIMENSION = 20

MEDIUMS = ("oil", "acrylic", "digital", "photography", "sculpture", "print")
GENRES = ("abstract", "realism", "contemporary", "landscape", "portrait")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

PRICE_SLOT = 0
BUDGET_SLOT = 1
HOUR_SLOT = 2
WEEKDAY_SLOT = 3
MEDIUM_OFFSET = 4
GENRE_OFFSET = MEDIUM_OFFSET + len(MEDIUMS)
POPULARITY_SLOT = GENRE_OFFSET + len(GENRES)
RECENCY_SLOT = POPULARITY_SLOT + 1
SESSION_SLOT = RECENCY_SLOT + 1
ACTIVITY_SLOT = SESSION_SLOT + 1
MOBILE_SLOT = ACTIVITY_SLOT + 1
SCHEMA_SLOTS = MOBILE_SLOT + 1

NEUTRAL_BUDGET_RATIO = 0.5


def _clip(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _as_float(value: object, default: float = 0.0) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def _hour_fraction(time_of_day: object) -> float:
    text = str(time_of_day or "")
    hour = _as_float(text.split(":", 1)[0], default=0.0)
    return _clip(math.floor(hour), 0.0, 23.0) / 24.0


def _weekday_fraction(day_of_week: object) -> float:
    day = str(day_of_week or "").strip().lower()
    if day not in WEEKDAYS:
        return 0.0
    return WEEKDAYS.index(day) / 7.0


def _count(values: object) -> int:
    try:
        return len(values or [])  # type: ignore[arg-type]
    except TypeError:
        return 0


def _one_hot_index(value: object, categories: tuple[str, ...]) -> int | None:
    key = str(value or "").strip().lower()
    if key in categories:
        return categories.index(key)
    return None


def feature_names(dimension: int = DEFAULT_DIMENSION) -> list[str]:
    """Human-readable slot names, index-aligned with extracted vectors."""

    names = ["log_price", "budget_ratio", "hour_of_day", "day_of_week"]
    names.extend(f"medium_{medium}" for medium in MEDIUMS)
    names.extend(f"genre_{genre}" for genre in GENRES)
    names.extend(
        ["popularity", "recency", "session_hours", "recent_activity", "device_mobile"]
    )
    names.extend(f"reserved_{idx}" for idx in range(SCHEMA_SLOTS, dimension))
    return names


@dataclass(frozen=True)
class FeatureExtractor:
    """Deterministic mapping from arm and context to a fixed-length vector."""

    dimension: int = DEFAULT_DIMENSION

    def __post_init__(self) -> None:
        if self.dimension < SCHEMA_SLOTS:
            raise ValueError(
                f"Feature dimension must be at least {SCHEMA_SLOTS}, got {self.dimension}"
            )

    @property
    def schema_version(self) -> int:
        return FEATURE_SCHEMA_VERSION

    def extract(self, arm: BanditArm, context: BanditContext) -> list[float]:
        meta = arm.metadata
        vec = [0.0] * self.dimension

        price = max(0.0, _as_float(meta.price))
        vec[PRICE_SLOT] = math.log(price + 1.0) / 10.0
        budget = _as_float(context.current_budget, default=0.0)
        vec[BUDGET_SLOT] = price / budget if budget > 0 else NEUTRAL_BUDGET_RATIO

        vec[HOUR_SLOT] = _hour_fraction(context.time_of_day)
        vec[WEEKDAY_SLOT] = _weekday_fraction(context.day_of_week)

        medium_idx = _one_hot_index(meta.medium, MEDIUMS)
        if medium_idx is not None:
            vec[MEDIUM_OFFSET + medium_idx] = 1.0
        genre_idx = _one_hot_index(meta.genre, GENRES)
        if genre_idx is not None:
            vec[GENRE_OFFSET + genre_idx] = 1.0

        vec[POPULARITY_SLOT] = _clip(_as_float(meta.popularity_score), 0.0, 1.0)
        vec[RECENCY_SLOT] = _clip(_as_float(meta.recency_score), 0.0, 1.0)

        vec[SESSION_SLOT] = max(0.0, _as_float(context.session_duration)) / 3600.0
        vec[ACTIVITY_SLOT] = _count(context.recent_views) / 10.0
        vec[MOBILE_SLOT] = 1.0 if str(context.device_type).lower() == "mobile" else 0.0
        return vec


def extract_features(
    arm: BanditArm, context: BanditContext, dimension: int = DEFAULT_DIMENSION
) -> list[float]:
    return FeatureExtractor(dimension).extract(arm, context)

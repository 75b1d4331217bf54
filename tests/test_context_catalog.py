from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from gallery_bandit.catalog import InMemoryArmCatalog, arm_from_record
from gallery_bandit.context import get_current_context, season_for


def test_default_context_from_clock():
    context = get_current_context("u1", now=datetime(2024, 7, 15, 14, 5))
    assert context.user_id == "u1"
    assert context.time_of_day == "14:05"
    assert context.day_of_week == "monday"
    assert context.season == "summer"
    assert context.recent_views == []
    assert context.recent_searches == []
    assert context.session_duration == 0.0
    assert context.device_type == "desktop"
    assert context.current_budget is None


def test_context_overrides():
    context = get_current_context(
        "u1", now=datetime(2024, 1, 2, 9, 0), device_type="mobile", current_budget=400.0, season=None
    )
    assert context.device_type == "mobile"
    assert context.current_budget == 400.0
    assert context.season == "winter"
    with pytest.raises(TypeError):
        get_current_context("u1", favourite_colour="blue")


@pytest.mark.parametrize(
    ("month", "season"),
    [(2, "winter"), (3, "spring"), (5, "spring"), (6, "summer"), (9, "autumn"), (11, "autumn"), (12, "winter")],
)
def test_seasons(month, season):
    assert season_for(datetime(2024, month, 1)) == season


def test_arm_from_catalog_record():
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    record = {
        "id": 42,
        "medium": "Oil",
        "genre": None,
        "price": 300,
        "dominant_colors": ["red"],
        "user_id": "artist-1",
        "view_count": 20,
        "like_count": 6,
        "created_at": (now - timedelta(days=73)).isoformat(),
    }
    arm = arm_from_record(record, now=now)
    assert arm.artwork_id == "42"
    assert arm.metadata.medium == "Oil"
    assert arm.metadata.genre == ""
    assert arm.metadata.artist_id == "artist-1"
    assert arm.metadata.popularity_score == pytest.approx(0.5)
    assert arm.metadata.recency_score == pytest.approx(0.8)


def test_arm_scores_are_bounded():
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    arm = arm_from_record(
        {"id": "x", "view_count": 5000, "created_at": "2020-01-01T00:00:00Z"}, now=now
    )
    assert arm.metadata.popularity_score == 1.0
    assert arm.metadata.recency_score == 0.0
    assert arm_from_record({"id": "y"}, now=now).metadata.recency_score == 0.0


def test_in_memory_catalog():
    catalog = InMemoryArmCatalog()
    arm = arm_from_record({"id": "a1"})
    catalog.register([arm])
    assert catalog.get_arm("a1") is arm
    assert catalog.get_arm("missing") is None
    assert len(catalog) == 1

from __future__ import annotations

import math

import pytest

from gallery_bandit.features import FeatureExtractor, extract_features, feature_names
from gallery_bandit.features.extractor import (
    BUDGET_SLOT,
    GENRE_OFFSET,
    MEDIUM_OFFSET,
    MOBILE_SLOT,
    POPULARITY_SLOT,
)
from gallery_bandit.types import ArmMetadata, BanditArm, BanditContext


def _context(**overrides) -> BanditContext:
    values = {"user_id": "u1", "time_of_day": "18:30", "day_of_week": "Sunday"}
    values.update(overrides)
    return BanditContext(**values)


def _arm(**metadata) -> BanditArm:
    return BanditArm(artwork_id="a1", metadata=ArmMetadata(**metadata))


def test_dimension_is_constant_and_deterministic():
    extractor = FeatureExtractor()
    arms = [
        _arm(medium="oil", genre="abstract", price=1200.0),
        _arm(medium="tapestry", genre="baroque"),
        _arm(),
    ]
    for arm in arms:
        first = extractor.extract(arm, _context())
        assert len(first) == 20
        assert extractor.extract(arm, _context()) == first


def test_slot_encodings():
    vec = extract_features(
        _arm(medium="Oil", genre="landscape", price=250.0, popularity_score=0.4, recency_score=0.9),
        _context(current_budget=1000.0, device_type="mobile", recent_views=["x", "y", "z"], session_duration=1800),
    )
    assert vec[0] == pytest.approx(math.log(251.0) / 10.0)
    assert vec[BUDGET_SLOT] == pytest.approx(0.25)
    assert vec[2] == pytest.approx(18 / 24)
    assert vec[3] == pytest.approx(6 / 7)
    assert vec[MEDIUM_OFFSET] == 1.0
    assert sum(vec[MEDIUM_OFFSET:GENRE_OFFSET]) == 1.0
    assert vec[GENRE_OFFSET + 3] == 1.0
    assert vec[POPULARITY_SLOT] == pytest.approx(0.4)
    assert vec[POPULARITY_SLOT + 1] == pytest.approx(0.9)
    assert vec[17] == pytest.approx(0.5)
    assert vec[18] == pytest.approx(0.3)
    assert vec[MOBILE_SLOT] == 1.0


def test_missing_budget_uses_neutral_ratio():
    vec = extract_features(_arm(price=5000.0), _context(current_budget=None))
    assert vec[BUDGET_SLOT] == 0.5


def test_unknown_categories_leave_one_hot_slots_empty():
    vec = extract_features(_arm(medium="tapestry", genre="baroque"), _context())
    assert not any(vec[MEDIUM_OFFSET:POPULARITY_SLOT])


def test_malformed_metadata_is_coerced():
    arm = _arm(price="not-a-price", popularity_score=7.0, recency_score=-2.0, medium=None)
    vec = extract_features(arm, _context(time_of_day="late", day_of_week="someday"))
    assert len(vec) == 20
    assert vec[0] == 0.0
    assert vec[2] == 0.0
    assert vec[3] == 0.0
    assert vec[POPULARITY_SLOT] == 1.0
    assert vec[POPULARITY_SLOT + 1] == 0.0


def test_out_of_range_numbers_use_defaults():
    arm = _arm(price=10**400, popularity_score=10**400)
    vec = extract_features(arm, _context(current_budget=10**400, session_duration=-(10**400)))
    assert all(math.isfinite(v) for v in vec)
    assert vec[0] == 0.0
    assert vec[BUDGET_SLOT] == 0.5
    assert vec[POPULARITY_SLOT] == 0.0


def test_wider_dimension_pads_reserved_slots():
    extractor = FeatureExtractor(dimension=24)
    vec = extractor.extract(_arm(medium="print"), _context())
    assert len(vec) == 24
    assert vec[20:] == [0.0] * 4
    names = feature_names(24)
    assert len(names) == 24
    assert len(set(names)) == 24
    assert names[-1] == "reserved_23"


def test_dimension_below_schema_is_rejected():
    with pytest.raises(ValueError):
        FeatureExtractor(dimension=10)

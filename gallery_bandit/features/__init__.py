"""Feature extraction for artwork candidates."""

from .extractor import (
    FEATURE_SCHEMA_VERSION,
    FeatureExtractor,
    extract_features,
    feature_names,
)

__all__ = ["FEATURE_SCHEMA_VERSION", "FeatureExtractor", "extract_features", "feature_names"]

"""LinUCB scoring, model state and persistence."""

from .linucb import LinUCBScorer
from .model import LinUCBModel
from .selector import RecommendationSelector, ScoredArm
from .store import InMemoryModelStore, JsonFileModelStore, ModelStore

__all__ = [
    "LinUCBScorer",
    "LinUCBModel",
    "RecommendationSelector",
    "ScoredArm",
    "ModelStore",
    "InMemoryModelStore",
    "JsonFileModelStore",
]

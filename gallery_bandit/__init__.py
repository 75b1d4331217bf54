"""Contextual bandit recommendations for an artwork marketplace."""

from .context import get_current_context
from .service import ContextualBanditService, reward_for_action

__all__ = ["ContextualBanditService", "get_current_context", "reward_for_action"]

"""Application configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .bandit.utils import get_env_float, get_env_int


def _ensure_env_loaded() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        os.environ.setdefault(key, value)


@dataclass
class AppConfig:
    """Runtime configuration sourced from environment variables."""

    alpha: float = 0.3
    feature_dimension: int = 20
    exploration_ratio: float = 0.2
    recommendation_count: int = 10
    model_store: str = "file"
    model_dir: Path = field(default_factory=lambda: Path("data/models"))
    log_path: Path = field(default_factory=lambda: Path("logs/bandit_interactions.jsonl"))
    store_timeout_ms: int = 250
    reward_retries: int = 3
    inverse_refresh_interval: int = 50
    pending_reward_limit: int = 1000
    host: str = "127.0.0.1"
    port: int = 8000

    @property
    def store_timeout(self) -> float:
        return self.store_timeout_ms / 1000.0


def load_config() -> AppConfig:
    """Return the active application configuration."""

    _ensure_env_loaded()
    defaults = AppConfig()
    return AppConfig(
        alpha=get_env_float("BANDIT_ALPHA", defaults.alpha),
        feature_dimension=get_env_int("FEATURE_DIMENSION", defaults.feature_dimension),
        exploration_ratio=get_env_float("EXPLORATION_RATIO", defaults.exploration_ratio),
        recommendation_count=get_env_int("RECOMMENDATION_COUNT", defaults.recommendation_count),
        model_store=os.getenv("MODEL_STORE", defaults.model_store).strip().lower(),
        model_dir=Path(os.getenv("MODEL_DIR", str(defaults.model_dir))),
        log_path=Path(os.getenv("LOG_PATH", str(defaults.log_path))),
        store_timeout_ms=get_env_int("MODEL_STORE_TIMEOUT_MS", defaults.store_timeout_ms),
        reward_retries=get_env_int("REWARD_RETRIES", defaults.reward_retries),
        inverse_refresh_interval=get_env_int(
            "INVERSE_REFRESH_INTERVAL", defaults.inverse_refresh_interval
        ),
        pending_reward_limit=get_env_int(
            "PENDING_REWARD_LIMIT", defaults.pending_reward_limit
        ),
        host=os.getenv("HOST", defaults.host),
        port=get_env_int("PORT", defaults.port),
    )

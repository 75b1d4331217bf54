from __future__ import annotations

import pytest

from gallery_bandit import __main__ as entry
from gallery_bandit.config import load_config


@pytest.fixture
def served(monkeypatch):
    calls = []
    monkeypatch.setattr(entry.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    return calls


def test_main_serves_app_from_env(monkeypatch, served):
    monkeypatch.setenv("HOST", "0.0.0.0")
    monkeypatch.setenv("PORT", "9100")
    entry.main([])

    assert len(served) == 1
    app, kwargs = served[0]
    assert app == "gallery_bandit.app:app"
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 9100
    assert kwargs["reload"] is False


def test_main_arguments_override_env(monkeypatch, served):
    monkeypatch.setenv("PORT", "9100")
    entry.main(["--host", "localhost", "--port", "8123", "--log-level", "warning"])

    _, kwargs = served[0]
    assert kwargs["host"] == "localhost"
    assert kwargs["port"] == 8123
    assert kwargs["log_level"] == "warning"


def test_load_config_reads_queue_limit_and_bind_address(monkeypatch):
    monkeypatch.setenv("PENDING_REWARD_LIMIT", "25")
    monkeypatch.setenv("PORT", "not-a-port")
    monkeypatch.delenv("HOST", raising=False)

    config = load_config()
    assert config.pending_reward_limit == 25
    assert config.port == 8000
    assert config.host == "127.0.0.1"

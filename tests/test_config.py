"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from chat_relay import main as main_mod
from chat_relay.core.config import Settings, get_settings


def test_missing_api_key_fails_fast(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_defaults(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.delenv("PORT", raising=False)
    s = Settings(_env_file=None)
    assert s.port == 3000
    assert s.context_window == 10
    assert s.gemini_model == "gemini-pro"
    assert s.redis_url is None


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("CONTEXT_WINDOW", "0")
    s = Settings(_env_file=None)
    assert s.port == 8080
    assert s.context_window == 0


def test_negative_context_window_rejected(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("CONTEXT_WINDOW", "-1")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_lock_ttl_must_exceed_model_timeout(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("GEMINI_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("SESSION_LOCK_TTL_SECONDS", "30")
    with pytest.raises(ValidationError, match="SESSION_LOCK_TTL_SECONDS"):
        Settings(_env_file=None)

    monkeypatch.setenv("SESSION_LOCK_TTL_SECONDS", "45")
    assert Settings(_env_file=None).session_lock_ttl_seconds == 45


def test_run_exits_before_serving_without_api_key(monkeypatch, tmp_path):
    """The console entry point stops with status 1 and never starts uvicorn."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    # No .env in the working directory
    monkeypatch.chdir(tmp_path)
    served = []
    monkeypatch.setattr(main_mod.uvicorn, "run", lambda *args, **kwargs: served.append(args))

    get_settings.cache_clear()
    try:
        with pytest.raises(SystemExit) as exc_info:
            main_mod.run()
    finally:
        get_settings.cache_clear()

    assert exc_info.value.code == 1
    assert served == []

"""Tests for environment-driven configuration."""

from __future__ import annotations

from dataclasses import replace

from tgtrace.config import Config, LLMConfig


def test_defaults() -> None:
    config = Config()
    assert config.request_delay == 0.5
    assert config.retry_attempts == 2
    assert config.cache_ttl == 600.0
    assert config.reddit_client_id is None


def test_from_env(monkeypatch) -> None:
    monkeypatch.setenv("REDDIT_CLIENT_ID", "rid")
    monkeypatch.setenv("BING_API_KEY", "bkey")
    monkeypatch.setenv("TGTRACE_REQUEST_DELAY", "1.5")
    monkeypatch.setenv("TGTRACE_RETRIES", "4")
    monkeypatch.setenv("TGTRACE_AI_MODEL", "anthropic/claude-3-haiku")
    config = Config.from_env()
    assert config.reddit_client_id == "rid"
    assert config.bing_api_key == "bkey"
    assert config.request_delay == 1.5
    assert config.retry_attempts == 4
    assert config.llm.model == "anthropic/claude-3-haiku"


def test_replace_overrides() -> None:
    config = replace(Config(), request_delay=0)
    assert config.request_delay == 0
    assert Config().request_delay == 0.5


def test_negative_retries_mean_a_single_try(monkeypatch) -> None:
    monkeypatch.setenv("TGTRACE_RETRIES", "-1")
    assert Config.from_env().retry_attempts == 0


def test_cache_dir(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TGTRACE_CACHE_DIR", str(tmp_path))
    assert Config.from_env().cache_dir == str(tmp_path)
    monkeypatch.delenv("TGTRACE_CACHE_DIR")
    assert Config.from_env().cache_dir.endswith("tgtrace")
    assert Config().cache_dir is None


class TestLLMConfig:
    def test_litellm_kwargs_skip_unset(self) -> None:
        assert LLMConfig(model="openai/gpt-4o-mini").to_litellm_kwargs() == {
            "model": "openai/gpt-4o-mini"
        }

    def test_litellm_kwargs_full(self) -> None:
        llm = LLMConfig(model="m", api_base="http://localhost:4000", api_key="k")
        assert llm.to_litellm_kwargs() == {
            "model": "m",
            "api_base": "http://localhost:4000",
            "api_key": "k",
        }

    def test_empty_model_env_falls_back(self, monkeypatch) -> None:
        monkeypatch.setenv("TGTRACE_AI_MODEL", "")
        assert LLMConfig.from_env().model == "openai/gpt-4o-mini"

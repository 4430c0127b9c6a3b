"""Configuration management for tgtrace."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class LLMConfig:
    """LLM connection settings for the optional analysis step."""

    model: str = "openai/gpt-4o-mini"
    api_base: str | None = None
    api_key: str | None = None

    @classmethod
    def from_env(cls) -> LLMConfig:
        """Build config from TGTRACE_AI_* environment variables."""
        return cls(
            model=os.getenv("TGTRACE_AI_MODEL") or "openai/gpt-4o-mini",
            api_base=os.getenv("TGTRACE_AI_API_BASE"),
            api_key=os.getenv("TGTRACE_AI_API_KEY"),
        )

    def to_litellm_kwargs(self) -> dict[str, str]:
        """Return kwargs suitable for litellm.acompletion()."""
        kwargs: dict[str, str] = {"model": self.model}
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.api_key:
            kwargs["api_key"] = self.api_key
        return kwargs


@dataclass(frozen=True)
class Config:
    """Global configuration."""

    llm: LLMConfig = LLMConfig()

    # Provider credentials
    reddit_client_id: str | None = None
    reddit_client_secret: str | None = None
    google_api_key: str | None = None
    google_search_engine_id: str | None = None
    bing_api_key: str | None = None
    telegram_bot_token: str | None = None

    # Request policy
    http_timeout: float = 15.0
    query_timeout: float = 30.0
    request_delay: float = 0.5
    retry_attempts: int = 2
    retry_backoff: float = 1.0

    # Result cache
    cache_ttl: float = 600.0
    cache_capacity: int = 100
    cache_dir: str | None = None

    # Query generation
    max_variations: int = 100
    max_variation_queries: int = 50

    @classmethod
    def from_env(cls) -> Config:
        return cls(
            llm=LLMConfig.from_env(),
            reddit_client_id=os.getenv("REDDIT_CLIENT_ID"),
            reddit_client_secret=os.getenv("REDDIT_CLIENT_SECRET"),
            google_api_key=os.getenv("GOOGLE_API_KEY"),
            google_search_engine_id=os.getenv("GOOGLE_SEARCH_ENGINE_ID"),
            bing_api_key=os.getenv("BING_API_KEY"),
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN"),
            http_timeout=float(os.getenv("TGTRACE_TIMEOUT", "15")),
            query_timeout=float(os.getenv("TGTRACE_QUERY_TIMEOUT", "30")),
            request_delay=float(os.getenv("TGTRACE_REQUEST_DELAY", "0.5")),
            retry_attempts=max(0, int(os.getenv("TGTRACE_RETRIES", "2"))),
            retry_backoff=float(os.getenv("TGTRACE_RETRY_BACKOFF", "1.0")),
            cache_ttl=float(os.getenv("TGTRACE_CACHE_TTL", "600")),
            cache_capacity=int(os.getenv("TGTRACE_CACHE_CAPACITY", "100")),
            cache_dir=os.getenv("TGTRACE_CACHE_DIR") or str(Path.home() / ".cache" / "tgtrace"),
            max_variations=int(os.getenv("TGTRACE_MAX_VARIATIONS", "100")),
            max_variation_queries=int(os.getenv("TGTRACE_MAX_VARIATION_QUERIES", "50")),
        )

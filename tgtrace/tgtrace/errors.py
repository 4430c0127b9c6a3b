"""Exception hierarchy for tgtrace."""

from __future__ import annotations

import httpx


class TgTraceError(Exception):
    """Base class for all tgtrace errors."""


class InvalidSearchError(TgTraceError, ValueError):
    """Raised before a run starts when the identifier or options are invalid."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid search")


class ProviderError(TgTraceError):
    """A failure reported by a provider adapter."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")


class TransientProviderError(ProviderError):
    """Timeout, transport failure, rate limit or 5xx. Safe to retry."""


class ProviderConfigError(ProviderError):
    """Missing credentials or a non-retryable 4xx. The provider is skipped."""


def classify_http_error(provider: str, exc: Exception) -> ProviderError:
    """Map an httpx exception onto the provider error taxonomy."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 429 or status >= 500:
            return TransientProviderError(provider, f"HTTP {status}")
        return ProviderConfigError(provider, f"HTTP {status}")
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return TransientProviderError(provider, f"{type(exc).__name__}: {exc}")
    return TransientProviderError(provider, str(exc) or type(exc).__name__)

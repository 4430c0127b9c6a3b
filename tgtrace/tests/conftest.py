"""Shared fixtures: an in-memory provider and a fast config."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from tgtrace.config import Config
from tgtrace.models import PHASE_NAMES, Origin, ProviderPayload
from tgtrace.providers.base import BaseProvider

ItemsFor = dict[str, list[dict[str, Any]]]


class FakeProvider(BaseProvider):
    """Returns canned items per query text, or raises ``error`` on every call.

    ``failures`` makes the first N calls raise ``error`` before succeeding.
    """

    def __init__(
        self,
        name: str,
        items: ItemsFor | None = None,
        *,
        origin: Origin = Origin.SOCIAL_FORUM,
        phases: frozenset[str] = frozenset(PHASE_NAMES),
        supports_scope: bool = True,
        error: BaseException | None = None,
        failures: int | None = None,
    ) -> None:
        super().__init__(Config())
        self.name = name
        self.origin = origin
        self.phases = phases
        self.supports_scope = supports_scope
        self.items = items or {}
        self.error = error
        self.failures = failures
        self.calls: list[tuple[str, str | None, str | None]] = []

    @classmethod
    def is_configured(cls, config: Config) -> bool:
        return True

    async def search(
        self,
        query: str,
        scope: str | None = None,
        *,
        time_range: str | None = None,
    ) -> ProviderPayload:
        self.calls.append((query, scope, time_range))
        if self.error is not None and (self.failures is None or len(self.calls) <= self.failures):
            raise self.error
        if scope is not None:
            return ProviderPayload()
        return ProviderPayload(items=self.items.get(query, []))


@pytest.fixture
def make_provider() -> Callable[..., FakeProvider]:
    return FakeProvider


@pytest.fixture
def fast_config() -> Config:
    return Config(request_delay=0, retry_backoff=0, query_timeout=5)

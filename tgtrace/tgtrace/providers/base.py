"""Base provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from tgtrace.config import Config
from tgtrace.errors import classify_http_error
from tgtrace.models import Origin, ProviderPayload
from tgtrace.utils.http import fetch_json


class BaseProvider(ABC):
    """All providers must implement this interface.

    ``search`` must be safe to call again with the same arguments; it either
    returns a payload or raises a :class:`~tgtrace.errors.ProviderError`.
    """

    name: str = ""
    origin: Origin
    phases: frozenset[str] = frozenset()
    supports_scope: bool = False

    def __init__(self, config: Config) -> None:
        self.config = config

    @classmethod
    @abstractmethod
    def is_configured(cls, config: Config) -> bool:
        """Return True when *config* carries the credentials this provider needs."""
        ...

    @abstractmethod
    async def search(
        self,
        query: str,
        scope: str | None = None,
        *,
        time_range: str | None = None,
    ) -> ProviderPayload:
        """Run one query and return the items it produced."""
        ...

    def serves(self, phase: str) -> bool:
        return phase in self.phases

    async def _get_json(
        self,
        url: str,
        *,
        empty_on: frozenset[int] = frozenset(),
        **kwargs: Any,
    ) -> dict[str, Any] | None:
        """Fetch JSON, translating httpx failures into provider errors.

        Returns None for HTTP statuses listed in *empty_on*.
        """
        try:
            return await fetch_json(url, timeout=self.config.http_timeout, **kwargs)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code in empty_on:
                return None
            raise classify_http_error(self.name, exc) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise classify_http_error(self.name, exc) from exc

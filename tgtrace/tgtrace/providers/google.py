"""Google Custom Search JSON API."""

from __future__ import annotations

from typing import Any

from tgtrace.config import Config
from tgtrace.errors import ProviderConfigError
from tgtrace.models import Origin, ProviderPayload
from tgtrace.providers.base import BaseProvider

_API_URL = "https://www.googleapis.com/customsearch/v1"

_DATE_RESTRICT = {"day": "d1", "week": "w1", "month": "m1", "year": "y1"}


class GoogleProvider(BaseProvider):
    name = "google"
    origin = Origin.SEARCH_ENGINE_A
    phases = frozenset({"site", "temporal"})

    @classmethod
    def is_configured(cls, config: Config) -> bool:
        return bool(config.google_api_key and config.google_search_engine_id)

    async def search(
        self,
        query: str,
        scope: str | None = None,
        *,
        time_range: str | None = None,
    ) -> ProviderPayload:
        if not self.is_configured(self.config):
            raise ProviderConfigError(self.name, "missing GOOGLE_API_KEY / GOOGLE_SEARCH_ENGINE_ID")
        params: dict[str, Any] = {
            "key": self.config.google_api_key,
            "cx": self.config.google_search_engine_id,
            "q": query,
            "num": 10,
            "safe": "off",
        }
        if time_range in _DATE_RESTRICT:
            params["dateRestrict"] = _DATE_RESTRICT[time_range]
        data = await self._get_json(_API_URL, params=params) or {}
        return ProviderPayload(
            items=[
                {
                    "title": item.get("title"),
                    "body": item.get("snippet"),
                    "url": item.get("link"),
                    "sub_collection": item.get("displayLink"),
                }
                for item in data.get("items", [])
            ]
        )

"""Bing Web Search v7."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from tgtrace.config import Config
from tgtrace.errors import ProviderConfigError
from tgtrace.models import Origin, ProviderPayload
from tgtrace.providers.base import BaseProvider

_API_URL = "https://api.bing.microsoft.com/v7.0/search"

_FRESHNESS = {"day": "Day", "week": "Week", "month": "Month"}
_EXCESS_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _parse_crawl_date(value: str | None) -> datetime | None:
    """Parse ``dateLastCrawled``; Bing sends up to seven fractional digits."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(_EXCESS_FRACTION_RE.sub(r"\1", value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class BingProvider(BaseProvider):
    name = "bing"
    origin = Origin.SEARCH_ENGINE_B
    phases = frozenset({"site", "temporal"})

    @classmethod
    def is_configured(cls, config: Config) -> bool:
        return bool(config.bing_api_key)

    async def search(
        self,
        query: str,
        scope: str | None = None,
        *,
        time_range: str | None = None,
    ) -> ProviderPayload:
        if not self.is_configured(self.config):
            raise ProviderConfigError(self.name, "missing BING_API_KEY")
        params: dict[str, Any] = {
            "q": query,
            "count": 10,
            "responseFilter": "Webpages",
            "safeSearch": "Off",
        }
        if time_range in _FRESHNESS:
            params["freshness"] = _FRESHNESS[time_range]
        data = await self._get_json(
            _API_URL,
            params=params,
            headers={"Ocp-Apim-Subscription-Key": self.config.bing_api_key or ""},
        ) or {}
        return ProviderPayload(
            items=[
                {
                    "title": page.get("name"),
                    "body": page.get("snippet"),
                    "url": page.get("url"),
                    "id": page.get("id"),
                    "created_at": _parse_crawl_date(page.get("dateLastCrawled")),
                }
                for page in data.get("webPages", {}).get("value", [])
            ]
        )

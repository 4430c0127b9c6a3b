"""Reddit search through the OAuth API."""

from __future__ import annotations

import logging
import time
from typing import Any

from tgtrace.config import Config
from tgtrace.errors import ProviderConfigError
from tgtrace.models import PHASE_NAMES, Origin, ProviderPayload
from tgtrace.providers.base import BaseProvider

logger = logging.getLogger(__name__)

_AUTH_URL = "https://www.reddit.com/api/v1/access_token"
_API_BASE = "https://oauth.reddit.com"
_TOKEN_MARGIN = 60.0


class RedditProvider(BaseProvider):
    """Search Reddit posts, globally or inside one subreddit."""

    name = "reddit"
    origin = Origin.SOCIAL_FORUM
    phases = frozenset(PHASE_NAMES) - {"direct", "site"}
    supports_scope = True

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self._token: str | None = None
        self._token_expiry = 0.0

    @classmethod
    def is_configured(cls, config: Config) -> bool:
        return bool(config.reddit_client_id and config.reddit_client_secret)

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        scope: str | None = None,
        *,
        time_range: str | None = None,
    ) -> ProviderPayload:
        token = await self._authenticate()
        params: dict[str, Any] = {
            "q": query,
            "sort": "relevance",
            "limit": 100,
            "type": "link",
            "include_over_18": "false",
            "raw_json": 1,
        }
        if scope:
            params["restrict_sr"] = "true"
        if time_range:
            params["t"] = time_range
        url = f"{_API_BASE}/r/{scope}/search" if scope else f"{_API_BASE}/search"
        data = await self._get_json(
            url, params=params, headers={"Authorization": f"Bearer {token}"}
        )
        return ProviderPayload(items=self._build_items(data or {}))

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def _authenticate(self) -> str:
        if self._token and time.monotonic() < self._token_expiry:
            return self._token
        if not self.is_configured(self.config):
            raise ProviderConfigError(self.name, "missing REDDIT_CLIENT_ID / REDDIT_CLIENT_SECRET")

        data = await self._get_json(
            _AUTH_URL,
            method="POST",
            data={"grant_type": "client_credentials"},
            auth=(self.config.reddit_client_id, self.config.reddit_client_secret),
        )
        token = (data or {}).get("access_token")
        if not token:
            raise ProviderConfigError(self.name, "token endpoint returned no access_token")
        expires_in = float((data or {}).get("expires_in", 3600))
        self._token = token
        self._token_expiry = time.monotonic() + expires_in - _TOKEN_MARGIN
        logger.info("Authenticated with Reddit API")
        return token

    # ------------------------------------------------------------------
    # Item builders
    # ------------------------------------------------------------------

    @staticmethod
    def _build_items(data: dict[str, Any]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        for child in data.get("data", {}).get("children", []):
            post = child.get("data", {})
            permalink = post.get("permalink")
            items.append(
                {
                    "title": post.get("title"),
                    "body": post.get("selftext"),
                    "url": post.get("url"),
                    "permalink": f"https://www.reddit.com{permalink}" if permalink else None,
                    "popularity": post.get("score"),
                    "replies": post.get("num_comments"),
                    "sub_collection": post.get("subreddit"),
                    "author": post.get("author"),
                    "id": post.get("id"),
                    "created_at": post.get("created_utc"),
                }
            )
        return items

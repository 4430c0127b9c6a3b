"""Direct handle lookups through the Telegram Bot API."""

from __future__ import annotations

import logging
import re

from tgtrace.config import Config
from tgtrace.errors import ProviderConfigError
from tgtrace.models import Origin, ProviderPayload
from tgtrace.providers.base import BaseProvider

logger = logging.getLogger(__name__)

_API_BASE = "https://api.telegram.org"
_HANDLE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]{3,30}[A-Za-z0-9]$")

# Chat type -> word the kind inference understands.
_CHAT_TYPES = {
    "channel": "channel",
    "group": "group",
    "supergroup": "group",
    "private": "user",
}


class TelegramBotProvider(BaseProvider):
    """Resolve ``@handle`` with ``getChat``. Only public chats are visible."""

    name = "telegram"
    origin = Origin.BOT_API
    phases = frozenset({"direct"})

    @classmethod
    def is_configured(cls, config: Config) -> bool:
        return bool(config.telegram_bot_token)

    async def search(
        self,
        query: str,
        scope: str | None = None,
        *,
        time_range: str | None = None,
    ) -> ProviderPayload:
        if not self.is_configured(self.config):
            raise ProviderConfigError(self.name, "missing TELEGRAM_BOT_TOKEN")
        handle = query.strip().lstrip("@")
        if not _HANDLE_RE.match(handle):
            return ProviderPayload()

        # 400 is "chat not found"; anything else non-2xx is a real failure.
        data = await self._get_json(
            f"{_API_BASE}/bot{self.config.telegram_bot_token}/getChat",
            params={"chat_id": f"@{handle}"},
            empty_on=frozenset({400}),
        )
        if not data or not data.get("ok"):
            logger.debug("Telegram handle @%s not found or private", handle)
            return ProviderPayload()

        chat = data.get("result", {})
        username = chat.get("username") or handle
        kind_word = _CHAT_TYPES.get(chat.get("type", ""), "chat")
        description = chat.get("description") or ""
        return ProviderPayload(
            items=[
                {
                    "title": chat.get("title") or chat.get("first_name") or username,
                    "body": f"{description} Telegram {kind_word}".strip(),
                    "url": f"https://t.me/{username}",
                    "id": str(chat["id"]) if "id" in chat else None,
                }
            ]
        )

"""HTTP utilities for tgtrace providers."""

from __future__ import annotations

from typing import Any

import httpx

_DEFAULT_HEADERS = {
    "User-Agent": "tgtrace/0.1 (+https://github.com/tgtrace/tgtrace)",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
}


async def fetch_json(
    url: str,
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    data: dict[str, Any] | None = None,
    auth: tuple[str, str] | None = None,
    timeout: float = 15.0,
) -> dict[str, Any]:
    merged = {**_DEFAULT_HEADERS, **(headers or {})}
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        resp = await client.request(
            method, url, headers=merged, params=params, data=data, auth=auth
        )
        resp.raise_for_status()
        return resp.json()

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

import httpx

from lovsentralen.config import settings
from lovsentralen.errors import SearchProviderError
from lovsentralen.models.interfaces import SearchResult

SERPER_SEARCH_URL = "https://google.serper.dev/search"


def _display_link(url: str) -> str:
    return urlparse(url).hostname or ""


async def search(query: str, *, max_results: int = 10) -> list[SearchResult]:
    """Execute a Google search through Serper, biased towards Norwegian results."""
    if not settings.serper_api_key:
        raise SearchProviderError("serper", "SERPER_API_KEY is not configured")

    payload: dict[str, Any] = {
        "q": query,
        "gl": settings.search_country,
        "hl": settings.search_language,
        "num": max_results,
    }
    async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
        response = await client.post(
            SERPER_SEARCH_URL,
            json=payload,
            headers={
                "X-API-KEY": settings.serper_api_key,
                "Content-Type": "application/json",
            },
        )
    if response.status_code >= 300:
        raise SearchProviderError("serper", f"HTTP {response.status_code}: {response.text[:200]}")

    try:
        body = response.json()
    except ValueError as e:
        raise SearchProviderError("serper", f"invalid JSON body: {e}") from e
    if not isinstance(body, dict):
        raise SearchProviderError("serper", "response body is not an object")

    organic = body.get("organic", [])
    if not isinstance(organic, list):
        raise SearchProviderError("serper", "'organic' is not a list")

    mapped: list[SearchResult] = []
    for item in organic:
        if not isinstance(item, dict):
            continue
        url = str(item.get("link") or "").strip()
        if not url:
            continue
        mapped.append(
            SearchResult(
                title=str(item.get("title") or ""),
                url=url,
                snippet=str(item.get("snippet") or ""),
                display_link=_display_link(url),
            )
        )
    return mapped[:max_results]

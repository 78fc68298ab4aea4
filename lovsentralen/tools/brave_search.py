from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

import httpx

from lovsentralen.config import settings
from lovsentralen.errors import SearchProviderError
from lovsentralen.models.interfaces import SearchResult

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"

# Brave's search_lang uses "nb" for Norwegian Bokmål.
LANGUAGE_MAP = {"no": "nb"}


async def search(query: str, *, max_results: int = 10) -> list[SearchResult]:
    """Execute a Brave web search and normalize results."""
    if not settings.brave_api_key:
        raise SearchProviderError("brave", "BRAVE_API_KEY is not configured")

    language = settings.search_language.lower()
    params: dict[str, Any] = {
        "q": query,
        "count": max_results,
        "country": settings.search_country.upper(),
        "search_lang": LANGUAGE_MAP.get(language, language),
    }

    async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
        response = await client.get(
            BRAVE_SEARCH_URL,
            params=params,
            headers={
                "Accept": "application/json",
                "X-Subscription-Token": settings.brave_api_key,
            },
        )
    if response.status_code >= 300:
        raise SearchProviderError("brave", f"HTTP {response.status_code}: {response.text[:200]}")

    try:
        payload = response.json()
    except ValueError as e:
        raise SearchProviderError("brave", f"invalid JSON body: {e}") from e
    if not isinstance(payload, dict):
        raise SearchProviderError("brave", "response body is not an object")

    raw_results = (payload.get("web") or {}).get("results", [])
    if not isinstance(raw_results, list):
        raise SearchProviderError("brave", "'web.results' is not a list")

    mapped: list[SearchResult] = []
    for item in raw_results:
        if not isinstance(item, dict):
            continue
        url = str(item.get("url") or "").strip()
        if not url:
            continue
        snippets = item.get("extra_snippets", []) or []
        description = str(item.get("description") or "").strip()
        mapped.append(
            SearchResult(
                title=str(item.get("title") or ""),
                url=url,
                snippet=description or " ".join(str(s) for s in snippets).strip(),
                display_link=urlparse(url).hostname or "",
            )
        )
    return mapped[:max_results]

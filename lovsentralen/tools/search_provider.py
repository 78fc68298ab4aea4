from __future__ import annotations

from dataclasses import dataclass
from loguru import logger

from lovsentralen.config import settings
from lovsentralen.models.interfaces import SearchResult
from lovsentralen.tools import brave_search, serper_search

PROVIDERS = ("serper", "brave")


async def _run(provider: str, query: str, max_results: int) -> list[SearchResult]:
    if provider == "brave":
        return await brave_search.search(query, max_results=max_results)
    return await serper_search.search(query, max_results=max_results)


@dataclass
class SearchResponse:
    results: list[SearchResult]
    provider: str
    fallback_from: str | None = None
    fallback_reason: str | None = None


def _fallback_for(provider: str) -> str:
    return "brave" if provider == "serper" else "serper"


async def search(query: str, *, max_results: int = 10) -> SearchResponse:
    """Run one web search on the configured provider, falling back to the other one."""
    provider = settings.search_provider.lower().strip()
    if provider not in PROVIDERS:
        raise ValueError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")

    use_fallback = settings.search_fallback_enabled
    fallback = _fallback_for(provider)

    try:
        results = await _run(provider, query, max_results)
    except Exception as e:
        if not use_fallback:
            raise
        logger.warning(f"Search provider {provider} failed, falling back to {fallback}: {e}")
        fallback_results = await _run(fallback, query, max_results)
        return SearchResponse(
            results=fallback_results,
            provider=fallback,
            fallback_from=provider,
            fallback_reason=str(e),
        )

    if results or not use_fallback:
        return SearchResponse(results=results, provider=provider)

    fallback_results = await _run(fallback, query, max_results)
    return SearchResponse(
        results=fallback_results,
        provider=fallback,
        fallback_from=provider,
        fallback_reason=f"{provider} returned zero results",
    )

from __future__ import annotations

import asyncio

from loguru import logger

from lovsentralen.config import settings
from lovsentralen.models.interfaces import SearchResult
from lovsentralen.tools import search_provider, source_classifier


async def search_one(query: str, *, limit: int | None = None) -> list[SearchResult]:
    """Run one web search and drop results from blacklisted domains."""
    max_results = limit if limit is not None else settings.search_results_per_query
    response = await search_provider.search(query, max_results=max_results)
    if response.fallback_from:
        logger.info(
            f"Search for {query!r} served by {response.provider} "
            f"(fallback from {response.fallback_from}: {response.fallback_reason})"
        )
    return [
        result
        for result in response.results
        if result.url and not source_classifier.is_blacklisted_domain(result.url)
    ]


def _dedupe_results(results: list[SearchResult]) -> list[SearchResult]:
    seen: set[str] = set()
    deduped: list[SearchResult] = []
    for result in results:
        if result.url in seen:
            continue
        seen.add(result.url)
        deduped.append(result)
    return deduped


def sort_by_priority(results: list[SearchResult]) -> list[SearchResult]:
    """Stable sort, most authoritative tier first."""
    return sorted(results, key=lambda r: source_classifier.get_source_priority(r.url))


async def search_many(
    queries: list[str],
    *,
    limit: int | None = None,
    delay_seconds: float | None = None,
) -> list[SearchResult]:
    """Run queries one after another; per-query failures are logged and skipped.

    Results are deduplicated by exact URL (first occurrence wins) and ordered
    by source priority.
    """
    delay = settings.search_query_delay_seconds if delay_seconds is None else delay_seconds
    collected: list[SearchResult] = []

    for index, query in enumerate(queries):
        if index > 0 and delay > 0:
            await asyncio.sleep(delay)
        try:
            collected.extend(await search_one(query, limit=limit))
        except Exception as e:
            logger.warning(f"Search failed for query {query!r}: {e}")
            continue

    return sort_by_priority(_dedupe_results(collected))

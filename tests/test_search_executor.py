from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from lovsentralen.models.interfaces import SearchResult
from lovsentralen.services import search_executor
from lovsentralen.tools.search_provider import SearchResponse


def _result(url: str, title: str = "t") -> SearchResult:
    return SearchResult(title=title, url=url, snippet="s", display_link="")


@pytest.mark.asyncio
async def test_search_one_drops_blacklisted_results():
    response = SearchResponse(
        results=[
            _result("https://www.reddit.com/r/norge/x"),
            _result("https://lovdata.no/lov"),
            _result("https://twitter.com/someone"),
        ],
        provider="serper",
    )
    with patch.object(search_executor.search_provider, "search", new=AsyncMock(return_value=response)):
        results = await search_executor.search_one("husleie depositum")

    assert [r.url for r in results] == ["https://lovdata.no/lov"]


@pytest.mark.asyncio
async def test_search_many_dedupes_first_wins_and_sorts_by_priority():
    batches = {
        "q1": [_result("https://example.com/a", "first"), _result("https://forbrukerradet.no/b")],
        "q2": [_result("https://example.com/a", "second"), _result("https://lovdata.no/c")],
    }

    async def fake_search_one(query, *, limit=None):
        return batches[query]

    with patch.object(search_executor, "search_one", new=fake_search_one):
        results = await search_executor.search_many(["q1", "q2"], delay_seconds=0)

    assert [r.url for r in results] == [
        "https://lovdata.no/c",
        "https://forbrukerradet.no/b",
        "https://example.com/a",
    ]
    assert results[2].title == "first"


@pytest.mark.asyncio
async def test_search_many_skips_failing_queries():
    calls: list[str] = []

    async def fake_search_one(query, *, limit=None):
        calls.append(query)
        if query == "broken":
            raise RuntimeError("HTTP 500")
        return [_result(f"https://lovdata.no/{query}")]

    with patch.object(search_executor, "search_one", new=fake_search_one):
        results = await search_executor.search_many(["a", "broken", "b"], delay_seconds=0)

    assert calls == ["a", "broken", "b"]
    assert [r.url for r in results] == ["https://lovdata.no/a", "https://lovdata.no/b"]


@pytest.mark.asyncio
async def test_search_many_waits_between_queries():
    sleep = AsyncMock()

    async def fake_search_one(query, *, limit=None):
        return []

    with patch.object(search_executor, "search_one", new=fake_search_one), patch.object(
        search_executor.asyncio, "sleep", new=sleep
    ):
        await search_executor.search_many(["a", "b", "c"], delay_seconds=0.2)

    assert sleep.await_count == 2
    sleep.assert_awaited_with(0.2)


@pytest.mark.asyncio
async def test_search_many_is_idempotent_under_repeated_results():
    async def fake_search_one(query, *, limit=None):
        return [_result("https://lovdata.no/x"), _result("https://lovdata.no/x")]

    with patch.object(search_executor, "search_one", new=fake_search_one):
        results = await search_executor.search_many(["a", "a"], delay_seconds=0)

    assert len(results) == 1

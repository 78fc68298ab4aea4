from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import httpx
from loguru import logger

from lovsentralen.config import settings
from lovsentralen.models.interfaces import ParsedPage
from lovsentralen.tools.page_parser import parse_page

USER_AGENT = "Mozilla/5.0 (compatible; Lovsentralen/1.0; +https://lovsentralen.no)"
REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "nb-NO,nb;q=0.9,no;q=0.8,nn;q=0.7,en;q=0.6",
}

# (url, timeout_seconds) -> raw HTML; raises on transport errors and non-2xx.
Fetcher = Callable[[str, float], Awaitable[str]]


async def _fetch_with_httpx(url: str, timeout_seconds: float) -> str:
    async with httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True) as client:
        response = await client.get(url, headers=REQUEST_HEADERS)
        response.raise_for_status()
        return response.text


class PageFetcher:
    """Fetch legal source pages over HTTP and parse them into ParsedPage records."""

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        batch_size: int | None = None,
        fetcher: Fetcher | None = None,
    ):
        self.timeout_seconds = max(
            timeout_seconds if timeout_seconds is not None else settings.page_fetch_timeout_seconds,
            1.0,
        )
        self.batch_size = max(batch_size if batch_size is not None else settings.page_fetch_batch_size, 1)
        self._fetcher = fetcher or _fetch_with_httpx

    async def fetch(self, url: str) -> ParsedPage | None:
        """Fetch and parse one page. Returns None instead of raising."""
        try:
            html = await asyncio.wait_for(
                self._fetcher(url, self.timeout_seconds),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Page fetch timed out after {self.timeout_seconds:.0f}s: {url}")
            return None
        except httpx.HTTPStatusError as e:
            logger.warning(f"Page fetch returned HTTP {e.response.status_code}: {url}")
            return None
        except Exception as e:
            logger.warning(f"Page fetch failed for {url}: {e}")
            return None

        try:
            return parse_page(url, html)
        except Exception as e:
            logger.warning(f"Page parse failed for {url}: {e}")
            return None

    async def fetch_multiple_pages(
        self,
        urls: list[str],
        *,
        filter_repealed: bool = True,
    ) -> list[ParsedPage]:
        """Fetch pages in fixed-size concurrent batches, preserving input order."""
        pages: list[ParsedPage] = []
        for start in range(0, len(urls), self.batch_size):
            batch = urls[start : start + self.batch_size]
            fetched = await asyncio.gather(*(self.fetch(url) for url in batch))
            for page in fetched:
                if page is None:
                    continue
                if filter_repealed and page.is_repealed:
                    logger.info(f"Skipping repealed source {page.url}: {page.repealed_reason}")
                    continue
                pages.append(page)
        return pages

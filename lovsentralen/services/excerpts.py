from __future__ import annotations

import re

from loguru import logger

from lovsentralen.models.interfaces import Excerpt, ParsedPage
from lovsentralen.tools.page_parser import SECTION_PATTERN

MIN_PARAGRAPH_CHARS = 100
MIN_PARAGRAPH_HITS = 2
MAX_EXCERPT_CHARS = 1000


def _tokens(issue: str) -> list[str]:
    return list(dict.fromkeys(issue.lower().split()))


def _hits(text: str, tokens: list[str]) -> int:
    lowered = text.lower()
    return sum(1 for token in tokens if token in lowered)


def extract_relevant_excerpts(
    pages: list[ParsedPage],
    issue: str,
    max_excerpts: int = 8,
) -> list[Excerpt]:
    """Pick the passages of non-repealed pages that mention the issue's terms."""
    active = [page for page in pages if not page.is_repealed]
    if pages and not active:
        logger.warning(f"All {len(pages)} sources for issue {issue!r} are repealed; no excerpts extracted")

    tokens = _tokens(issue)
    if not tokens:
        return []

    excerpts: list[Excerpt] = []
    for page in active:
        for section in page.sections:
            if _hits(f"{section.heading} {section.content}", tokens) >= 1:
                excerpts.append(
                    Excerpt(
                        excerpt=section.content[:MAX_EXCERPT_CHARS],
                        source=page,
                        section=section.section_number,
                    )
                )

        for paragraph in re.split(r"\n+", page.content):
            paragraph = paragraph.strip()
            if len(paragraph) < MIN_PARAGRAPH_CHARS:
                continue
            if _hits(paragraph, tokens) >= MIN_PARAGRAPH_HITS:
                match = SECTION_PATTERN.search(paragraph)
                excerpts.append(
                    Excerpt(
                        excerpt=paragraph[:MAX_EXCERPT_CHARS],
                        source=page,
                        section=match.group(0) if match else None,
                    )
                )

    excerpts.sort(key=lambda e: e.source.source_priority)
    return excerpts[: max(max_excerpts, 0)]

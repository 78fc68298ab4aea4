"""HTML parsing for legal source pages: title, main text, § sections, repeal status."""
from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

from lovsentralen.config import settings
from lovsentralen.models.interfaces import PageSection, ParsedPage
from lovsentralen.tools.source_classifier import get_source_priority

SECTION_PATTERN = re.compile(r"§\s*\d+[a-z]?(?:-\d+)?", re.IGNORECASE)
CHAPTER_PATTERN = re.compile(r"(?:kapittel|kap\.?)\s*\d+", re.IGNORECASE)

_MONTHS = "januar|februar|mars|april|mai|juni|juli|august|september|oktober|november|desember"

REPEALED_PATTERNS = (
    re.compile(r"loven\s+er\s+opphevet", re.IGNORECASE),
    re.compile(r"forskriften\s+er\s+opphevet", re.IGNORECASE),
    re.compile(r"denne\s+(?:loven?|forskriften?)\s+er\s+opphevet", re.IGNORECASE),
    re.compile(r"opphevet\s+ved\s+lov", re.IGNORECASE),
    re.compile(r"opphevet\s+fra", re.IGNORECASE),
    re.compile(rf"opphevet\s+\d{{1,2}}\.\s*(?:{_MONTHS})", re.IGNORECASE),
    re.compile(r"ikke\s+lenger\s+(?:i\s+kraft|gjeldende)", re.IGNORECASE),
    re.compile(r"erstattet\s+av", re.IGNORECASE),
    re.compile(r"avløst\s+av", re.IGNORECASE),
    re.compile(r"historisk\s+versjon", re.IGNORECASE),
    re.compile(r"utgått", re.IGNORECASE),
)

BOILERPLATE_SELECTOR = (
    "script, style, nav, header, footer, aside, .menu, .sidebar, "
    ".navigation, .advertisement, .cookie-notice"
)

CONTENT_SELECTORS = (
    "main",
    "article",
    ".content",
    ".main-content",
    "#content",
    "#main",
    ".article-content",
    ".post-content",
    # Lovdata
    ".markup",
    ".law-content",
)

HEADING_TAGS = ("h1", "h2", "h3", "h4")
BLOCK_TAGS = (
    "p", "div", "section", "article", "main", "li", "ul", "ol", "table", "tr",
    "blockquote", "pre", "dd", "dt", "br", "h1", "h2", "h3", "h4", "h5", "h6",
)

UNKNOWN_TITLE = "Ukjent tittel"
MIN_CONTENT_CHARS = 200
REPEAL_SCAN_CHARS = 3000
MAX_SECTION_CHARS = 5000
MAX_PATTERN_SECTIONS = 20
SECTION_WINDOW_BEFORE = 200
SECTION_WINDOW_AFTER = 800

# Marks block boundaries so paragraph breaks survive whitespace collapsing.
_BLOCK_BREAK = "\x00"


def _clean_text(text: str, max_chars: int | None = None) -> str:
    """Collapse whitespace, keep paragraph breaks as blank lines, truncate."""
    limit = settings.page_max_content_chars if max_chars is None else max_chars
    text = re.sub(r"\s+", " ", text)
    text = re.sub(rf"\s*{_BLOCK_BREAK}[\s{_BLOCK_BREAK}]*", "\n\n", text)
    return text.strip()[:limit]


def _flatten(text: str) -> str:
    return " ".join(text.replace(_BLOCK_BREAK, " ").split())


def check_if_repealed(soup: BeautifulSoup) -> tuple[bool, str | None]:
    """Scan notice-bearing elements and leading text for repeal phrasing.

    Must run before boilerplate removal: Lovdata puts the notice in header
    and alert elements that the cleanup strips.
    """
    meta = soup.find("meta", attrs={"name": "description"})
    meta_description = meta.get("content", "") if isinstance(meta, Tag) else ""
    alert_text = " ".join(el.get_text(" ") for el in soup.select(".alert, .warning, .notice, .info-box"))
    header_text = " ".join(el.get_text(" ") for el in soup.select("header, .header-info, .law-status"))
    leading_text = soup.get_text(" ")[:REPEAL_SCAN_CHARS]

    haystack = " ".join(
        part for part in (str(meta_description), alert_text, header_text, leading_text) if part
    ).lower()
    haystack = " ".join(haystack.split())

    for pattern in REPEALED_PATTERNS:
        match = pattern.search(haystack)
        if match:
            return True, f'Kilden er opphevet: "{match.group(0)}"'

    title = soup.title.get_text().lower() if soup.title else ""
    if "opphevet" in title or "historisk" in title:
        return True, "Kilden er markert som opphevet i tittelen"

    return False, None


def _extract_title(soup: BeautifulSoup) -> str:
    if soup.title:
        title = _flatten(soup.title.get_text())
        if title:
            return title
    first_h1 = soup.find("h1")
    if first_h1:
        heading = _flatten(first_h1.get_text())
        if heading:
            return heading
    return UNKNOWN_TITLE


def get_main_content(soup: BeautifulSoup) -> str:
    for selector in CONTENT_SELECTORS:
        elements = soup.select(selector)
        if not elements:
            continue
        text = "".join(el.get_text() for el in elements)
        if len(_flatten(text)) > MIN_CONTENT_CHARS:
            return _clean_text(text)

    body = soup.body or soup
    return _clean_text(body.get_text())


def _section_number(text: str) -> str | None:
    match = SECTION_PATTERN.search(text) or CHAPTER_PATTERN.search(text)
    return match.group(0) if match else None


def extract_sections(soup: BeautifulSoup, content: str) -> list[PageSection]:
    sections: list[PageSection] = []

    for heading_el in soup.find_all(HEADING_TAGS):
        heading = _flatten(heading_el.get_text())
        parts: list[str] = []
        for sibling in heading_el.next_siblings:
            if isinstance(sibling, Tag) and sibling.name in HEADING_TAGS:
                break
            parts.append(sibling.get_text() if isinstance(sibling, Tag) else str(sibling))
        following = _flatten("".join(parts))
        if heading and following:
            sections.append(
                PageSection(
                    heading=heading,
                    content=following[:MAX_SECTION_CHARS],
                    section_number=_section_number(heading),
                )
            )

    seen: set[str] = set()
    pattern_sections = 0
    for match in SECTION_PATTERN.finditer(content):
        reference = match.group(0)
        if reference in seen:
            continue
        seen.add(reference)
        pattern_sections += 1
        if pattern_sections > MAX_PATTERN_SECTIONS:
            break
        if any(section.section_number == reference for section in sections):
            continue
        start = max(0, match.start() - SECTION_WINDOW_BEFORE)
        end = min(len(content), match.start() + SECTION_WINDOW_AFTER)
        sections.append(
            PageSection(
                heading=reference,
                content=_flatten(content[start:end]),
                section_number=reference,
            )
        )

    return sections


def parse_page(url: str, html: str) -> ParsedPage:
    """Parse raw HTML into a ParsedPage. Pure; never performs I/O."""
    soup = BeautifulSoup(html, "html.parser")

    is_repealed, repealed_reason = check_if_repealed(soup)

    for element in soup.select(BOILERPLATE_SELECTOR):
        element.decompose()

    for block in soup.find_all(BLOCK_TAGS):
        block.append(_BLOCK_BREAK)

    title = _extract_title(soup)
    content = get_main_content(soup)
    sections = extract_sections(soup, content)

    return ParsedPage(
        url=url,
        title=title,
        content=content,
        sections=sections,
        source_priority=get_source_priority(url),
        is_repealed=is_repealed,
        repealed_reason=repealed_reason,
    )

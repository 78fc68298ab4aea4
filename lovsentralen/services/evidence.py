from __future__ import annotations

from lovsentralen.models.interfaces import Evidence, Excerpt


def build_evidence(case_id: str, excerpts: list[Excerpt]) -> list[Evidence]:
    return [
        Evidence(
            case_id=case_id,
            source_name=excerpt.source.title,
            url=excerpt.source.url,
            title=excerpt.source.title,
            excerpt=excerpt.excerpt,
            section_hint=excerpt.section,
            source_priority=excerpt.source.source_priority,
        )
        for excerpt in excerpts
    ]


def dedup_by_url(evidence: list[Evidence]) -> list[Evidence]:
    """Keep the first evidence record for each URL, preserving order."""
    seen: set[str] = set()
    unique: list[Evidence] = []
    for item in evidence:
        if item.url in seen:
            continue
        seen.add(item.url)
        unique.append(item)
    return unique


def build_evidence_context(evidence: list[Evidence]) -> str:
    """Render evidence as numbered source blocks, most authoritative first."""
    blocks: list[str] = []
    ordered = sorted(evidence, key=lambda e: e.source_priority)
    for index, item in enumerate(ordered, start=1):
        label = item.source_name or item.title
        if item.section_hint:
            label = f"{label} {item.section_hint}"
        blocks.append(
            f"[Kilde {index}: {label}]\n"
            f"URL: {item.url}\n"
            "---\n"
            f"{item.excerpt}\n"
            "---"
        )
    return "\n\n".join(blocks)

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

SourcePriority = Literal[1, 2, 3, 4]
CaseStatus = Literal["draft", "clarifying", "analyzing", "completed", "error"]


@dataclass(frozen=True, slots=True)
class SourceClassification:
    priority: SourcePriority
    blacklisted: bool


@dataclass(slots=True)
class LegalIssue:
    issue: str
    domain: str


@dataclass(slots=True)
class SearchResult:
    title: str
    url: str
    snippet: str
    display_link: str


@dataclass(slots=True)
class PageSection:
    heading: str
    content: str
    section_number: str | None = None


@dataclass(slots=True)
class ParsedPage:
    url: str
    title: str
    content: str
    sections: list[PageSection] = field(default_factory=list)
    source_priority: SourcePriority = 4
    is_repealed: bool = False
    repealed_reason: str | None = None


@dataclass(slots=True)
class Excerpt:
    excerpt: str
    source: ParsedPage
    section: str | None = None


@dataclass(slots=True)
class Evidence:
    case_id: str
    source_name: str
    url: str
    title: str
    excerpt: str
    section_hint: str | None
    source_priority: SourcePriority

    def to_row(self) -> dict[str, Any]:
        return {
            "case_id": self.case_id,
            "source_name": self.source_name,
            "url": self.url,
            "title": self.title,
            "excerpt": self.excerpt,
            "section_hint": self.section_hint,
            "source_priority": self.source_priority,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Evidence":
        try:
            priority = int(row.get("source_priority") or 4)
        except (TypeError, ValueError):
            priority = 4
        return cls(
            case_id=str(row.get("case_id", "")),
            source_name=str(row.get("source_name") or row.get("title") or ""),
            url=str(row.get("url", "")),
            title=str(row.get("title") or ""),
            excerpt=str(row.get("excerpt") or ""),
            section_hint=row.get("section_hint") or None,
            source_priority=min(max(priority, 1), 4),
        )


@dataclass(slots=True)
class ClarificationPair:
    question: str
    answer: str

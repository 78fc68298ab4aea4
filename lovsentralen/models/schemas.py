from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

ConfidenceLevel = Literal["lav", "middels", "høy"]
ChecklistPriority = Literal["høy", "middels", "lav"]

LegalCategory = Literal[
    "forbrukerkjop",
    "husleie",
    "arbeidsrett",
    "personvern",
    "kontrakt",
    "erstatning",
]

CATEGORY_LABELS: dict[str, str] = {
    "forbrukerkjop": "Forbrukerkjøp",
    "husleie": "Husleie",
    "arbeidsrett": "Arbeidsrett",
    "personvern": "Personvern",
    "kontrakt": "Kontrakt",
    "erstatning": "Erstatning",
}

_LEVEL_ALIASES = {
    "hoy": "høy",
    "høg": "høy",
    "high": "høy",
    "medium": "middels",
    "moderat": "middels",
    "low": "lav",
}


def _coerce_level(value: Any, default: str) -> str:
    if not isinstance(value, str):
        return default
    lowered = value.strip().lower()
    lowered = _LEVEL_ALIASES.get(lowered, lowered)
    if lowered in ("lav", "middels", "høy"):
        return lowered
    return default


def _coerce_str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [" ".join(item.split()) for item in value if isinstance(item, str) and item.strip()]


def _coerce_int(value: Any, *, default: int, low: int, high: int) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    return min(max(number, low), high)


# --- Analysis output ---


class Citation(BaseModel):
    source_name: str = ""
    section: str | None = None
    url: str = ""

    @field_validator("source_name", "url", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("section", mode="before")
    @classmethod
    def _blank_section_is_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class QAItem(BaseModel):
    id: str = ""
    question: str = ""
    answer: str = ""
    citations: list[Citation] = Field(default_factory=list)
    confidence: ConfidenceLevel = "middels"
    assumptions: list[str] = Field(default_factory=list)
    missing_facts: list[str] = Field(default_factory=list)
    relevance: int = 5
    relevance_reason: str = ""
    legal_reasoning: str = ""
    show_assumptions: bool = False

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: Any) -> str:
        return _coerce_level(value, "middels")

    @field_validator("relevance", mode="before")
    @classmethod
    def _coerce_relevance(cls, value: Any) -> int:
        return _coerce_int(value, default=5, low=1, high=10)

    @field_validator("assumptions", "missing_facts", mode="before")
    @classmethod
    def _coerce_lists(cls, value: Any) -> list[str]:
        return _coerce_str_list(value)

    @field_validator("citations", mode="before")
    @classmethod
    def _drop_malformed_citations(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, (dict, Citation))]

    @field_validator("question", "answer", "relevance_reason", "legal_reasoning", "id", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("show_assumptions", mode="before")
    @classmethod
    def _none_is_false(cls, value: Any) -> Any:
        return False if value is None else value


class ChecklistItem(BaseModel):
    id: str = ""
    text: str = ""
    priority: ChecklistPriority = "middels"
    completed: bool = False

    @field_validator("id", "text", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("completed", mode="before")
    @classmethod
    def _none_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> str:
        return _coerce_level(value, "middels")


class DocumentationItem(BaseModel):
    id: str = ""
    text: str = ""
    reason: str = ""

    @field_validator("id", "text", "reason", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class LegalSource(BaseModel):
    name: str = ""
    url: str = ""
    description: str = ""
    priority: int = 4

    @field_validator("name", "url", "description", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> int:
        return _coerce_int(value, default=4, low=1, high=4)


class AnalysisResult(BaseModel):
    qa_items: list[QAItem] = Field(default_factory=list)
    checklist: list[ChecklistItem] = Field(default_factory=list)
    documentation: list[DocumentationItem] = Field(default_factory=list)
    sources: list[LegalSource] = Field(default_factory=list)

    def to_row(self, case_id: str) -> dict[str, Any]:
        return {
            "case_id": case_id,
            "qa_json": [item.model_dump() for item in self.qa_items],
            "checklist_json": [item.model_dump() for item in self.checklist],
            "documentation_json": [item.model_dump() for item in self.documentation],
            "sources_json": [item.model_dump() for item in self.sources],
        }


class SensitivityReport(BaseModel):
    is_sensitive: bool = False
    topics: list[str] = Field(default_factory=list)
    escalation_needed: bool = False
    reason: str = ""

    @field_validator("topics", mode="before")
    @classmethod
    def _coerce_topics(cls, value: Any) -> list[str]:
        return _coerce_str_list(value)


# --- Requests ---


class CreateCaseRequest(BaseModel):
    faktum_text: str = Field(min_length=50)
    category: LegalCategory | None = None

    @field_validator("faktum_text", mode="before")
    @classmethod
    def _strip_facts(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class ClarificationAnswersRequest(BaseModel):
    answers: dict[str, str]


# --- Responses ---


class CaseResponse(BaseModel):
    id: str
    user_id: str
    faktum_text: str
    category: str | None = None
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CreateCaseResponse(BaseModel):
    case: CaseResponse
    sensitivity: SensitivityReport
    escalation_message: str | None = None
    clarifications_count: int


class CaseDetailResponse(BaseModel):
    case: CaseResponse
    clarifications: list[dict[str, Any]] = Field(default_factory=list)
    result: dict[str, Any] | None = None
    evidence: list[dict[str, Any]] = Field(default_factory=list)

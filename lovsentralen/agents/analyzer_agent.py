from __future__ import annotations

from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from lovsentralen.agents.base import BaseAgent, format_clarifications
from lovsentralen.config import settings
from lovsentralen.errors import AnalysisSynthesisError
from lovsentralen.models.interfaces import ClarificationPair, Evidence
from lovsentralen.models.schemas import (
    AnalysisResult,
    ChecklistItem,
    DocumentationItem,
    LegalSource,
    QAItem,
)
from lovsentralen.services.evidence import build_evidence_context
from lovsentralen.services.prompt_store import render_prompt
from lovsentralen.tools.source_classifier import get_source_priority

MAX_QA_ITEMS = 10
MAX_CHECKLIST_ITEMS = 8
MAX_DOCUMENTATION_ITEMS = 6

UNCONFIRMED_NOTE = "Svaret kunne ikke bekreftes av de innhentede kildene."


def _validate_items(raw: Any, model: type[BaseModel], *, limit: int, id_prefix: str) -> list[Any]:
    items: list[Any] = []
    seen_ids: set[str] = set()
    for entry in raw if isinstance(raw, list) else []:
        if not isinstance(entry, dict):
            continue
        try:
            item = model.model_validate(entry)
        except ValidationError as e:
            logger.debug(f"Dropping malformed {model.__name__}: {e.error_count()} error(s)")
            continue
        if "id" in model.model_fields:
            item_id = str(item.id or "").strip()
            if not item_id or item_id in seen_ids:
                item_id = f"{id_prefix}{len(items) + 1}"
                while item_id in seen_ids:
                    item_id = f"{item_id}_"
                item.id = item_id
            seen_ids.add(item_id)
        items.append(item)
        if len(items) >= limit:
            break
    return items


def ground_citations(item: QAItem, evidence_urls: set[str]) -> QAItem:
    """Remove citations that point outside the evidence; flag items left unsupported."""
    item.citations = [c for c in item.citations if c.url.strip() in evidence_urls]
    if not item.citations:
        item.confidence = "lav"
        if UNCONFIRMED_NOTE not in item.missing_facts:
            item.missing_facts.append(UNCONFIRMED_NOTE)
    return item


class AnalyzerAgent(BaseAgent):
    """Synthesize the structured legal analysis from facts, clarifications and evidence."""

    name = "analyzer"

    async def synthesize(
        self,
        facts: str,
        clarifications: list[ClarificationPair],
        evidence: list[Evidence],
    ) -> AnalysisResult:
        prompt = render_prompt(
            "analyzer_agent.user_prompt",
            facts=facts,
            clarifications=format_clarifications(clarifications),
            evidence=build_evidence_context(evidence) or "Ingen evidens funnet.",
        )
        payload = await self._reason(
            prompt,
            default={},
            temperature=0.4,
            max_tokens=settings.synthesis_max_tokens,
        )

        evidence_urls = {e.url.strip() for e in evidence if e.url}
        qa_items = [
            ground_citations(item, evidence_urls)
            for item in _validate_items(payload.get("qa_items"), QAItem, limit=MAX_QA_ITEMS, id_prefix="qa")
            if item.question.strip() and item.answer.strip()
        ]
        if not qa_items:
            raise AnalysisSynthesisError("Synthesis produced no usable Q&A items")

        sources = _validate_items(payload.get("sources"), LegalSource, limit=len(evidence) + MAX_QA_ITEMS, id_prefix="s")
        for source in sources:
            source.priority = get_source_priority(source.url) if source.url else 4

        checklist = _validate_items(payload.get("checklist"), ChecklistItem, limit=MAX_CHECKLIST_ITEMS, id_prefix="c")
        for entry in checklist:
            entry.completed = False

        result = AnalysisResult(
            qa_items=qa_items,
            checklist=checklist,
            documentation=_validate_items(
                payload.get("documentation"), DocumentationItem, limit=MAX_DOCUMENTATION_ITEMS, id_prefix="d"
            ),
            sources=[s for s in sources if s.name.strip()],
        )
        logger.info(
            f"Synthesized {len(result.qa_items)} Q&A items, {len(result.checklist)} checklist items, "
            f"{len(result.documentation)} documentation items, {len(result.sources)} sources"
        )
        return result

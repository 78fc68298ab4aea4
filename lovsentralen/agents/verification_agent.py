from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable

from loguru import logger
from pydantic import ValidationError

from lovsentralen.agents.analyzer_agent import ground_citations
from lovsentralen.agents.base import BaseAgent
from lovsentralen.agents.refinement_agent import format_citations
from lovsentralen.config import settings
from lovsentralen.llm_client import StructuredReasoner
from lovsentralen.models.interfaces import Evidence, SearchResult
from lovsentralen.models.schemas import QAItem
from lovsentralen.services import logger as log_service
from lovsentralen.services import search_executor
from lovsentralen.services.evidence import build_evidence, build_evidence_context, dedup_by_url
from lovsentralen.services.excerpts import extract_relevant_excerpts
from lovsentralen.services.prompt_store import render_prompt
from lovsentralen.tools.page_fetcher import PageFetcher

CHECKS = ("question_answer", "citation_answer", "reasoning_citation")

SearchFn = Callable[[str], Awaitable[list[SearchResult]]]

FALSE_STRINGS = ("false", "nei", "no", "0")


def _is_false(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in FALSE_STRINGS
    return value is False


@dataclass(slots=True)
class VerificationResult:
    consistent: bool
    problems: list[str] = field(default_factory=list)


@dataclass(slots=True)
class RepairOutcome:
    item: QAItem
    consistent: bool
    iterations: int = 0
    evidence: list[Evidence] = field(default_factory=list)


class VerificationAgent(BaseAgent):
    """Check each Q&A item for internal consistency and repair it with fresh sources."""

    name = "verification"

    def __init__(
        self,
        reasoner: StructuredReasoner | None = None,
        *,
        fetcher: PageFetcher | None = None,
        search: SearchFn | None = None,
        case_id: str = "",
    ):
        super().__init__(reasoner)
        self.fetcher = fetcher or PageFetcher()
        self._search = search or search_executor.search_one
        self.case_id = case_id

    async def verify(self, item: QAItem) -> VerificationResult:
        payload = await self._reason(
            render_prompt(
                "verification_agent.verify_prompt",
                question=item.question,
                answer=item.answer,
                citations=format_citations(item.citations),
                legal_reasoning=item.legal_reasoning or "Ingen begrunnelse.",
            ),
            default={check: True for check in CHECKS},
            temperature=0.0,
        )
        failed = [check for check in CHECKS if _is_false(payload.get(check))]
        problems = self._normalize_text_list(payload.get("problems"), max_items=5, min_len=3)
        if failed and not problems:
            problems = [f"Kontroll feilet: {check}" for check in failed]
        return VerificationResult(consistent=not failed, problems=problems)

    async def _gather_repair_evidence(self, question: str) -> list[Evidence]:
        try:
            results = await self._search(f"{question} lovdata")
        except Exception as e:
            logger.warning(f"Repair search failed for {question!r}: {e}")
            return []
        urls = [r.url for r in results[: settings.repair_max_pages]]
        if not urls:
            return []
        pages = await self.fetcher.fetch_multiple_pages(urls)
        excerpts = extract_relevant_excerpts(pages, question, max_excerpts=settings.excerpts_per_issue)
        return dedup_by_url(build_evidence(self.case_id, excerpts))

    async def _regenerate(
        self,
        item: QAItem,
        facts: str,
        problems: list[str],
        evidence: list[Evidence],
    ) -> QAItem | None:
        payload = await self._reason(
            render_prompt(
                "verification_agent.repair_prompt",
                facts=facts,
                question=item.question,
                previous_answer=item.answer,
                problems="\n".join(f"- {p}" for p in problems) or "- Svaret er ikke konsistent.",
                evidence=build_evidence_context(evidence),
            ),
            default={},
            temperature=0.3,
        )
        answer = payload.get("answer")
        if not isinstance(answer, str) or not answer.strip():
            return None

        try:
            candidate = QAItem.model_validate(
                {
                    **item.model_dump(),
                    "answer": answer.strip(),
                    "citations": payload.get("citations", []),
                    "legal_reasoning": payload.get("legal_reasoning") or item.legal_reasoning,
                    "confidence": payload.get("confidence", item.confidence),
                }
            )
        except ValidationError as e:
            logger.warning(f"Discarding malformed repair of Q&A item {item.id}: {e.error_count()} error(s)")
            return None
        allowed = {e.url for e in evidence} | {c.url for c in item.citations}
        return ground_citations(candidate, allowed)

    async def verify_and_repair(self, item: QAItem, facts: str) -> RepairOutcome:
        result = await self.verify(item)
        if result.consistent:
            return RepairOutcome(item=item, consistent=True)

        current = item
        gathered: list[Evidence] = []
        for iteration in range(1, settings.repair_max_iterations + 1):
            evidence = await self._gather_repair_evidence(current.question)
            if evidence:
                gathered.extend(evidence)
                regenerated = await self._regenerate(current, facts, result.problems, evidence)
                if regenerated is not None:
                    current = regenerated
                    result = await self.verify(current)
                    if result.consistent:
                        return RepairOutcome(
                            item=current,
                            consistent=True,
                            iterations=iteration,
                            evidence=dedup_by_url(gathered),
                        )

        log_service.log_event(
            "repair_exhausted",
            f"Q&A item {item.id} still inconsistent after {settings.repair_max_iterations} repair attempt(s)",
            case_id=self.case_id,
            item_id=item.id,
            problems=result.problems,
        )
        return RepairOutcome(
            item=current,
            consistent=False,
            iterations=settings.repair_max_iterations,
            evidence=dedup_by_url(gathered),
        )

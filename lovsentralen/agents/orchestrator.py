from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator

from loguru import logger

from lovsentralen.agents.analyzer_agent import AnalyzerAgent
from lovsentralen.agents.clarification_agent import ClarificationAgent
from lovsentralen.agents.issue_agent import IssueAgent
from lovsentralen.agents.quality_pipeline import ensure_qa_quality
from lovsentralen.agents.refinement_agent import RefinementAgent
from lovsentralen.agents.sensitivity_agent import SensitivityAgent, escalation_message_for
from lovsentralen.agents.verification_agent import VerificationAgent
from lovsentralen.config import settings
from lovsentralen.errors import CaseNotFoundError
from lovsentralen.llm_client import StructuredReasoner
from lovsentralen.models.events import SSEEvent
from lovsentralen.models.interfaces import ClarificationPair, Evidence, LegalIssue
from lovsentralen.models.schemas import SensitivityReport
from lovsentralen.services import logger as log_service
from lovsentralen.services import search_executor, streaming
from lovsentralen.services.evidence import build_evidence, dedup_by_url
from lovsentralen.services.excerpts import extract_relevant_excerpts
from lovsentralen.services.memory_store import CaseStore
from lovsentralen.services.query_planner import generate_search_queries
from lovsentralen.tools.page_fetcher import PageFetcher


@dataclass
class CaseStart:
    case: dict[str, Any]
    sensitivity: SensitivityReport
    escalation_message: str | None = None
    clarifications: list[dict[str, Any]] = field(default_factory=list)


def plan_queries(issues: list[LegalIssue], *, max_queries: int) -> list[str]:
    """Queries for every issue, deduplicated case-insensitively and capped."""
    queries: list[str] = []
    seen: set[str] = set()
    for issue in issues:
        for query in generate_search_queries(issue.issue, issue.domain):
            key = " ".join(query.lower().split())
            if key in seen:
                continue
            seen.add(key)
            queries.append(query)
    return queries[: max(max_queries, 0)]


def answered_pairs(rows: list[dict[str, Any]]) -> list[ClarificationPair]:
    pairs: list[ClarificationPair] = []
    for row in rows:
        answer = row.get("user_answer")
        if isinstance(answer, str) and answer.strip():
            pairs.append(ClarificationPair(question=str(row.get("question") or ""), answer=answer.strip()))
    return pairs


class CaseAnalysisOrchestrator:
    """Run the case lifecycle: intake with clarifying questions, then the evidence and analysis pipeline.

    Collaborators are passed in explicitly so tests can substitute the store,
    the reasoning service, the page fetcher and the search function.
    """

    def __init__(
        self,
        store: CaseStore,
        *,
        reasoner: StructuredReasoner | None = None,
        fetcher: PageFetcher | None = None,
        search_many=None,
        search_one=None,
    ):
        self.store = store
        self.reasoner = reasoner or StructuredReasoner()
        self.fetcher = fetcher or PageFetcher()
        self._search_many = search_many or search_executor.search_many
        self._search_one = search_one or search_executor.search_one

        self.issue_agent = IssueAgent(self.reasoner)
        self.clarification_agent = ClarificationAgent(self.reasoner, search=self._search_one)
        self.sensitivity_agent = SensitivityAgent(self.reasoner)
        self.analyzer_agent = AnalyzerAgent(self.reasoner)
        self.refinement_agent = RefinementAgent(self.reasoner)

    # --- Intake ---

    async def start_case(self, user_id: str, faktum_text: str, category: str | None) -> CaseStart:
        case = await self.store.create_case(user_id, faktum_text, category)
        case_id = str(case["id"])
        log_service.log_pipeline_step(case_id, "case_created", "completed", {"category": category})

        sensitivity = await self.sensitivity_agent.detect(faktum_text)
        if sensitivity.is_sensitive:
            log_service.log_event(
                "sensitive_case",
                f"Case {case_id} flagged as sensitive",
                topics=sensitivity.topics,
                escalation_needed=sensitivity.escalation_needed,
            )

        legal_context = await self.clarification_agent.build_preliminary_context(faktum_text, category)
        questions = await self.clarification_agent.generate(faktum_text, category, legal_context)
        clarifications = await self.store.create_clarifications(case_id, questions)
        log_service.log_pipeline_step(
            case_id,
            "clarifications_generated",
            "completed",
            {"count": len(clarifications), "with_context": bool(legal_context)},
        )

        return CaseStart(
            case=case,
            sensitivity=sensitivity,
            escalation_message=escalation_message_for(sensitivity),
            clarifications=clarifications,
        )

    # --- Analysis ---

    async def analyze(self, case_id: str) -> AsyncGenerator[SSEEvent, None]:
        """Claim the case and run the full pipeline, yielding progress events."""
        case = await self.store.claim_case_for_analysis(case_id)
        events = self.run_claimed(case)
        try:
            async for event in events:
                yield event
        finally:
            await events.aclose()

    async def run_claimed(self, case: dict[str, Any]) -> AsyncGenerator[SSEEvent, None]:
        """Run the pipeline for a case already moved to 'analyzing'.

        Any failure marks the case 'error' and ends the stream with an error
        event; a cancelled or abandoned run is marked 'error' too, so the case
        never stays locked. The result row is only written once every pass has finished.
        """
        case_id = str(case["id"])
        facts = str(case.get("faktum_text") or "")
        category = case.get("category")
        started = time.monotonic()
        stage = "start"
        settled = False

        try:
            yield streaming.analysis_started(case_id)

            stage = "issues"
            clarifications = answered_pairs(await self.store.get_clarifications(case_id))
            issues = await self.issue_agent.extract(facts, clarifications, category=category)
            log_service.log_pipeline_step(case_id, "issues_extracted", "completed", {"count": len(issues)})
            yield streaming.issues_extracted(issues)

            stage = "search"
            queries = plan_queries(issues, max_queries=settings.max_search_queries)
            results = await self._search_many(queries)
            log_service.log_pipeline_step(
                case_id, "search", "completed", {"queries": len(queries), "results": len(results)}
            )
            yield streaming.search_completed(len(queries), len(results))

            stage = "fetch"
            urls = [r.url for r in results[: settings.max_pages_to_fetch]]
            pages = await self.fetcher.fetch_multiple_pages(urls)
            log_service.log_pipeline_step(case_id, "fetch", "completed", {"requested": len(urls), "parsed": len(pages)})
            yield streaming.pages_fetched(len(urls), len(pages))

            stage = "evidence"
            collected: list[Evidence] = []
            for issue in issues:
                excerpts = extract_relevant_excerpts(pages, issue.issue, max_excerpts=settings.excerpts_per_issue)
                collected.extend(build_evidence(case_id, excerpts))
            evidence = dedup_by_url(collected)
            if not evidence:
                logger.warning(f"No evidence found for case {case_id}; synthesizing without sources")
            await self.store.delete_evidence(case_id)
            await self.store.insert_evidence([e.to_row() for e in evidence])
            yield streaming.evidence_saved(len(evidence))

            stage = "synthesis"
            yield streaming.synthesis_started(len(evidence))
            result = await self.analyzer_agent.synthesize(facts, clarifications, evidence)

            stage = "quality"
            verification = VerificationAgent(
                self.reasoner,
                fetcher=self.fetcher,
                search=self._search_one,
                case_id=case_id,
            )
            quality = await ensure_qa_quality(
                result.qa_items,
                facts,
                refinement=self.refinement_agent,
                verification=verification,
                case_id=case_id,
            )
            for stats in quality.stages:
                yield streaming.quality_pass_completed(**stats)
            result.qa_items = quality.items

            known_urls = {e.url for e in evidence}
            repair_evidence = [e for e in dedup_by_url(quality.evidence) if e.url not in known_urls]
            if repair_evidence:
                await self.store.insert_evidence([e.to_row() for e in repair_evidence])

            stage = "save"
            await self.store.replace_result(case_id, result.to_row(case_id))
            await self.store.update_case_status(case_id, "completed")
            settled = True

            runtime_ms = int((time.monotonic() - started) * 1000)
            log_service.log_pipeline_step(
                case_id, "analysis", "completed", {"qa_items": len(result.qa_items), "runtime_ms": runtime_ms}
            )
            yield streaming.analysis_complete(
                case_id,
                len(result.qa_items),
                [source.model_dump() for source in result.sources],
                runtime_ms=runtime_ms,
            )
        except Exception as e:
            logger.exception(f"Analysis failed for case {case_id} at stage {stage}")
            log_service.log_pipeline_step(case_id, stage, "failed", {"error": str(e)})
            if not settled:
                await self._mark_error(case_id)
                settled = True
            yield streaming.error(f"Analysen feilet: {e}", stage=stage)
        finally:
            # Cancellation and early close skip the except branch above.
            if not settled:
                logger.warning(f"Analysis for case {case_id} interrupted at stage {stage}")
                await asyncio.shield(self._mark_error(case_id))

    async def _mark_error(self, case_id: str) -> None:
        try:
            await self.store.update_case_status(case_id, "error")
        except CaseNotFoundError:
            logger.warning(f"Case {case_id} disappeared before its error status could be saved")

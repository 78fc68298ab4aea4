"""Consistency passes applied to synthesized Q&A items, in fixed order.

Every pass is fail-open: if it raises, its input is passed on unchanged and
the failure is logged. The item count never changes.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from loguru import logger

from lovsentralen.agents.refinement_agent import RefinementAgent
from lovsentralen.agents.verification_agent import RepairOutcome, VerificationAgent
from lovsentralen.config import settings
from lovsentralen.models.interfaces import Evidence
from lovsentralen.models.schemas import QAItem
from lovsentralen.services import logger as log_service
from lovsentralen.services.vague_terms import clarify_vague_terms

STAGES = ("vague_terms", "reasoning", "ordering", "assumptions", "verification")


@dataclass(slots=True)
class QualityReport:
    items: list[QAItem]
    evidence: list[Evidence] = field(default_factory=list)
    stages: list[dict[str, Any]] = field(default_factory=list)


async def _run_stage(
    name: str,
    items: list[QAItem],
    stage: Callable[[list[QAItem]], Awaitable[list[QAItem]]],
) -> tuple[list[QAItem], bool]:
    try:
        updated = await stage(items)
    except Exception as e:
        logger.warning(f"Quality pass '{name}' failed, keeping previous items: {e}")
        return items, False
    if len(updated) != len(items):
        logger.warning(f"Quality pass '{name}' changed the item count ({len(items)} -> {len(updated)}); discarded")
        return items, False
    return updated, True


async def ensure_qa_quality(
    items: list[QAItem],
    facts: str,
    *,
    refinement: RefinementAgent,
    verification: VerificationAgent,
    case_id: str | None = None,
) -> QualityReport:
    report = QualityReport(items=list(items))
    outcomes: list[RepairOutcome] = []

    async def vague_terms(current: list[QAItem]) -> list[QAItem]:
        return [clarify_vague_terms(item) for item in current]

    async def reasoning(current: list[QAItem]) -> list[QAItem]:
        return await refinement.attach_reasoning(current, facts)

    async def ordering(current: list[QAItem]) -> list[QAItem]:
        return await refinement.order_items(current)

    async def assumptions(current: list[QAItem]) -> list[QAItem]:
        return await refinement.evaluate_assumptions(current, facts)

    async def verify(current: list[QAItem]) -> list[QAItem]:
        semaphore = asyncio.Semaphore(max(settings.quality_max_parallel, 1))

        async def run_item(item: QAItem) -> RepairOutcome:
            async with semaphore:
                try:
                    return await verification.verify_and_repair(item, facts)
                except Exception as e:
                    logger.warning(f"Verification failed for Q&A item {item.id}: {e}")
                    return RepairOutcome(item=item, consistent=False)

        outcomes.extend(await asyncio.gather(*(run_item(item) for item in current)))
        return [outcome.item for outcome in outcomes]

    passes = {
        "vague_terms": vague_terms,
        "reasoning": reasoning,
        "ordering": ordering,
        "assumptions": assumptions,
        "verification": verify,
    }

    for name in STAGES:
        report.items, succeeded = await _run_stage(name, report.items, passes[name])
        stats: dict[str, Any] = {"stage": name, "succeeded": succeeded}
        if name == "verification" and succeeded:
            stats["consistent"] = sum(1 for o in outcomes if o.consistent)
            stats["repaired"] = sum(1 for o in outcomes if o.consistent and o.iterations)
            for outcome in outcomes:
                report.evidence.extend(outcome.evidence)
        report.stages.append(stats)
        log_service.log_pipeline_step(case_id, f"quality_{name}", "completed" if succeeded else "failed", stats)

    return report

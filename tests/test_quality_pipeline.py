from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import FakeReasoner

from lovsentralen.agents.quality_pipeline import STAGES, ensure_qa_quality
from lovsentralen.agents.refinement_agent import RefinementAgent
from lovsentralen.agents.verification_agent import RepairOutcome, VerificationAgent
from lovsentralen.models.interfaces import Evidence
from lovsentralen.models.schemas import QAItem


def _items() -> list[QAItem]:
    return [
        QAItem(id="qa1", question="Hvilken lov gjelder?", answer="Forbrukerkjøpsloven gjelder."),
        QAItem(id="qa2", question="Når må jeg klage?", answer="Du må klage innen rimelig tid."),
    ]


def _verification(reasoner: FakeReasoner) -> VerificationAgent:
    return VerificationAgent(reasoner, fetcher=MagicMock(), search=AsyncMock(return_value=[]))


@pytest.mark.asyncio
async def test_passes_run_in_order_and_report_stats():
    reasoner = FakeReasoner()

    report = await ensure_qa_quality(
        _items(),
        "faktum",
        refinement=RefinementAgent(reasoner),
        verification=_verification(reasoner),
        case_id="case-1",
    )

    assert [s["stage"] for s in report.stages] == list(STAGES)
    assert all(s["succeeded"] for s in report.stages)
    assert report.stages[-1]["consistent"] == 2
    assert report.stages[-1]["repaired"] == 0
    assert "Forklaring av begreper:" in report.items[1].answer


@pytest.mark.asyncio
async def test_failing_pass_is_skipped_and_items_survive():
    refinement = RefinementAgent(FakeReasoner({"refinement": RuntimeError("tjenesten er nede")}))

    report = await ensure_qa_quality(
        _items(),
        "faktum",
        refinement=refinement,
        verification=_verification(FakeReasoner()),
    )

    succeeded = {s["stage"]: s["succeeded"] for s in report.stages}
    assert succeeded == {
        "vague_terms": True,
        "reasoning": False,
        "ordering": False,
        "assumptions": True,
        "verification": True,
    }
    assert [i.id for i in report.items] == ["qa1", "qa2"]


@pytest.mark.asyncio
async def test_pass_that_changes_item_count_is_discarded():
    refinement = RefinementAgent(FakeReasoner())
    refinement.order_items = AsyncMock(side_effect=lambda items: items[:1])

    report = await ensure_qa_quality(
        _items(), "faktum", refinement=refinement, verification=_verification(FakeReasoner())
    )

    assert len(report.items) == 2
    assert report.stages[2] == {"stage": "ordering", "succeeded": False}


@pytest.mark.asyncio
async def test_verification_errors_keep_the_item_and_collect_repair_evidence():
    items = _items()
    evidence = Evidence(
        case_id="case-1",
        source_name="Lov",
        url="https://lovdata.no/ny",
        title="Lov",
        excerpt="...",
        section_hint=None,
        source_priority=1,
    )
    verification = _verification(FakeReasoner())

    async def verify_and_repair(item, facts):
        if item.id == "qa1":
            raise RuntimeError("boom")
        return RepairOutcome(item=item, consistent=True, iterations=1, evidence=[evidence])

    verification.verify_and_repair = verify_and_repair

    report = await ensure_qa_quality(items, "faktum", refinement=RefinementAgent(FakeReasoner()), verification=verification)

    assert {i.id for i in report.items} == {"qa1", "qa2"}
    assert report.stages[-1]["consistent"] == 1
    assert report.stages[-1]["repaired"] == 1
    assert report.evidence == [evidence]

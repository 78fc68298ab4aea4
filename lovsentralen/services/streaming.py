from __future__ import annotations

from typing import Any

from lovsentralen.models.events import EventType, SSEEvent
from lovsentralen.models.interfaces import LegalIssue


def analysis_started(case_id: str) -> SSEEvent:
    return SSEEvent(event=EventType.ANALYSIS_STARTED, data={"case_id": case_id})


def issues_extracted(issues: list[LegalIssue]) -> SSEEvent:
    return SSEEvent(
        event=EventType.ISSUES_EXTRACTED,
        data={"issues": [{"issue": i.issue, "domain": i.domain} for i in issues]},
    )


def search_completed(queries_run: int, results_count: int) -> SSEEvent:
    return SSEEvent(
        event=EventType.SEARCH_COMPLETED,
        data={"queries_run": queries_run, "results_count": results_count},
    )


def pages_fetched(requested: int, parsed: int) -> SSEEvent:
    return SSEEvent(
        event=EventType.PAGES_FETCHED,
        data={"requested": requested, "parsed": parsed},
    )


def evidence_saved(count: int) -> SSEEvent:
    return SSEEvent(event=EventType.EVIDENCE_SAVED, data={"count": count})


def synthesis_started(evidence_count: int) -> SSEEvent:
    return SSEEvent(event=EventType.SYNTHESIS_STARTED, data={"evidence_count": evidence_count})


def quality_pass_completed(stage: str, **kwargs: Any) -> SSEEvent:
    return SSEEvent(event=EventType.QUALITY_PASS_COMPLETED, data={"stage": stage, **kwargs})


def analysis_complete(
    case_id: str,
    qa_count: int,
    sources: list[dict[str, Any]],
    runtime_ms: int | None = None,
) -> SSEEvent:
    data: dict[str, Any] = {
        "case_id": case_id,
        "qa_count": qa_count,
        "sources": sources,
    }
    if runtime_ms is not None:
        data["runtime_ms"] = runtime_ms
    return SSEEvent(event=EventType.ANALYSIS_COMPLETE, data=data)


def error(message: str, stage: str | None = None) -> SSEEvent:
    data: dict[str, Any] = {"message": message}
    if stage:
        data["stage"] = stage
    return SSEEvent(event=EventType.ERROR, data=data)

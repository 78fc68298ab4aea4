from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from sse_starlette.sse import EventSourceResponse

from lovsentralen.agents.orchestrator import CaseAnalysisOrchestrator
from lovsentralen.api.deps import get_current_user, get_orchestrator, get_owned_case, get_store
from lovsentralen.errors import CaseBusyError, CaseNotFoundError
from lovsentralen.models.interfaces import Evidence
from lovsentralen.models.schemas import (
    CaseDetailResponse,
    CaseResponse,
    ClarificationAnswersRequest,
    CreateCaseRequest,
    CreateCaseResponse,
)
from lovsentralen.services import logger as log_service
from lovsentralen.services import streaming
from lovsentralen.services.memory_store import CaseStore
from lovsentralen.services.report import render_text_report, report_filename

router = APIRouter(prefix="/api/cases", tags=["cases"])


@router.post("", response_model=CreateCaseResponse)
async def create_case(
    request: CreateCaseRequest,
    user_id: str = Depends(get_current_user),
    store: CaseStore = Depends(get_store),
    orchestrator: CaseAnalysisOrchestrator = Depends(get_orchestrator),
):
    """Register the facts, screen for sensitive topics and generate clarifying questions."""
    if not await store.has_active_subscription(user_id):
        raise HTTPException(status_code=402, detail="Aktivt abonnement kreves")

    started = await orchestrator.start_case(user_id, request.faktum_text, request.category)
    return CreateCaseResponse(
        case=CaseResponse.model_validate(started.case),
        sensitivity=started.sensitivity,
        escalation_message=started.escalation_message,
        clarifications_count=len(started.clarifications),
    )


@router.get("", response_model=list[CaseResponse])
async def list_cases(
    user_id: str = Depends(get_current_user),
    store: CaseStore = Depends(get_store),
):
    return [CaseResponse.model_validate(case) for case in await store.list_cases(user_id)]


@router.get("/{case_id}", response_model=CaseDetailResponse)
async def get_case(
    case_id: str,
    user_id: str = Depends(get_current_user),
    store: CaseStore = Depends(get_store),
):
    case = await get_owned_case(case_id, user_id, store)
    return CaseDetailResponse(
        case=CaseResponse.model_validate(case),
        clarifications=await store.get_clarifications(case_id),
        result=await store.get_result(case_id),
        evidence=await store.get_evidence(case_id),
    )


@router.delete("/{case_id}")
async def delete_case(
    case_id: str,
    user_id: str = Depends(get_current_user),
    store: CaseStore = Depends(get_store),
):
    case = await get_owned_case(case_id, user_id, store)
    if case.get("status") == "analyzing":
        raise HTTPException(status_code=409, detail="Saken analyseres nå og kan ikke slettes")
    await store.delete_case(case_id)
    return {"deleted": True, "id": case_id}


@router.put("/{case_id}/clarifications")
async def answer_clarifications(
    case_id: str,
    request: ClarificationAnswersRequest,
    user_id: str = Depends(get_current_user),
    store: CaseStore = Depends(get_store),
):
    await get_owned_case(case_id, user_id, store)
    answers = {key: value.strip() for key, value in request.answers.items() if value and value.strip()}
    clarifications = await store.answer_clarifications(case_id, answers)
    return {"clarifications": clarifications}


@router.get("/{case_id}/analyze/stream")
async def stream_analysis(
    case_id: str,
    user_id: str = Depends(get_current_user),
    store: CaseStore = Depends(get_store),
    orchestrator: CaseAnalysisOrchestrator = Depends(get_orchestrator),
):
    """SSE endpoint that runs the analysis and streams its progress."""
    await get_owned_case(case_id, user_id, store)
    try:
        case = await store.claim_case_for_analysis(case_id)
    except CaseBusyError:
        raise HTTPException(status_code=409, detail="Analysen kjører allerede for denne saken")
    except CaseNotFoundError:
        raise HTTPException(status_code=404, detail="Sak ikke funnet")

    async def event_generator():
        log_service.log_event(
            event_type="analysis_started",
            message="Case analysis started",
            case_id=case_id,
        )
        events = orchestrator.run_claimed(case)
        try:
            async for event in events:
                yield {
                    "event": event.event.value,
                    "data": json.dumps(event.data, ensure_ascii=False),
                }
        except Exception as e:
            error_event = streaming.error(f"Analysen feilet: {e}")
            yield {
                "event": error_event.event.value,
                "data": json.dumps(error_event.data, ensure_ascii=False),
            }
        finally:
            # A client disconnect closes this generator; closing the run marks the case 'error'.
            await events.aclose()

    return EventSourceResponse(event_generator())


@router.get("/{case_id}/export")
async def export_case(
    case_id: str,
    user_id: str = Depends(get_current_user),
    store: CaseStore = Depends(get_store),
):
    case = await get_owned_case(case_id, user_id, store)
    result = await store.get_result(case_id)
    evidence = [Evidence.from_row(row) for row in await store.get_evidence(case_id)]
    return PlainTextResponse(
        render_text_report(case, result, evidence),
        headers={"Content-Disposition": f'attachment; filename="{report_filename(case_id)}"'},
    )

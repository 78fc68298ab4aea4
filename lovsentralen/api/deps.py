from __future__ import annotations

from typing import Any

from fastapi import Depends, Header, HTTPException

from lovsentralen.agents.orchestrator import CaseAnalysisOrchestrator
from lovsentralen.services.memory_store import CaseStore, get_case_store


def get_store() -> CaseStore:
    return get_case_store()


def get_orchestrator(store: CaseStore = Depends(get_store)) -> CaseAnalysisOrchestrator:
    return CaseAnalysisOrchestrator(store)


async def get_current_user(x_user_id: str | None = Header(default=None)) -> str:
    """The authenticated user id, injected upstream by the auth proxy."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Ikke autorisert")
    return x_user_id.strip()


async def get_owned_case(case_id: str, user_id: str, store: CaseStore) -> dict[str, Any]:
    case = await store.get_case(case_id)
    if not case or str(case.get("user_id")) != user_id:
        raise HTTPException(status_code=404, detail="Sak ikke funnet")
    return case

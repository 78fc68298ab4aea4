from __future__ import annotations

import asyncio
from typing import Any

from supabase import Client, create_client

from lovsentralen.config import settings
from lovsentralen.errors import CaseBusyError, CaseNotFoundError
from lovsentralen.models.interfaces import CaseStatus
from lovsentralen.services.logger import log_db_operation

ACTIVE_SUBSCRIPTION_STATUSES = ("active", "trialing")


def get_client() -> Client:
    return create_client(settings.supabase_url, settings.supabase_anon_key)


_client: Client | None = None


def client() -> Client:
    global _client
    if _client is None:
        _client = get_client()
    return _client


async def _execute(query: Any) -> Any:
    """Run blocking Supabase query execution in a worker thread."""
    return await asyncio.to_thread(query.execute)


# --- Cases ---


async def create_case(user_id: str, faktum_text: str, category: str | None) -> dict[str, Any]:
    row = {
        "user_id": user_id,
        "faktum_text": faktum_text,
        "category": category,
        "status": "clarifying",
    }
    result = await _execute(client().table("cases").insert(row))
    log_db_operation("insert", "cases", "success", details=f"user={user_id}")
    return result.data[0]


async def get_case(case_id: str) -> dict[str, Any] | None:
    result = await _execute(client().table("cases").select("*").eq("id", case_id))
    return result.data[0] if result.data else None


async def list_cases(user_id: str) -> list[dict[str, Any]]:
    result = await _execute(
        client().table("cases").select("*").eq("user_id", user_id).order("created_at", desc=True)
    )
    return result.data or []


async def update_case_status(case_id: str, status: CaseStatus) -> dict[str, Any]:
    result = await _execute(client().table("cases").update({"status": status}).eq("id", case_id))
    if not result.data:
        raise CaseNotFoundError(case_id)
    log_db_operation("update", "cases", "success", details=f"{case_id} -> {status}")
    return result.data[0]


async def claim_case_for_analysis(case_id: str) -> dict[str, Any]:
    """Move the case to 'analyzing' unless a run already holds it."""
    result = await _execute(
        client()
        .table("cases")
        .update({"status": "analyzing"})
        .eq("id", case_id)
        .neq("status", "analyzing")
    )
    if result.data:
        return result.data[0]
    if await get_case(case_id) is None:
        raise CaseNotFoundError(case_id)
    raise CaseBusyError(case_id)


async def delete_case(case_id: str) -> None:
    for table in ("results", "evidence", "clarifications"):
        await _execute(client().table(table).delete().eq("case_id", case_id))
    await _execute(client().table("cases").delete().eq("id", case_id))
    log_db_operation("delete", "cases", "success", details=case_id)


# --- Clarifications ---


async def create_clarifications(case_id: str, questions: list[str]) -> list[dict[str, Any]]:
    if not questions:
        return []
    rows = [
        {"case_id": case_id, "question": question, "order_index": index}
        for index, question in enumerate(questions)
    ]
    result = await _execute(client().table("clarifications").insert(rows))
    return result.data or []


async def get_clarifications(case_id: str) -> list[dict[str, Any]]:
    result = await _execute(
        client().table("clarifications").select("*").eq("case_id", case_id).order("order_index")
    )
    return result.data or []


async def answer_clarifications(case_id: str, answers: dict[str, str]) -> list[dict[str, Any]]:
    for clarification_id, answer in answers.items():
        await _execute(
            client()
            .table("clarifications")
            .update({"user_answer": answer})
            .eq("id", clarification_id)
            .eq("case_id", case_id)
        )
    return await get_clarifications(case_id)


# --- Evidence ---


async def insert_evidence(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    if not rows:
        return []
    try:
        result = await _execute(client().table("evidence").insert(rows))
    except Exception as e:
        log_db_operation("insert", "evidence", "failed", error=str(e))
        raise
    log_db_operation("insert", "evidence", "success", details=f"{len(rows)} rows")
    return result.data or []


async def get_evidence(case_id: str) -> list[dict[str, Any]]:
    result = await _execute(
        client().table("evidence").select("*").eq("case_id", case_id).order("source_priority")
    )
    return result.data or []


async def delete_evidence(case_id: str) -> None:
    await _execute(client().table("evidence").delete().eq("case_id", case_id))


# --- Results ---


async def replace_result(case_id: str, row: dict[str, Any]) -> dict[str, Any]:
    """Write the run's result, replacing any result from an earlier run."""
    await _execute(client().table("results").delete().eq("case_id", case_id))
    result = await _execute(client().table("results").insert({**row, "case_id": case_id}))
    log_db_operation("insert", "results", "success", details=case_id)
    return result.data[0]


async def get_result(case_id: str) -> dict[str, Any] | None:
    result = await _execute(client().table("results").select("*").eq("case_id", case_id))
    return result.data[0] if result.data else None


# --- Subscriptions ---


async def has_active_subscription(user_id: str) -> bool:
    result = await _execute(
        client()
        .table("subscriptions")
        .select("id")
        .eq("user_id", user_id)
        .in_("status", list(ACTIVE_SUBSCRIPTION_STATUSES))
        .limit(1)
    )
    return bool(result.data)

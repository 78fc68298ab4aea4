from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from types import ModuleType
from typing import Any, Protocol

from lovsentralen.config import settings
from lovsentralen.errors import CaseBusyError, CaseNotFoundError
from lovsentralen.models.interfaces import CaseStatus


class CaseStore(Protocol):
    async def create_case(self, user_id: str, faktum_text: str, category: str | None) -> dict[str, Any]: ...
    async def get_case(self, case_id: str) -> dict[str, Any] | None: ...
    async def list_cases(self, user_id: str) -> list[dict[str, Any]]: ...
    async def update_case_status(self, case_id: str, status: CaseStatus) -> dict[str, Any]: ...
    async def claim_case_for_analysis(self, case_id: str) -> dict[str, Any]: ...
    async def delete_case(self, case_id: str) -> None: ...
    async def create_clarifications(self, case_id: str, questions: list[str]) -> list[dict[str, Any]]: ...
    async def get_clarifications(self, case_id: str) -> list[dict[str, Any]]: ...
    async def answer_clarifications(self, case_id: str, answers: dict[str, str]) -> list[dict[str, Any]]: ...
    async def insert_evidence(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]: ...
    async def get_evidence(self, case_id: str) -> list[dict[str, Any]]: ...
    async def delete_evidence(self, case_id: str) -> None: ...
    async def replace_result(self, case_id: str, row: dict[str, Any]) -> dict[str, Any]: ...
    async def get_result(self, case_id: str) -> dict[str, Any] | None: ...
    async def has_active_subscription(self, user_id: str) -> bool: ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryCaseStore:
    """Process-local case store with the same surface as the Supabase store."""

    def __init__(self, *, subscribed_users: set[str] | None = None, allow_all: bool = True):
        self.cases: dict[str, dict[str, Any]] = {}
        self.clarifications: dict[str, list[dict[str, Any]]] = {}
        self.evidence: dict[str, list[dict[str, Any]]] = {}
        self.results: dict[str, dict[str, Any]] = {}
        self.subscribed_users = set(subscribed_users or ())
        self.allow_all = allow_all
        self._lock = asyncio.Lock()

    def _require(self, case_id: str) -> dict[str, Any]:
        case = self.cases.get(case_id)
        if case is None:
            raise CaseNotFoundError(case_id)
        return case

    async def create_case(self, user_id: str, faktum_text: str, category: str | None) -> dict[str, Any]:
        case_id = str(uuid.uuid4())
        now = _now()
        self.cases[case_id] = {
            "id": case_id,
            "user_id": user_id,
            "faktum_text": faktum_text,
            "category": category,
            "status": "clarifying",
            "created_at": now,
            "updated_at": now,
        }
        return dict(self.cases[case_id])

    async def get_case(self, case_id: str) -> dict[str, Any] | None:
        case = self.cases.get(case_id)
        return dict(case) if case else None

    async def list_cases(self, user_id: str) -> list[dict[str, Any]]:
        owned = [dict(c) for c in self.cases.values() if c["user_id"] == user_id]
        return sorted(owned, key=lambda c: c["created_at"], reverse=True)

    async def update_case_status(self, case_id: str, status: CaseStatus) -> dict[str, Any]:
        case = self._require(case_id)
        case["status"] = status
        case["updated_at"] = _now()
        return dict(case)

    async def claim_case_for_analysis(self, case_id: str) -> dict[str, Any]:
        async with self._lock:
            case = self._require(case_id)
            if case["status"] == "analyzing":
                raise CaseBusyError(case_id)
            case["status"] = "analyzing"
            case["updated_at"] = _now()
            return dict(case)

    async def delete_case(self, case_id: str) -> None:
        self._require(case_id)
        for table in (self.clarifications, self.evidence, self.results):
            table.pop(case_id, None)
        del self.cases[case_id]

    async def create_clarifications(self, case_id: str, questions: list[str]) -> list[dict[str, Any]]:
        rows = [
            {
                "id": str(uuid.uuid4()),
                "case_id": case_id,
                "question": question,
                "user_answer": None,
                "order_index": index,
            }
            for index, question in enumerate(questions)
        ]
        self.clarifications.setdefault(case_id, []).extend(rows)
        return [dict(r) for r in rows]

    async def get_clarifications(self, case_id: str) -> list[dict[str, Any]]:
        rows = self.clarifications.get(case_id, [])
        return [dict(r) for r in sorted(rows, key=lambda r: r["order_index"])]

    async def answer_clarifications(self, case_id: str, answers: dict[str, str]) -> list[dict[str, Any]]:
        for row in self.clarifications.get(case_id, []):
            if row["id"] in answers:
                row["user_answer"] = answers[row["id"]]
        return await self.get_clarifications(case_id)

    async def insert_evidence(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        stored: list[dict[str, Any]] = []
        for row in rows:
            record = {"id": str(uuid.uuid4()), **row}
            self.evidence.setdefault(str(row["case_id"]), []).append(record)
            stored.append(dict(record))
        return stored

    async def get_evidence(self, case_id: str) -> list[dict[str, Any]]:
        rows = self.evidence.get(case_id, [])
        return [dict(r) for r in sorted(rows, key=lambda r: r.get("source_priority") or 4)]

    async def delete_evidence(self, case_id: str) -> None:
        self.evidence.pop(case_id, None)

    async def replace_result(self, case_id: str, row: dict[str, Any]) -> dict[str, Any]:
        self.results[case_id] = {"id": str(uuid.uuid4()), **row, "case_id": case_id, "created_at": _now()}
        return dict(self.results[case_id])

    async def get_result(self, case_id: str) -> dict[str, Any] | None:
        result = self.results.get(case_id)
        return dict(result) if result else None

    async def has_active_subscription(self, user_id: str) -> bool:
        return self.allow_all or user_id in self.subscribed_users


_store: CaseStore | ModuleType | None = None


def get_case_store() -> CaseStore | ModuleType:
    global _store
    if _store is None:
        backend = settings.case_store_backend.lower().strip()
        if backend == "memory":
            _store = InMemoryCaseStore()
        elif backend == "supabase":
            from lovsentralen.services import supabase

            _store = supabase
        else:
            raise ValueError(f"Unsupported CASE_STORE_BACKEND: {settings.case_store_backend}")
    return _store

from __future__ import annotations

from unittest.mock import patch

import pytest

from lovsentralen.errors import CaseBusyError, CaseNotFoundError
from lovsentralen.services import memory_store
from lovsentralen.services.memory_store import InMemoryCaseStore, get_case_store


@pytest.mark.asyncio
async def test_claim_is_exclusive():
    store = InMemoryCaseStore()
    case = await store.create_case("user-1", "faktum", None)

    claimed = await store.claim_case_for_analysis(case["id"])
    assert claimed["status"] == "analyzing"

    with pytest.raises(CaseBusyError):
        await store.claim_case_for_analysis(case["id"])

    await store.update_case_status(case["id"], "completed")
    assert (await store.claim_case_for_analysis(case["id"]))["status"] == "analyzing"


@pytest.mark.asyncio
async def test_unknown_case_raises():
    store = InMemoryCaseStore()
    with pytest.raises(CaseNotFoundError):
        await store.claim_case_for_analysis("missing")
    with pytest.raises(CaseNotFoundError):
        await store.update_case_status("missing", "error")


@pytest.mark.asyncio
async def test_clarifications_keep_order_and_accept_answers():
    store = InMemoryCaseStore()
    case = await store.create_case("user-1", "faktum", "husleie")
    rows = await store.create_clarifications(case["id"], ["Første?", "Andre?"])

    updated = await store.answer_clarifications(case["id"], {rows[1]["id"]: "Ja"})

    assert [r["question"] for r in updated] == ["Første?", "Andre?"]
    assert [r["user_answer"] for r in updated] == [None, "Ja"]


@pytest.mark.asyncio
async def test_delete_removes_dependent_rows():
    store = InMemoryCaseStore()
    case = await store.create_case("user-1", "faktum", None)
    await store.create_clarifications(case["id"], ["Spørsmål?"])
    await store.insert_evidence([{"case_id": case["id"], "url": "u", "source_priority": 1}])
    await store.replace_result(case["id"], {"case_id": case["id"], "qa_json": []})

    await store.delete_case(case["id"])

    assert await store.get_case(case["id"]) is None
    assert await store.get_evidence(case["id"]) == []
    assert await store.get_result(case["id"]) is None
    assert await store.get_clarifications(case["id"]) == []


@pytest.mark.asyncio
async def test_list_cases_is_scoped_to_user():
    store = InMemoryCaseStore()
    await store.create_case("user-1", "a", None)
    await store.create_case("user-2", "b", None)

    assert [c["faktum_text"] for c in await store.list_cases("user-1")] == ["a"]


@pytest.mark.asyncio
async def test_subscription_check():
    store = InMemoryCaseStore(subscribed_users={"paying"}, allow_all=False)
    assert await store.has_active_subscription("paying") is True
    assert await store.has_active_subscription("free") is False


def test_backend_selection(monkeypatch):
    monkeypatch.setattr(memory_store, "_store", None)
    with patch("lovsentralen.services.memory_store.settings") as mock_settings:
        mock_settings.case_store_backend = "memory"
        assert isinstance(get_case_store(), InMemoryCaseStore)

    monkeypatch.setattr(memory_store, "_store", None)
    with patch("lovsentralen.services.memory_store.settings") as mock_settings:
        mock_settings.case_store_backend = "redis"
        with pytest.raises(ValueError):
            get_case_store()

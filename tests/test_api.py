"""Tests for API routes."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import FakeReasoner
from fastapi.testclient import TestClient

from lovsentralen.agents.orchestrator import CaseAnalysisOrchestrator
from lovsentralen.api.deps import get_orchestrator, get_store
from lovsentralen.api.routes import cases
from lovsentralen.main import app
from lovsentralen.services.memory_store import InMemoryCaseStore

FACTS = (
    "Utleier holder tilbake hele depositumet etter at jeg flyttet ut, "
    "selv om leiligheten ble levert rengjort og uten skader."
)
USER = {"X-User-Id": "user-1"}


@pytest.fixture
def store():
    return InMemoryCaseStore()


@pytest.fixture
def client(store):
    reasoner = FakeReasoner({"clarification": [{}, {"questions": ["Har du skriftlig leiekontrakt?"]}, {}]})
    orchestrator = CaseAnalysisOrchestrator(
        store,
        reasoner=reasoner,
        fetcher=MagicMock(),
        search_many=AsyncMock(return_value=[]),
        search_one=AsyncMock(return_value=[]),
    )
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create(client) -> dict:
    response = client.post("/api/cases", json={"faktum_text": FACTS, "category": "husleie"}, headers=USER)
    assert response.status_code == 200
    return response.json()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "lovsentralen"}


def test_requests_without_user_are_rejected(client):
    assert client.get("/api/cases").status_code == 401


def test_create_case_returns_questions_count(client):
    data = _create(client)

    assert data["case"]["status"] == "clarifying"
    assert data["case"]["category"] == "husleie"
    assert data["clarifications_count"] == 1
    assert data["escalation_message"] is None


def test_create_case_rejects_short_facts(client):
    response = client.post("/api/cases", json={"faktum_text": "For kort."}, headers=USER)
    assert response.status_code == 422


def test_create_case_requires_subscription(client, store):
    store.allow_all = False
    response = client.post("/api/cases", json={"faktum_text": FACTS}, headers=USER)
    assert response.status_code == 402


def test_cases_are_private(client):
    case_id = _create(client)["case"]["id"]

    assert client.get(f"/api/cases/{case_id}", headers={"X-User-Id": "someone-else"}).status_code == 404
    assert client.get("/api/cases", headers={"X-User-Id": "someone-else"}).json() == []


def test_case_detail_and_answers(client):
    case_id = _create(client)["case"]["id"]
    detail = client.get(f"/api/cases/{case_id}", headers=USER).json()
    question = detail["clarifications"][0]

    response = client.put(
        f"/api/cases/{case_id}/clarifications",
        json={"answers": {question["id"]: " Ja, signert i 2021 "}},
        headers=USER,
    )

    assert response.status_code == 200
    assert response.json()["clarifications"][0]["user_answer"] == "Ja, signert i 2021"


def test_delete_case_refused_while_analyzing(client, store):
    case_id = _create(client)["case"]["id"]
    store.cases[case_id]["status"] = "analyzing"

    assert client.delete(f"/api/cases/{case_id}", headers=USER).status_code == 409

    store.cases[case_id]["status"] = "completed"
    assert client.delete(f"/api/cases/{case_id}", headers=USER).json() == {"deleted": True, "id": case_id}
    assert client.get(f"/api/cases/{case_id}", headers=USER).status_code == 404


def test_stream_refused_while_analysis_running(client, store):
    case_id = _create(client)["case"]["id"]
    store.cases[case_id]["status"] = "analyzing"

    assert client.get(f"/api/cases/{case_id}/analyze/stream", headers=USER).status_code == 409


def test_export_returns_text_attachment(client):
    case_id = _create(client)["case"]["id"]

    response = client.get(f"/api/cases/{case_id}/export", headers=USER)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert f'filename="lovsentralen-rapport-{case_id[:8]}.txt"' in response.headers["content-disposition"]
    assert "LOVSENTRALEN - JURIDISK RAPPORT" in response.text
    assert FACTS in response.text


@pytest.mark.asyncio
async def test_disconnected_stream_releases_the_case(store):
    case = await store.create_case("user-1", FACTS, None)
    orchestrator = CaseAnalysisOrchestrator(
        store,
        reasoner=FakeReasoner(),
        fetcher=MagicMock(),
        search_many=AsyncMock(return_value=[]),
        search_one=AsyncMock(return_value=[]),
    )

    response = await cases.stream_analysis(case["id"], "user-1", store, orchestrator)
    stream = response.body_iterator
    first = await stream.__anext__()

    assert first["event"] == "analysis_started"
    assert store.cases[case["id"]]["status"] == "analyzing"

    await stream.aclose()

    assert store.cases[case["id"]]["status"] == "error"

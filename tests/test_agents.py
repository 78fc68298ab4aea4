from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from conftest import FakeReasoner

from lovsentralen.agents.analyzer_agent import UNCONFIRMED_NOTE, AnalyzerAgent
from lovsentralen.agents.clarification_agent import ClarificationAgent
from lovsentralen.agents.issue_agent import IssueAgent
from lovsentralen.agents.sensitivity_agent import (
    ESCALATION_MESSAGE,
    SensitivityAgent,
    escalation_message_for,
)
from lovsentralen.errors import AnalysisSynthesisError
from lovsentralen.models.interfaces import ClarificationPair, Evidence, SearchResult

FACTS = (
    "Jeg kjøpte en mobiltelefon hos en nettbutikk for fire måneder siden. "
    "Skjermen sluttet å virke, og butikken nekter å reparere den."
)


def _evidence(url: str = "https://lovdata.no/lov/2002-06-21-34") -> Evidence:
    return Evidence(
        case_id="case-1",
        source_name="Forbrukerkjøpsloven",
        url=url,
        title="Forbrukerkjøpsloven",
        excerpt="Forbrukeren kan påberope seg en mangel ...",
        section_hint="§ 27",
        source_priority=1,
    )


# --- Issue extraction ---


@pytest.mark.asyncio
async def test_issue_agent_cleans_dedupes_and_caps():
    reasoner = FakeReasoner(
        {
            "issue_extractor": {
                "issues": [
                    {"issue": "Reklamasjon  på mangel", "domain": "forbrukerkjøp"},
                    {"issue": "reklamasjon på mangel", "domain": "forbrukerkjøp"},
                    {"issue": "", "domain": "x"},
                    "ikke et objekt",
                    {"issue": "Krav om retting", "domain": None},
                ]
                + [{"issue": f"Sak {i}", "domain": "kontrakt"} for i in range(10)]
            }
        }
    )
    agent = IssueAgent(reasoner)

    with patch("lovsentralen.agents.issue_agent.settings") as mock_settings:
        mock_settings.max_legal_issues = 3
        issues = await agent.extract(FACTS, [], category="forbrukerkjop")

    assert [i.issue for i in issues] == ["Reklamasjon på mangel", "Krav om retting", "Sak 0"]
    assert issues[1].domain == "forbrukerkjop"


@pytest.mark.asyncio
async def test_issue_agent_falls_back_to_facts_when_nothing_usable():
    agent = IssueAgent(FakeReasoner())
    issues = await agent.extract(FACTS, [ClarificationPair("Når kjøpte du?", "I mars")])

    assert len(issues) == 1
    assert issues[0].issue == FACTS[:300]
    assert issues[0].domain == "generelt"


@pytest.mark.asyncio
async def test_issue_prompt_includes_answered_clarifications():
    reasoner = FakeReasoner()
    await IssueAgent(reasoner).extract(FACTS, [ClarificationPair("Når kjøpte du varen?", "I mars")])

    prompt = reasoner.calls_for("issue_extractor")[0]
    assert "Spørsmål: Når kjøpte du varen?\nSvar: I mars" in prompt


# --- Clarifying questions ---


@pytest.mark.asyncio
async def test_clarification_filter_drops_only_answered_questions():
    questions = ["Når kjøpte du telefonen?", "Har du kvittering?", "Har du klaget skriftlig?"]
    reasoner = FakeReasoner(
        {
            "clarification": {
                "verdicts": [
                    {"index": 1, "verdict": "answered"},
                    {"index": 2, "verdict": "unclear"},
                    {"index": 3, "verdict": "answered"},
                    {"index": 3, "verdict": "not_answered"},
                ]
            }
        }
    )

    kept = await ClarificationAgent(reasoner).filter_answered_questions(FACTS, questions)

    assert kept == ["Har du kvittering?", "Har du klaget skriftlig?"]


@pytest.mark.asyncio
async def test_clarification_filter_keeps_everything_on_garbage():
    questions = ["Når kjøpte du telefonen?", "Har du kvittering?"]
    reasoner = FakeReasoner({"clarification": {"verdicts": "nei"}})

    assert await ClarificationAgent(reasoner).filter_answered_questions(FACTS, questions) == questions


@pytest.mark.asyncio
async def test_generate_caps_questions_and_uses_context():
    reasoner = FakeReasoner(
        {
            "clarification": [
                {"questions": ["Når kjøpte du telefonen?", "Har du kvittering?", "Hva sa butikken?", "Var den ny?"]},
                {"verdicts": []},
            ]
        }
    )

    with patch("lovsentralen.agents.clarification_agent.settings") as mock_settings:
        mock_settings.max_clarifying_questions = 3
        questions = await ClarificationAgent(reasoner).generate(FACTS, "forbrukerkjop", "- Lovdata: reklamasjon")

    assert questions == ["Når kjøpte du telefonen?", "Har du kvittering?", "Hva sa butikken?"]
    prompt = reasoner.calls_for("clarification")[0]
    assert "- Lovdata: reklamasjon" in prompt
    assert "Forbrukerkjøp" in prompt


@pytest.mark.asyncio
async def test_preliminary_context_uses_detected_domain():
    reasoner = FakeReasoner({"clarification": {"domain": "Forbrukerkjøp", "search_terms": ["reklamasjon"]}})
    results = [
        SearchResult(title="Forbrukerkjøpsloven", url="https://lovdata.no/a", snippet="Reklamasjonsfrist", display_link="lovdata.no"),
        SearchResult(title="Tom", url="https://lovdata.no/b", snippet="", display_link="lovdata.no"),
    ]

    search = AsyncMock(return_value=results)
    context = await ClarificationAgent(reasoner, search=search).build_preliminary_context(FACTS, None)

    assert context == "- Forbrukerkjøpsloven: Reklamasjonsfrist"
    assert search.await_args.args[0] == "Forbrukerkjøp reklamasjon lovdata"


@pytest.mark.asyncio
async def test_preliminary_context_is_empty_when_search_fails():
    agent = ClarificationAgent(FakeReasoner(), search=AsyncMock(side_effect=RuntimeError("no key")))
    assert await agent.build_preliminary_context(FACTS, None) == ""


# --- Sensitivity ---


@pytest.mark.asyncio
async def test_sensitivity_accepts_camel_case_and_escalates():
    reasoner = FakeReasoner(
        {"sensitivity": {"isSensitive": False, "topics": [], "escalationNeeded": True, "reason": "Straff"}}
    )

    report = await SensitivityAgent(reasoner).detect("Naboen truer meg.")

    assert report.escalation_needed is True
    assert report.is_sensitive is True
    assert escalation_message_for(report) == ESCALATION_MESSAGE


@pytest.mark.asyncio
async def test_sensitivity_keyword_hits_mark_case_sensitive():
    report = await SensitivityAgent(FakeReasoner()).detect("Jeg fikk oppsigelse etter mobbing på jobben.")

    assert report.is_sensitive is True
    assert report.escalation_needed is False
    assert {"oppsigelse", "mobbing"} <= set(report.topics)
    assert escalation_message_for(report) is None


@pytest.mark.asyncio
async def test_sensitivity_requires_real_booleans():
    reasoner = FakeReasoner({"sensitivity": {"is_sensitive": "true", "escalation_needed": "yes"}})

    report = await SensitivityAgent(reasoner).detect("En vanlig sak om en sofa.")

    assert report.is_sensitive is False
    assert report.escalation_needed is False


# --- Synthesis ---


@pytest.mark.asyncio
async def test_analyzer_grounds_citations_and_validates_items():
    evidence = [_evidence()]
    reasoner = FakeReasoner(
        {
            "analyzer": {
                "qa_items": [
                    {
                        "id": "qa1",
                        "question": "Kan jeg reklamere?",
                        "answer": "Ja, innen rimelig tid.",
                        "confidence": "high",
                        "citations": [
                            {"source_name": "Forbrukerkjøpsloven", "section": "§ 27", "url": evidence[0].url},
                            {"source_name": "Oppdiktet", "url": "https://example.com/oppdiktet"},
                        ],
                    },
                    {
                        "id": "qa1",
                        "question": "Kan jeg heve kjøpet?",
                        "answer": "Kanskje.",
                        "citations": [{"source_name": "Blogg", "url": "https://blogg.no"}],
                    },
                    {"question": "Uten svar", "answer": ""},
                ],
                "checklist": [{"text": "Send skriftlig reklamasjon", "priority": "høy", "completed": True}] * 12,
                "documentation": [{"text": "Kvittering", "reason": "Bevis for kjøpet"}],
                "sources": [
                    {"name": "Forbrukerkjøpsloven", "url": "https://lovdata.no/lov/2002-06-21-34", "priority": 3},
                    {"name": "", "url": "https://example.com"},
                ],
            }
        }
    )

    result = await AnalyzerAgent(reasoner).synthesize(FACTS, [], evidence)

    first, second = result.qa_items
    assert [c.url for c in first.citations] == [evidence[0].url]
    assert first.confidence == "høy"
    assert second.id != first.id
    assert second.citations == []
    assert second.confidence == "lav"
    assert second.missing_facts == [UNCONFIRMED_NOTE]
    assert len(result.checklist) == 8
    assert all(not c.completed for c in result.checklist)
    assert len({c.id for c in result.checklist}) == 8
    assert [s.priority for s in result.sources] == [1]


@pytest.mark.asyncio
async def test_analyzer_raises_without_usable_qa_items():
    reasoner = FakeReasoner({"analyzer": {"qa_items": [{"question": "Bare spørsmål"}]}})

    with pytest.raises(AnalysisSynthesisError):
        await AnalyzerAgent(reasoner).synthesize(FACTS, [], [_evidence()])


@pytest.mark.asyncio
async def test_analyzer_tolerates_null_fields():
    evidence = [_evidence()]
    reasoner = FakeReasoner(
        {
            "analyzer": {
                "qa_items": [
                    {
                        "id": None,
                        "question": "Kan jeg reklamere?",
                        "answer": "Ja.",
                        "show_assumptions": None,
                        "citations": [{"source_name": None, "section": None, "url": evidence[0].url}],
                    }
                ],
                "checklist": [{"text": None, "priority": None, "completed": None}],
                "documentation": [{"text": "Kvittering", "reason": None}],
                "sources": [{"name": "Forbrukerkjøpsloven", "url": None, "description": None}],
            }
        }
    )

    result = await AnalyzerAgent(reasoner).synthesize(FACTS, [], evidence)

    item = result.qa_items[0]
    assert item.id == "qa1"
    assert item.citations[0].source_name == ""
    assert item.citations[0].url == evidence[0].url
    assert item.confidence == "middels"
    assert result.checklist[0].completed is False
    assert result.documentation[0].reason == ""
    assert result.sources[0].url == ""
    assert result.sources[0].priority == 4

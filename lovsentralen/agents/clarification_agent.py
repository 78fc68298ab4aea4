from __future__ import annotations

from typing import Any

from loguru import logger

from lovsentralen.agents.base import BaseAgent
from lovsentralen.config import settings
from lovsentralen.llm_client import StructuredReasoner
from lovsentralen.models.schemas import CATEGORY_LABELS
from lovsentralen.services import search_executor
from lovsentralen.services.prompt_store import render_prompt

UNSPECIFIED_CATEGORY = "Ikke spesifisert"
DEFAULT_DOMAIN = "Generelt"
VERDICTS = ("answered", "not_answered", "unclear")


def _category_label(category: str | None) -> str:
    if not category:
        return UNSPECIFIED_CATEGORY
    return CATEGORY_LABELS.get(category, category)


class ClarificationAgent(BaseAgent):
    """Generate the short fact-seeking questions asked before analysis."""

    name = "clarification"

    def __init__(self, reasoner: StructuredReasoner | None = None, *, search=None):
        super().__init__(reasoner)
        self._search = search or search_executor.search_one

    async def detect_legal_domain(self, facts: str, category: str | None) -> dict[str, Any]:
        payload = await self._reason(
            render_prompt(
                "domain_agent.user_prompt",
                facts=facts,
                category=_category_label(category),
            ),
            default={"domain": DEFAULT_DOMAIN, "search_terms": []},
        )
        domain = payload.get("domain")
        terms = payload.get("search_terms", payload.get("searchTerms"))
        return {
            "domain": " ".join(domain.split()) if isinstance(domain, str) and domain.strip() else DEFAULT_DOMAIN,
            "search_terms": self._normalize_text_list(terms, max_items=4, min_len=2),
        }

    async def build_preliminary_context(self, facts: str, category: str | None) -> str:
        """One quick search on the detected domain; returns concatenated snippets or ""."""
        try:
            detected = await self.detect_legal_domain(facts, category)
            query = " ".join([detected["domain"], *detected["search_terms"], "lovdata"])
            results = await self._search(query, limit=settings.preliminary_context_results)
        except Exception as e:
            logger.warning(f"Preliminary legal context unavailable: {e}")
            return ""

        lines = [
            f"- {result.title}: {result.snippet}"
            for result in results[: settings.preliminary_context_results]
            if result.snippet
        ]
        return "\n".join(lines)

    async def generate(
        self,
        facts: str,
        category: str | None,
        legal_context: str = "",
    ) -> list[str]:
        if legal_context:
            context_section = render_prompt(
                "clarification_agent.context_section", legal_context=legal_context
            )
            focus_section = render_prompt("clarification_agent.focus_with_context")
        else:
            context_section = ""
            focus_section = render_prompt("clarification_agent.focus_default")

        payload = await self._reason(
            render_prompt(
                "clarification_agent.user_prompt",
                facts=facts,
                category=_category_label(category),
                context_section=context_section,
                focus_section=focus_section,
                max_questions=settings.max_clarifying_questions,
            ),
            default={"questions": []},
            temperature=0.5,
        )
        questions = self._normalize_text_list(
            payload.get("questions"),
            max_items=settings.max_clarifying_questions,
            min_len=5,
        )
        if not questions:
            return []
        return await self.filter_answered_questions(facts, questions)

    async def filter_answered_questions(self, facts: str, questions: list[str]) -> list[str]:
        """Drop questions the facts already answer; anything uncertain is kept."""
        if not questions:
            return []
        numbered = "\n".join(f"{i}. {q}" for i, q in enumerate(questions, start=1))
        payload = await self._reason(
            render_prompt("clarification_agent.filter_prompt", facts=facts, questions=numbered),
            default={"verdicts": []},
            temperature=0.0,
        )

        verdicts: dict[int, str] = {}
        raw = payload.get("verdicts")
        for entry in raw if isinstance(raw, list) else []:
            if not isinstance(entry, dict):
                continue
            try:
                index = int(entry.get("index"))
            except (TypeError, ValueError):
                continue
            verdict = str(entry.get("verdict") or "").strip().lower()
            if verdict not in VERDICTS:
                continue
            # Conflicting verdicts for one question resolve towards keeping it.
            previous = verdicts.get(index)
            if previous is not None and previous != "answered":
                continue
            verdicts[index] = verdict

        kept = [q for i, q in enumerate(questions, start=1) if verdicts.get(i) != "answered"]
        if len(kept) < len(questions):
            logger.info(f"Dropped {len(questions) - len(kept)} clarifying question(s) already answered by the facts")
        return kept

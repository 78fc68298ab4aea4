from __future__ import annotations

from loguru import logger

from lovsentralen.agents.base import BaseAgent, format_clarifications
from lovsentralen.config import settings
from lovsentralen.models.interfaces import ClarificationPair, LegalIssue
from lovsentralen.services.prompt_store import render_prompt

FALLBACK_DOMAIN = "generelt"
FALLBACK_ISSUE_CHARS = 300


class IssueAgent(BaseAgent):
    """Identify the legal issues raised by the facts and clarification answers."""

    name = "issue_extractor"

    async def extract(
        self,
        facts: str,
        clarifications: list[ClarificationPair],
        *,
        category: str | None = None,
    ) -> list[LegalIssue]:
        prompt = render_prompt(
            "issue_agent.user_prompt",
            facts=facts,
            clarifications=format_clarifications(clarifications),
        )
        payload = await self._reason(prompt, default={"issues": []})

        raw = payload.get("issues", [])
        issues: list[LegalIssue] = []
        seen: set[str] = set()
        for entry in raw if isinstance(raw, list) else []:
            if not isinstance(entry, dict):
                continue
            issue = entry.get("issue")
            domain = entry.get("domain")
            if not isinstance(issue, str) or not issue.strip():
                continue
            issue = " ".join(issue.split())
            if issue.lower() in seen:
                continue
            seen.add(issue.lower())
            domain_text = " ".join(domain.split()) if isinstance(domain, str) and domain.strip() else ""
            issues.append(LegalIssue(issue=issue, domain=domain_text or category or FALLBACK_DOMAIN))
            if len(issues) >= settings.max_legal_issues:
                break

        if not issues:
            logger.warning("Issue extraction returned nothing usable; falling back to the raw facts")
            issues.append(
                LegalIssue(
                    issue=" ".join(facts.split())[:FALLBACK_ISSUE_CHARS],
                    domain=category or FALLBACK_DOMAIN,
                )
            )
        return issues

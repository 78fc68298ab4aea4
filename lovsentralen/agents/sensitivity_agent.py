from __future__ import annotations

from lovsentralen.agents.base import BaseAgent
from lovsentralen.models.schemas import SensitivityReport
from lovsentralen.services.prompt_store import render_prompt

SENSITIVE_TOPICS = (
    "straffesak",
    "kriminell",
    "politi",
    "anmeldelse",
    "immigrasjon",
    "utlending",
    "oppholdstillatelse",
    "barnevern",
    "barn",
    "foreldreansvar",
    "samvær",
    "oppsigelse",
    "avskjed",
    "mobbing",
    "trakassering",
)

ESCALATION_MESSAGE = """\
**Viktig:** Basert på informasjonen du har oppgitt, ser dette ut til å være en alvorlig sak som kan kreve profesjonell juridisk bistand.

Vi anbefaler sterkt at du kontakter en advokat for personlig rådgivning. Du kan finne advokater via:
- [Advokatforeningen](https://advokatenhjelperdeg.no/)
- [Fri rettshjelp](https://www.domstol.no/fri-rettshjelp/)

Informasjonen under er kun ment som generell veiledning og erstatter ikke juridisk rådgivning."""


def keyword_topics(facts: str) -> list[str]:
    """Sensitive keywords that occur literally in the facts."""
    lowered = facts.lower()
    return [topic for topic in SENSITIVE_TOPICS if topic in lowered]


class SensitivityAgent(BaseAgent):
    """Screen facts for topics where the user should be referred to a lawyer."""

    name = "sensitivity"

    async def detect(self, facts: str) -> SensitivityReport:
        payload = await self._reason(
            render_prompt("sensitivity_agent.user_prompt", facts=facts),
            default={},
            temperature=0.2,
        )
        report = SensitivityReport.model_validate(
            {
                "is_sensitive": payload.get("is_sensitive", payload.get("isSensitive")) is True,
                "topics": payload.get("topics", []),
                "escalation_needed": payload.get("escalation_needed", payload.get("escalationNeeded")) is True,
                "reason": str(payload.get("reason") or ""),
            }
        )

        matched = [topic for topic in keyword_topics(facts) if topic not in report.topics]
        if matched:
            report.topics.extend(matched)
            report.is_sensitive = True
        if report.escalation_needed:
            report.is_sensitive = True
        return report


def escalation_message_for(report: SensitivityReport) -> str | None:
    return ESCALATION_MESSAGE if report.escalation_needed else None

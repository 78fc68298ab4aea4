"""Plain-text export of a finished case analysis."""
from __future__ import annotations

from datetime import date
from typing import Any

from lovsentralen.models.interfaces import Evidence
from lovsentralen.models.schemas import ChecklistItem, DocumentationItem, QAItem

WIDTH = 80
HEAVY_RULE = "═" * WIDTH
LIGHT_RULE = "─" * WIDTH

MONTHS_NB = (
    "januar", "februar", "mars", "april", "mai", "juni",
    "juli", "august", "september", "oktober", "november", "desember",
)

DISCLAIMER = (
    "VIKTIG: Dette dokumentet inneholder generell juridisk informasjon, IKKE\n"
    "juridisk rådgivning. For konkrete saker bør du alltid konsultere en advokat.\n"
    "Lovsentralen tar ikke ansvar for beslutninger tatt basert på denne rapporten."
)


def report_filename(case_id: str) -> str:
    return f"lovsentralen-rapport-{case_id[:8]}.txt"


def _format_date(day: date) -> str:
    return f"{day.day}. {MONTHS_NB[day.month - 1]} {day.year}"


def _section(title: str) -> list[str]:
    return ["", LIGHT_RULE, title.center(WIDTH).rstrip(), LIGHT_RULE, ""]


def _qa_block(index: int, item: QAItem) -> list[str]:
    lines = [f"{index}. {item.question}", "", f"   Svar: {item.answer}", "", f"   Konfidensgrad: {item.confidence}"]
    if item.citations:
        lines += ["", "   Kilder:"]
        for citation in item.citations:
            label = citation.source_name
            if citation.section:
                label = f"{label} {citation.section}"
            lines += [f"   • {label}", f"     {citation.url}"]
    lines.append("")
    return lines


def render_text_report(
    case: dict[str, Any],
    result: dict[str, Any] | None,
    evidence: list[Evidence],
    *,
    today: date | None = None,
) -> str:
    today = today or date.today()
    lines = [
        HEAVY_RULE,
        "LOVSENTRALEN - JURIDISK RAPPORT".center(WIDTH).rstrip(),
        HEAVY_RULE,
        "",
        f"Dato: {_format_date(today)}",
        f"Sak-ID: {case['id']}",
    ]
    lines += _section("ANSVARSFRASKRIVELSE")
    lines += DISCLAIMER.splitlines()
    lines += _section("DIN SITUASJON")
    lines.append(str(case.get("faktum_text") or ""))

    if result:
        lines += _section("SPØRSMÅL OG SVAR")
        for index, raw in enumerate(result.get("qa_json") or [], start=1):
            lines += _qa_block(index, QAItem.model_validate(raw))

        lines += _section("HVA DU BØR GJØRE NÅ")
        for raw in result.get("checklist_json") or []:
            item = ChecklistItem.model_validate(raw)
            mark = "☑" if item.completed else "☐"
            lines.append(f"{mark} {item.text} ({item.priority} prioritet)")

        lines += _section("DOKUMENTASJON Å SAMLE")
        for raw in result.get("documentation_json") or []:
            doc = DocumentationItem.model_validate(raw)
            lines += [f"• {doc.text}", f"  Hvorfor: {doc.reason}", ""]

    if evidence:
        lines += _section("KILDER BRUKT")
        for item in evidence:
            lines += [f"• {item.title}", f"  {item.url}", ""]

    lines += ["", HEAVY_RULE, f"© Lovsentralen {today.year}".center(WIDTH).rstrip(), HEAVY_RULE, ""]
    return "\n".join(lines)

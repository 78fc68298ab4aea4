from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from lovsentralen.agents.base import BaseAgent
from lovsentralen.config import settings
from lovsentralen.models.schemas import Citation, QAItem
from lovsentralen.services.prompt_store import render_prompt

REASONING_PARTS = (
    ("regel", "Regel"),
    ("tolkning", "Tolkning"),
    ("anvendelse", "Anvendelse"),
    ("konklusjon", "Konklusjon"),
)


def format_citations(citations: list[Citation]) -> str:
    if not citations:
        return "Ingen kilder."
    lines = []
    for citation in citations:
        label = citation.source_name or citation.url
        if citation.section:
            label = f"{label} {citation.section}"
        lines.append(f"- {label} ({citation.url})")
    return "\n".join(lines)


def apply_order(items: list[QAItem], order: Any) -> list[QAItem]:
    """Reorder by an id list. Unknown and repeated ids are ignored; unplaced items keep their relative order at the end."""
    positions: dict[str, list[int]] = {}
    for index, item in enumerate(items):
        positions.setdefault(item.id, []).append(index)

    placed: list[int] = []
    used: set[str] = set()
    for raw_id in order if isinstance(order, list) else []:
        item_id = str(raw_id).strip()
        if item_id in used or item_id not in positions:
            continue
        used.add(item_id)
        placed.extend(positions[item_id])
    placed.extend(i for i, item in enumerate(items) if item.id not in used)
    return [items[i] for i in placed]


class RefinementAgent(BaseAgent):
    """Per-item legal reasoning, canonical ordering and assumption visibility."""

    name = "refinement"

    async def attach_reasoning(self, items: list[QAItem], facts: str) -> list[QAItem]:
        semaphore = asyncio.Semaphore(max(settings.quality_max_parallel, 1))

        async def run_item(item: QAItem) -> QAItem:
            async with semaphore:
                return await self.reason_item(item, facts)

        return list(await asyncio.gather(*(run_item(item) for item in items)))

    async def reason_item(self, item: QAItem, facts: str) -> QAItem:
        payload = await self._reason(
            render_prompt(
                "refinement_agent.reasoning_prompt",
                facts=facts,
                question=item.question,
                answer=item.answer,
                citations=format_citations(item.citations),
            ),
            default={},
            temperature=0.2,
        )
        parts = [
            f"{label}: {' '.join(payload[key].split())}"
            for key, label in REASONING_PARTS
            if isinstance(payload.get(key), str) and payload[key].strip()
        ]
        if not parts:
            return item
        return item.model_copy(update={"legal_reasoning": "\n".join(parts)})

    async def order_items(self, items: list[QAItem]) -> list[QAItem]:
        """Order the full list lovvalg → frister → vilkår → rettsfølger in one call."""
        if len(items) < 2:
            return list(items)
        listing = "\n".join(f"{item.id}: {item.question}" for item in items)
        payload = await self._reason(
            render_prompt("refinement_agent.ordering_prompt", items=listing),
            default={"order": []},
            temperature=0.0,
        )
        ordered = apply_order(items, payload.get("order"))
        if [i.id for i in ordered] != [i.id for i in items]:
            logger.debug(f"Reordered Q&A items: {[i.id for i in ordered]}")
        return ordered

    async def evaluate_assumptions(self, items: list[QAItem], facts: str) -> list[QAItem]:
        semaphore = asyncio.Semaphore(max(settings.quality_max_parallel, 1))

        async def run_item(item: QAItem) -> QAItem:
            if not item.assumptions:
                return item.model_copy(update={"show_assumptions": False})
            async with semaphore:
                payload = await self._reason(
                    render_prompt(
                        "refinement_agent.assumptions_prompt",
                        facts=facts,
                        question=item.question,
                        answer=item.answer,
                        assumptions="\n".join(f"- {a}" for a in item.assumptions),
                    ),
                    default={"show_assumptions": False},
                    temperature=0.0,
                )
            return item.model_copy(update={"show_assumptions": payload.get("show_assumptions") is True})

        return list(await asyncio.gather(*(run_item(item) for item in items)))

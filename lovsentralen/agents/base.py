from __future__ import annotations

from typing import Any

from lovsentralen.llm_client import StructuredReasoner


class BaseAgent:
    """Base for agents that delegate judgement to the structured reasoning service.

    Subclasses set `name` (used as the caller in LLM call logs) and build their
    prompts from the prompt store. Every call goes through `_reason`, which
    returns the supplied default instead of raising.
    """

    name: str = "base"

    def __init__(self, reasoner: StructuredReasoner | None = None):
        self.reasoner = reasoner or StructuredReasoner()

    async def _reason(
        self,
        user_prompt: str,
        *,
        default: dict[str, Any],
        temperature: float = 0.3,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        return await self.reasoner.reason(
            self.name,
            user_prompt,
            default=default,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    @staticmethod
    def _normalize_text_list(raw_values: Any, *, max_items: int, min_len: int = 1) -> list[str]:
        if not isinstance(raw_values, list):
            return []
        cleaned: list[str] = []
        seen: set[str] = set()
        for item in raw_values:
            if not isinstance(item, str):
                continue
            value = " ".join(item.split()).strip()
            if len(value) < min_len:
                continue
            key = value.lower()
            if key in seen:
                continue
            seen.add(key)
            cleaned.append(value)
            if len(cleaned) >= max_items:
                break
        return cleaned


def format_clarifications(pairs: list[Any]) -> str:
    """Render answered clarifications as Spørsmål/Svar blocks for prompts."""
    blocks = [f"Spørsmål: {pair.question}\nSvar: {pair.answer}" for pair in pairs if pair.answer]
    return "\n\n".join(blocks) or "Ingen klargjøringer gitt."

"""OpenRouter reasoning client: JSON-object chat completions with safe defaults."""
from __future__ import annotations

import copy
import json
import time
from typing import Any

from openai import AsyncOpenAI

from lovsentralen.config import settings
from lovsentralen.services import logger as log_service
from lovsentralen.services.prompt_store import system_prompt


def get_client() -> AsyncOpenAI:
    """Get an OpenRouter client via the OpenAI-compatible SDK."""
    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    return AsyncOpenAI(api_key=settings.openrouter_api_key, base_url=base_url)


def get_model() -> str:
    """Get the active OpenRouter model id."""
    if settings.openrouter_model:
        return settings.openrouter_model
    return settings.default_model


_client: AsyncOpenAI | None = None


def client() -> AsyncOpenAI:
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client


def _temperature_for_model(model: str, requested: float) -> float:
    # Some GPT-5-compatible gateways reject anything but the default temperature.
    if "gpt-5" in (model or "").lower():
        return 1
    return requested


def extract_json_object(raw_text: str) -> dict[str, Any]:
    text = raw_text.strip()
    if text.startswith("```"):
        parts = text.split("```")
        if len(parts) >= 2:
            text = parts[1]
        if text.startswith("json"):
            text = text[4:]
        text = text.strip()
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        raise json.JSONDecodeError("object not found", text, 0)
    parsed = json.loads(text[start : end + 1])
    if not isinstance(parsed, dict):
        raise json.JSONDecodeError("not an object", text, 0)
    return parsed


class StructuredReasoner:
    """Ask the reasoning service for a JSON object; fall back to a default on any failure."""

    def __init__(self, llm: AsyncOpenAI | None = None, model: str | None = None):
        self._llm = llm
        self.model = model or get_model()

    async def reason(
        self,
        caller: str,
        user: str,
        *,
        default: dict[str, Any],
        system: str | None = None,
        temperature: float = 0.3,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        active_client = self._llm or client()
        t0 = time.monotonic()
        try:
            response = await active_client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system or system_prompt()},
                    {"role": "user", "content": user},
                ],
                temperature=_temperature_for_model(self.model, temperature),
                max_tokens=max_tokens or settings.reasoning_max_tokens,
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content or ""
            parsed = extract_json_object(content)
        except Exception as e:
            log_service.log_llm_call(
                model=self.model,
                caller=caller,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="failed",
                error=str(e),
            )
            return copy.deepcopy(default)

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller=caller,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return parsed

from __future__ import annotations

import pytest

from lovsentralen.services.prompt_store import render_prompt, system_prompt


def test_render_prompt_substitutes_template_values():
    prompt = render_prompt(
        "issue_agent.user_prompt",
        facts="Jeg kjøpte en mobil som sluttet å virke.",
        clarifications="Ingen klargjøringer gitt.",
    )
    assert "Jeg kjøpte en mobil som sluttet å virke." in prompt
    assert "$facts" not in prompt


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")


def test_render_prompt_raises_for_missing_value():
    with pytest.raises(KeyError):
        render_prompt("sensitivity_agent.user_prompt")


def test_system_prompt_carries_disclaimer():
    assert "ikke juridisk rådgivning" in system_prompt()

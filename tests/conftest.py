from __future__ import annotations

import copy
from typing import Any, Callable

import pytest

from lovsentralen.models.interfaces import PageSection, ParsedPage


class FakeReasoner:
    """Stands in for StructuredReasoner; answers are scripted per caller."""

    def __init__(self, responses: dict[str, Any] | None = None):
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, str]] = []

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
        self.calls.append((caller, user))
        scripted = self.responses.get(caller)
        if scripted is None:
            return copy.deepcopy(default)
        if isinstance(scripted, list):
            if not scripted:
                return copy.deepcopy(default)
            scripted = scripted.pop(0)
        if isinstance(scripted, Exception):
            raise scripted
        if callable(scripted):
            return scripted(user)
        return copy.deepcopy(scripted)

    def calls_for(self, caller: str) -> list[str]:
        return [user for name, user in self.calls if name == caller]


@pytest.fixture
def fake_reasoner() -> Callable[..., FakeReasoner]:
    return FakeReasoner


def make_page(
    url: str = "https://lovdata.no/lov/2002-06-21-34",
    *,
    content: str = "",
    sections: list[PageSection] | None = None,
    priority: int = 1,
    repealed: bool = False,
    title: str = "Forbrukerkjøpsloven",
) -> ParsedPage:
    return ParsedPage(
        url=url,
        title=title,
        content=content,
        sections=sections or [],
        source_priority=priority,
        is_repealed=repealed,
        repealed_reason="Kilden er opphevet" if repealed else None,
    )

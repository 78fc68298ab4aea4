"""Deterministic search-query planning for one legal issue."""
from __future__ import annotations

DOMAIN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "forbrukerkjop": ("forbrukerkjøpsloven", "kjøpsloven", "reklamasjon"),
    "husleie": ("husleieloven", "leietaker", "utleier"),
    "arbeidsrett": ("arbeidsmiljøloven", "arbeidsforhold", "oppsigelse"),
    "personvern": ("personopplysningsloven", "GDPR", "datatilsynet"),
    "kontrakt": ("avtaleloven", "kontraktsbrudd", "avtale"),
    "erstatning": ("skadeserstatningsloven", "erstatningsansvar", "skade"),
}


def generate_search_queries(issue: str, domain: str) -> list[str]:
    queries = [
        f"{issue} {domain} norsk lov",
        f"{issue} lovdata §",
    ]
    keywords = DOMAIN_KEYWORDS.get(domain.lower())
    if keywords:
        queries.append(f"{issue} {keywords[0]}")
    return queries

"""Trust tiers for Norwegian legal sources."""
from __future__ import annotations

from urllib.parse import urlparse

from lovsentralen.models.interfaces import SourceClassification

# Statute database, government, parliament, courts
PRIORITY_1_DOMAINS = (
    "lovdata.no",
    "regjeringen.no",
    "stortinget.no",
    "domstol.no",
)

# Regulators and ombud agencies
PRIORITY_2_DOMAINS = (
    "forbrukertilsynet.no",
    "forbrukerradet.no",
    "arbeidstilsynet.no",
    "datatilsynet.no",
    "skatteetaten.no",
    "nav.no",
)

# Dispute-resolution boards and consumer advocacy
PRIORITY_3_DOMAINS = (
    "sivilombudet.no",
    "husleietvistutvalget.no",
    "finansklagenemnda.no",
    "forbruker.no",
)

BLACKLISTED_DOMAINS = (
    "reddit.com",
    "facebook.com",
    "twitter.com",
    "x.com",
    "quora.com",
    "medium.com",
)


def _hostname(url: str) -> str:
    """Return the hostname without a leading www., raising ValueError if absent."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"Not an absolute http(s) URL: {url!r}")
    host = parsed.hostname
    if host.startswith("www."):
        host = host[4:]
    return host


def _priority_for_host(host: str) -> int:
    if any(domain in host for domain in PRIORITY_1_DOMAINS):
        return 1
    if any(domain in host for domain in PRIORITY_2_DOMAINS):
        return 2
    if any(domain in host for domain in PRIORITY_3_DOMAINS):
        return 3
    return 4


def classify(url: str) -> SourceClassification:
    """Classify a URL into a trust tier; malformed URLs fail closed."""
    try:
        host = _hostname(url)
    except (ValueError, TypeError):
        return SourceClassification(priority=4, blacklisted=True)
    return SourceClassification(
        priority=_priority_for_host(host),
        blacklisted=any(domain in host for domain in BLACKLISTED_DOMAINS),
    )


def get_source_priority(url: str) -> int:
    return classify(url).priority


def is_blacklisted_domain(url: str) -> bool:
    return classify(url).blacklisted

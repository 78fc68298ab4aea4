"""Plain-language explanations for vague legal standards used in answers."""
from __future__ import annotations

import re

from lovsentralen.models.schemas import QAItem

VAGUE_TERMS: dict[str, str] = {
    "rimelig tid": (
        "«Rimelig tid» er ikke en fast frist. Den vurderes konkret ut fra blant annet "
        "hva slags ting eller tjeneste det gjelder og når mangelen burde vært oppdaget."
    ),
    "uten ugrunnet opphold": (
        "«Uten ugrunnet opphold» betyr så raskt som det med rimelighet kan forventes, "
        "typisk i løpet av noen dager, ikke uker."
    ),
    "vesentlig mangel": (
        "En «vesentlig mangel» er en feil som er så alvorlig at det ikke er rimelig å "
        "kreve at du beholder tingen. Terskelen er høyere enn for en vanlig mangel."
    ),
    "vesentlig kontraktsbrudd": (
        "«Vesentlig kontraktsbrudd» betyr at avtalebruddet er så alvorlig at du i "
        "praksis mister det du hadde grunn til å forvente etter avtalen."
    ),
    "saklig grunn": (
        "«Saklig grunn» betyr at arbeidsgiver må ha en god og forsvarlig begrunnelse "
        "knyttet til virksomheten eller arbeidstakerens forhold."
    ),
    "urimelig": (
        "Om noe er «urimelig» avgjøres ut fra en helhetsvurdering av partenes "
        "forhold, avtalen og omstendighetene ellers."
    ),
    "uforholdsmessig": (
        "«Uforholdsmessig» betyr at kostnaden eller ulempen står i klart misforhold "
        "til fordelen for den andre parten."
    ),
    "alminnelig slit og elde": (
        "«Alminnelig slit og elde» er den normale forringelsen som følger av vanlig "
        "bruk over tid, og som leietaker ikke er ansvarlig for."
    ),
    "berettiget interesse": (
        "«Berettiget interesse» betyr at behovet for behandlingen må være reelt og "
        "veie tyngre enn personvernet til den det gjelder."
    ),
}

_EXPLANATION_HEADER = "Forklaring av begreper:"


def find_vague_terms(text: str) -> list[str]:
    lowered = text.lower()
    return [term for term in VAGUE_TERMS if re.search(rf"\b{re.escape(term)}\b", lowered)]


def clarify_vague_terms(item: QAItem) -> QAItem:
    """Append each matched term's explanation once; the rest of the answer is untouched."""
    additions = [
        VAGUE_TERMS[term]
        for term in find_vague_terms(item.answer)
        if VAGUE_TERMS[term] not in item.answer
    ]
    if not additions:
        return item
    header = "" if _EXPLANATION_HEADER in item.answer else f"\n\n{_EXPLANATION_HEADER}"
    bullets = "\n".join(f"- {text}" for text in additions)
    return item.model_copy(update={"answer": f"{item.answer}{header}\n{bullets}"})

"""
Detect legal citations in a generated answer and link them to Légifrance.

Recognised forms:
    Articles      "Article 1128", "art. 1240 et 1241", "Art. 12 du Code pénal"
    Case law      "Cass. Civ. 1, 15 oct. 2024, n° 23-19876"
                  "Cour de cassation, 13/02/1930"
                  "CA Paris, 5 mars 2024"
"""

import re
from dataclasses import dataclass
from typing import List, Literal, Optional

from api.tools.legifrance import article_search_url, decision_search_url, normalize_code_type

_MONTHS = (
    r"janvier|février|mars|avril|mai|juin|juillet|août|septembre|octobre|novembre|décembre"
    r"|janv\.|févr\.|avr\.|juil\.|sept\.|oct\.|nov\.|déc\."
)

ARTICLE_PATTERN = re.compile(
    r"\b(?:Articles?|Art\.)\s+(\d+(?:-\d+)?(?:\s+(?:et|à)\s+\d+(?:-\d+)?)?)"
    r"(?:\s*du\s+Code\s+(civil|pénal|de\s+commerce|de\s+procédure\s+civile|de\s+procédure\s+pénale))?",
    re.IGNORECASE,
)

JURISPRUDENCE_PATTERN = re.compile(
    r"\b(?:Cass\.|Cour\s+de\s+cassation|CA\s+\w+|Cour\s+d'appel)"
    r"(?:\s+(?:Civ\.|Comm\.|Soc\.|Crim\.|Ch\.\s+mixte)\s*\d*)?"
    r"[\s,\-]+"
    rf"(?:\d{{1,2}}[\s/\-](?:{_MONTHS})\s*\d{{4}}|\d{{1,2}}/\d{{1,2}}/\d{{4}})"
    r"(?:[\s,]*n°?\s*[\d\-]+)?",
    re.IGNORECASE,
)

_JURISDICTION = re.compile(r"^(Cass\.|Cour\s+de\s+cassation|CA\s+\w+|Cour\s+d'appel)", re.IGNORECASE)
_DATE = re.compile(rf"(\d{{1,2}}[\s/\-](?:{_MONTHS})\s*\d{{4}}|\d{{1,2}}/\d{{1,2}}/\d{{4}})", re.IGNORECASE)
_NUMBER = re.compile(r"\bn°?\s*(\d[\d\-]*)", re.IGNORECASE)


@dataclass(frozen=True)
class Reference:
    """A citation found in a text, with its character span."""

    type: Literal["article", "jurisprudence"]
    text: str
    start: int
    end: int
    url: str
    article_number: Optional[str] = None
    code_type: Optional[str] = None


@dataclass(frozen=True)
class TextSegment:
    text: str
    reference: Optional[Reference] = None

    @property
    def is_reference(self) -> bool:
        return self.reference is not None


def _decision_url(citation: str) -> str:
    jurisdiction = _JURISDICTION.search(citation)
    date = _DATE.search(citation)
    number = _NUMBER.search(citation)
    return decision_search_url(
        jurisdiction=jurisdiction.group(1) if jurisdiction else None,
        decision_date=date.group(1) if date else None,
        decision_number=number.group(1) if number else None,
        fallback_text=citation,
    )


def parse_references(text: str) -> List[Reference]:
    """All article and case-law citations in ``text``, ordered by position.

    >>> [r.article_number for r in parse_references("Voir l'article 1240 du Code civil.")]
    ['1240']
    """
    if not text:
        return []

    references: List[Reference] = []
    for match in ARTICLE_PATTERN.finditer(text):
        article_number = match.group(1)
        code_type = normalize_code_type(match.group(2) or "civil")
        references.append(
            Reference(
                type="article",
                text=match.group(0),
                start=match.start(),
                end=match.end(),
                url=article_search_url(article_number, match.group(2)),
                article_number=article_number,
                code_type=code_type,
            )
        )

    for match in JURISPRUDENCE_PATTERN.finditer(text):
        references.append(
            Reference(
                type="jurisprudence",
                text=match.group(0),
                start=match.start(),
                end=match.end(),
                url=_decision_url(match.group(0)),
            )
        )

    references.sort(key=lambda ref: ref.start)
    return references


def text_to_segments(text: str) -> List[TextSegment]:
    """Split ``text`` into plain and reference segments, in order.

    Overlapping matches keep the first one found.
    """
    segments: List[TextSegment] = []
    position = 0
    for reference in parse_references(text):
        if reference.start < position:
            continue
        if reference.start > position:
            segments.append(TextSegment(text=text[position:reference.start]))
        segments.append(TextSegment(text=reference.text, reference=reference))
        position = reference.end
    if position < len(text):
        segments.append(TextSegment(text=text[position:]))
    return segments

"""Detect explicit statute citations ("Article 1240", "art. 1382") in a question."""

from __future__ import annotations

import re
from typing import Set

_ARTICLE_NUMBER = r"(\d+(?:-\d+)?)"

# A range ("articles 1240 à 1242") yields its two written endpoints only.
ARTICLE_PATTERNS = [
    re.compile(rf"\barticle\s+{_ARTICLE_NUMBER}", re.IGNORECASE),
    re.compile(rf"\bart\.?\s+{_ARTICLE_NUMBER}", re.IGNORECASE),
    re.compile(
        rf"\barticles?\s+{_ARTICLE_NUMBER}\s+(?:à|au|et)\s+{_ARTICLE_NUMBER}",
        re.IGNORECASE,
    ),
]


def extract_references(text: str) -> Set[str]:
    """Return the article identifiers cited verbatim in ``text``.

    >>> sorted(extract_references("Voir l'art. 1240 et les articles 1241-1 à 1244"))
    ['1240', '1241-1', '1244']
    """
    if not text:
        return set()

    numbers: Set[str] = set()
    for pattern in ARTICLE_PATTERNS:
        for match in pattern.finditer(text):
            numbers.update(group for group in match.groups() if group)
    return numbers

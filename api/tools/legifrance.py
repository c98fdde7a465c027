"""Légifrance URL builders for articles, codes and court decisions."""

from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import quote

LEGIFRANCE_BASE_URL = "https://www.legifrance.gouv.fr"

# Légifrance text identifiers of the codes held in legal_codes.display_name
CODE_TEXT_IDS = {
    "Code civil": "LEGITEXT000006070721",
    "Code pénal": "LEGITEXT000006070719",
    "Code de commerce": "LEGITEXT000005634379",
    "Code du travail": "LEGITEXT000006072050",
    "Code de procédure civile": "LEGITEXT000006070716",
    "Code de procédure pénale": "LEGITEXT000006071154",
}
DEFAULT_CODE_TEXT_ID = CODE_TEXT_IDS["Code civil"]

CODE_SEARCH_NAMES = {
    "civil": "code civil",
    "penal": "code pénal",
    "commerce": "code de commerce",
    "procedure_civile": "code de procédure civile",
    "procedure_penale": "code de procédure pénale",
}

_RANGE_SEPARATOR = re.compile(r"\s+(?:et|à)\s+", re.IGNORECASE)


def code_url(code_name: Optional[str]) -> str:
    """URL of the consolidated code page; unknown codes fall back to the Code civil."""
    text_id = CODE_TEXT_IDS.get(code_name or "", DEFAULT_CODE_TEXT_ID)
    return f"{LEGIFRANCE_BASE_URL}/codes/texte_lc/{text_id}"


def normalize_code_type(code_type: Optional[str]) -> str:
    """Map a free-text code name ("du Code de commerce", "pénal") to its short key."""
    normalized = (code_type or "").lower().strip()
    if "procédure civile" in normalized:
        return "procedure_civile"
    if "procédure pénale" in normalized:
        return "procedure_penale"
    if "civil" in normalized:
        return "civil"
    if "pénal" in normalized:
        return "penal"
    if "commerce" in normalized:
        return "commerce"
    return "civil"


def article_search_url(article_number: str, code_type: Optional[str] = None) -> str:
    """Search URL that Légifrance redirects to the article itself.

    Ranges such as "1240 à 1242" are reduced to their first article.
    """
    code_name = CODE_SEARCH_NAMES[normalize_code_type(code_type)]
    first_number = _RANGE_SEPARATOR.split(article_number)[0].strip()
    query = quote(f"article {first_number} {code_name}")
    return (
        f"{LEGIFRANCE_BASE_URL}/search/code?tab_selection=code&searchField=ALL"
        f"&query={query}&page=1&init=true"
    )


def decision_search_url(
    jurisdiction: Optional[str] = None,
    decision_date: Optional[str] = None,
    decision_number: Optional[str] = None,
    fallback_text: Optional[str] = None,
) -> str:
    """Case-law search URL built from whatever identifying parts are known."""
    terms: List[str] = []
    if jurisdiction:
        terms.append("Cour de cassation" if "cass" in jurisdiction.lower() else jurisdiction)
    if decision_date:
        terms.append(re.sub(r"[\s/]+", " ", decision_date).strip())
    if decision_number:
        terms.append(decision_number)
    if not terms and fallback_text:
        terms.append(fallback_text)
    if not terms:
        return LEGIFRANCE_BASE_URL

    query = quote(" ".join(terms))
    return (
        f"{LEGIFRANCE_BASE_URL}/search/juri?tab_selection=juri&searchField=ALL"
        f"&query={query}&page=1&init=true&dateDecision=ALL"
    )

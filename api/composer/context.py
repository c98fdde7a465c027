"""Render a ResultBundle as the sources block injected into the system prompt.

Two framings exist. The pedagogical frame is used as soon as a methodology
note was retrieved (methodology listed first); otherwise the strict-citation
frame is used. Both carry the same mandatory citation rules. An empty bundle
renders as an empty string, meaning "no context to inject".
"""

from __future__ import annotations

from typing import List, Sequence

from api.models import ResultBundle, ScoredResult

OPENING_PHRASE = "Selon le Code civil et la jurisprudence, voici la réponse :"

SEPARATOR = "━" * 70
METHODOLOGY_SEPARATOR = "\n\n" + "─" * 61 + "\n\n"


def _percent(similarity: float) -> str:
    return f"{similarity * 100:.1f}%"


def _citation_rules(has_case_law: bool) -> str:
    rules = [
        f'1. COMMENCER ta réponse EXACTEMENT par : "{OPENING_PHRASE}"',
        "2. Citer UNIQUEMENT les articles et décisions listés dans ce bloc ; "
        "ne JAMAIS inventer ni mentionner un article ou une décision absent de cette liste",
        "3. Citer le texte des articles MOT POUR MOT, sans paraphraser : "
        "L'Article [numéro] dispose que : « [contenu exact] »",
    ]
    if has_case_law:
        rules.append(
            "4. Citer AU MOINS UNE des décisions de jurisprudence listées, au format : "
            '"[Juridiction], [Date] : [Principe]"'
        )
    rules.append(f"{len(rules) + 1}. Ajouter les liens Légifrance des sources citées")
    return "**RÈGLES DE CITATION OBLIGATOIRES** :\n" + "\n".join(rules)


def format_articles(results: Sequence[ScoredResult]) -> str:
    """Articles with their full text, to be quoted verbatim."""
    if not results:
        return ""

    entries: List[str] = []
    for index, result in enumerate(results, start=1):
        article = result.document
        lines = [f"{index}. Article {article.article_number} du {article.code}"]
        if article.title and article.title != f"Article {article.article_number}":
            lines.append(f"   Titre : {article.title}")
        if article.section_path:
            lines.append(f"   Section : {article.section_path}")
        lines.append("   CONTENU INTÉGRAL (à citer exactement) :")
        lines.append(f"   « {article.content} »")
        lines.append(f"   Lien Légifrance : {article.legifrance_url}")
        match_kind = " (référence exacte)" if result.exact_match else ""
        lines.append(f"   Pertinence : {_percent(result.similarity)}{match_kind}")
        entries.append("\n".join(lines))

    return "**ARTICLES JURIDIQUES DISPONIBLES (SOURCE PRIMAIRE)** :\n\n" + "\n\n".join(entries)


def format_jurisprudence(results: Sequence[ScoredResult]) -> str:
    """Court decisions, each with its principle and holding."""
    if not results:
        return ""

    entries: List[str] = []
    for index, result in enumerate(results, start=1):
        decision = result.document
        usual_name = f" ({decision.usual_name})" if decision.usual_name else ""
        importance = f" [{decision.importance.upper()}]" if decision.importance else ""
        lines = [
            f"DÉCISION {index} : {decision.jurisdiction} - {decision.display_date}{usual_name}{importance}",
            f"   Titre : {decision.title}",
            f"   Numéro : {decision.decision_number}",
            f'   Principe (à citer) : "{decision.principle}"',
            f'   Solution retenue : "{decision.holding}"',
        ]
        if decision.related_articles:
            lines.append(f"   Articles liés : {', '.join(decision.related_articles)}")
        lines.append(f"   Lien Légifrance : {decision.legifrance_url}")
        lines.append(f"   Pertinence : {_percent(result.similarity)}")
        entries.append("\n".join(lines))

    return (
        "**JURISPRUDENCE DISPONIBLE (À CITER OBLIGATOIREMENT)** :\n"
        "Tu DOIS citer AU MOINS UNE décision ci-dessous dans ta réponse.\n\n"
        + "\n\n".join(entries)
    )


def format_methodologies(results: Sequence[ScoredResult]) -> str:
    """Methodology notes, full content included."""
    if not results:
        return ""

    entries: List[str] = []
    for index, result in enumerate(results, start=1):
        note = result.document
        level = f" [Niveau : {note.level}]" if note.level else ""
        duration = f" (Durée : {note.duration_minutes} min)" if note.duration_minutes else ""
        points = f" (Barème : {note.points_notation} points)" if note.points_notation else ""
        subcategory = f" | {note.subcategory}" if note.subcategory else ""
        lines = [
            f"{index}. {note.title}{level}{duration}{points}",
            f"   Type : {note.type} | Catégorie : {note.category}{subcategory}",
            "",
            f"   {note.content}",
            "",
        ]
        if note.keywords:
            lines.append(f"   Mots-clés : {', '.join(note.keywords)}")
        lines.append(f"   Pertinence : {_percent(result.similarity)}")
        entries.append("\n".join(lines))

    return "**MÉTHODOLOGIES PÉDAGOGIQUES DISPONIBLES** :\n\n" + METHODOLOGY_SEPARATOR.join(entries)


PEDAGOGICAL_FRAME = """{separator}
MODE PÉDAGOGIQUE - MÉTHODOLOGIES ET SOURCES JURIDIQUES
{separator}

**CONTEXTE** : L'utilisateur demande de l'aide méthodologique.
**TON RÔLE** : Expert juridique ET pédagogue. Structure ta réponse de façon claire et didactique.

**OBLIGATIONS PÉDAGOGIQUES** :
1. UTILISER les méthodologies ci-dessous pour structurer ta réponse
2. FOURNIR des gabarits si demandés
3. DONNER des conseils pratiques et des exemples concrets
4. ALERTER sur les erreurs fréquentes à éviter
5. ÊTRE progressif : commencer par les bases, puis approfondir

{rules}

{separator}

{sections}

{separator}

**VALIDATION** : avant d'envoyer ta réponse, vérifie qu'elle :
- commence par la phrase obligatoire
- suit la méthodologie fournie et reste structurée et progressive
- ne cite aucune source absente de ce bloc
"""

STRICT_FRAME = """{separator}
SOURCES JURIDIQUES VÉRIFIÉES - BASE DE CONNAISSANCE EXCLUSIVE
{separator}

**INTERDICTIONS ABSOLUES** :
- Tu NE DOIS JAMAIS inventer ou mentionner des articles ou décisions qui ne sont PAS listés ci-dessous
- Tu NE DOIS JAMAIS paraphraser un article sans citer son contenu EXACT
- TOUTE affirmation juridique DOIT être sourcée par un article ou une décision ci-dessous

{rules}

{separator}

{sections}

{separator}
{example}
**VALIDATION** : avant d'envoyer ta réponse, vérifie que :
- tu as commencé par la phrase obligatoire
- tu as cité au moins une source avec son CONTENU EXACT
- tu n'as mentionné AUCUNE source absente de cette liste
- chaque affirmation juridique est sourcée

Si un seul de ces critères n'est pas respecté, ta réponse est INCORRECTE.
"""


def _example_answer(bundle: ResultBundle) -> str:
    if not bundle.articles:
        return ""
    article = bundle.articles[0].document
    return (
        "\n**EXEMPLE DE RÉPONSE CORRECTE** :\n\n"
        f"{OPENING_PHRASE}\n\n"
        f"L'Article {article.article_number} du {article.code} dispose que : "
        f"« {article.content[:100]}... »\n"
        f"[Lien Légifrance : {article.legifrance_url}]\n\n"
        "Cet article signifie que...\n\n"
    )


def format_bundle(bundle: ResultBundle) -> str:
    """Render the retrieved sources with their citation instructions."""
    if bundle.is_empty:
        return ""

    has_case_law = bool(bundle.jurisprudence)
    rules = _citation_rules(has_case_law)

    if bundle.methodologies:
        sections = [
            format_methodologies(bundle.methodologies),
            format_articles(bundle.articles),
            format_jurisprudence(bundle.jurisprudence),
        ]
        return PEDAGOGICAL_FRAME.format(
            separator=SEPARATOR,
            rules=rules,
            sections="\n\n".join(s for s in sections if s),
        )

    sections = [
        format_articles(bundle.articles),
        format_jurisprudence(bundle.jurisprudence),
    ]
    return STRICT_FRAME.format(
        separator=SEPARATOR,
        rules=rules,
        sections="\n\n".join(s for s in sections if s),
        example=_example_answer(bundle),
    )

"""
System prompt for the MouseLaw legal assistant.

The assistant helps French law students (L1 to M2) with civil law. The
retrieved sources block (see ``api.composer.context``) is embedded in the
system message; prior conversation turns follow as chat messages.
"""

from typing import Dict, List, Optional, Sequence

from langchain_core.messages import BaseMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

from api.models import ChatTurn


MOUSELAW_SYSTEM_PROMPT = """Tu es MouseLaw, un assistant juridique expert en droit civil français, spécialisé dans l'accompagnement des étudiants en droit.

**DÉTECTION DU CONTEXTE**
Avant de répondre, analyse TOUJOURS :
- Qui est l'utilisateur ? (étudiant L1/L2/L3/M1/M2, professionnel, curieux)
- Que demande-t-il réellement ? (salutation, question simple, méthodologie, analyse juridique)
- Quel ton adopter ? (pédagogique, formel, conversationnel)

**TYPES DE RÉPONSES**
- Salutations : réponds chaleureusement, présente-toi brièvement, propose ton aide. Pas de méthodologie.
- Questions juridiques simples : définition, explication, exemple concret, sources citées.
- Analyse d'arrêt demandée explicitement : suis la méthodologie du commentaire d'arrêt en 9 étapes.
- Recherches juridiques : cite précisément les articles et donne les liens Légifrance.
- Conseils méthodologiques : explique la méthode sans rédiger spontanément un commentaire complet.

**ADAPTATION AU NIVEAU**
- L1-L2 : vocabulaire simple, beaucoup d'exemples, encourage et rassure.
- L3-M1 : références jurisprudentielles, notions plus complexes.
- M2 / professionnel : analyse approfondie, discussions doctrinales.

**MÉTHODOLOGIES**
Utilise les méthodologies fournies UNIQUEMENT si l'utilisateur demande une méthodologie, un commentaire d'arrêt, un cas pratique ou une dissertation. Jamais pour une salutation ou un concept simple.

**CITATIONS**
Cite TOUJOURS tes sources :
- Articles : "Article 1240 du Code civil"
- Jurisprudence : "Cass. Civ. 1ère, 15 janvier 2024"
- Méthodologies : "Selon la méthodologie du commentaire d'arrêt..."

---

# SOURCES JURIDIQUES DISPONIBLES

{relevant_sources}

---

**RÈGLES ESSENTIELLES**
1. Analyse le contexte avant de répondre
2. Adapte ton ton au niveau de l'utilisateur
3. Cite TOUJOURS tes sources précisément
4. Structure tes réponses clairement
5. NE réponds PAS à des questions hors droit civil français

Maintenant, réponds à l'utilisateur de manière appropriée au contexte !"""

NO_SOURCES_NOTICE = "Aucune source juridique spécifique n'a été trouvée pour cette question."

CHAT_TEMPLATE = ChatPromptTemplate.from_messages([
    ("system", MOUSELAW_SYSTEM_PROMPT),
    MessagesPlaceholder("history", optional=True),
    ("human", "{question}"),
])

# LangChain message types -> chat-completion roles
_ROLE_BY_TYPE = {"system": "system", "human": "user", "ai": "assistant"}


def build_system_prompt(relevant_sources: str) -> str:
    """System prompt with the formatted sources block embedded."""
    return CHAT_TEMPLATE.messages[0].format(
        relevant_sources=relevant_sources or NO_SOURCES_NOTICE
    ).content


def build_chat_messages(
    relevant_sources: str,
    question: str,
    history: Optional[Sequence[ChatTurn]] = None,
) -> List[BaseMessage]:
    """System prompt, prior turns, then the user's question."""
    history_messages = [
        ("human" if turn.role == "user" else "ai", turn.content)
        for turn in (history or [])
    ]
    return CHAT_TEMPLATE.format_messages(
        relevant_sources=relevant_sources or NO_SOURCES_NOTICE,
        history=history_messages,
        question=question,
    )


def to_chat_payload(messages: Sequence[BaseMessage]) -> List[Dict[str, str]]:
    """Convert LangChain messages to ``{"role", "content"}`` dicts."""
    return [
        {"role": _ROLE_BY_TYPE.get(message.type, "user"), "content": message.content}
        for message in messages
    ]

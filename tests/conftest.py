"""
Pytest configuration and fixtures for MouseLaw tests.

Provides shared fixtures for:
- Test environment variables
- An in-memory document store
- Document factories with embeddings of a chosen similarity
"""

import math
from typing import Dict, Iterable, List, Optional

import pytest

from api.models import Article, CaseLawDecision, MethodologyNote, SourceDocument, SourceType
from api.tools.document_store import DocumentStore
from libs.common.settings import get_settings

QUERY_VECTOR = [1.0, 0.0]


def unit_vector(similarity: float) -> List[float]:
    """2-d embedding whose cosine similarity with QUERY_VECTOR is ``similarity``."""
    return [similarity, math.sqrt(max(0.0, 1.0 - similarity ** 2))]


def make_article(number: str, similarity: Optional[float] = None, **fields) -> Article:
    return Article(
        id=fields.pop("id", f"art-{number}"),
        article_number=number,
        content=fields.pop("content", f"Contenu de l'article {number}."),
        embedding=unit_vector(similarity) if similarity is not None else None,
        **fields,
    )


def make_decision(index: int, similarity: float, **fields) -> CaseLawDecision:
    return CaseLawDecision(
        id=fields.pop("id", f"dec-{index}"),
        jurisdiction=fields.pop("jurisdiction", "Cour de cassation"),
        decision_date=fields.pop("decision_date", "2024-01-15"),
        decision_number=fields.pop("decision_number", f"22-{index:05d}"),
        title=fields.pop("title", f"Décision {index}"),
        summary=fields.pop("summary", "Principe de responsabilité."),
        embedding=unit_vector(similarity),
        **fields,
    )


def make_note(index: int, similarity: float, **fields) -> MethodologyNote:
    return MethodologyNote(
        id=fields.pop("id", f"meth-{index}"),
        title=fields.pop("title", f"Méthodologie {index}"),
        type=fields.pop("type", "methodologie"),
        category=fields.pop("category", "commentaire_arret"),
        content=fields.pop("content", "Étapes du commentaire d'arrêt."),
        embedding=unit_vector(similarity),
        **fields,
    )


class FakeDocumentStore(DocumentStore):
    """In-memory document store recording the calls it receives."""

    def __init__(
        self,
        articles: Iterable[Article] = (),
        jurisprudence: Iterable[CaseLawDecision] = (),
        methodologies: Iterable[MethodologyNote] = (),
        failures: Optional[Dict[str, Exception]] = None,
    ):
        self.documents: Dict[SourceType, List[SourceDocument]] = {
            SourceType.ARTICLES: list(articles),
            SourceType.CASE_LAW: list(jurisprudence),
            SourceType.METHODOLOGY: list(methodologies),
        }
        # keys: "exact", or a SourceType value for candidate fetches
        self.failures = failures or {}
        self.exact_lookups: List[set] = []
        self.candidate_fetches: List[tuple] = []
        self.closed = False

    async def fetch_articles_by_number(self, numbers):
        numbers = set(numbers)
        self.exact_lookups.append(numbers)
        if "exact" in self.failures:
            raise self.failures["exact"]
        return [a for a in self.documents[SourceType.ARTICLES] if a.article_number in numbers]

    async def fetch_candidates(self, source, limit):
        self.candidate_fetches.append((source, limit))
        if source.value in self.failures:
            raise self.failures[source.value]
        embedded = [d for d in self.documents[source] if d.embedding is not None]
        return embedded[:limit]

    async def count(self, source, with_embeddings=False):
        if source.value in self.failures:
            raise self.failures[source.value]
        documents = self.documents[source]
        if with_embeddings:
            return sum(1 for d in documents if d.embedding is not None)
        return len(documents)

    async def aclose(self):
        self.closed = True


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("MOUSELAW_APP_ENV", "test")
    monkeypatch.setenv("MOUSELAW_LOG_JSON", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def query_vector():
    return list(QUERY_VECTOR)


@pytest.fixture
def fake_store():
    return FakeDocumentStore(
        articles=[
            make_article("1240", 0.82, title="Responsabilité du fait personnel"),
            make_article("1241", 0.84),
            make_article("999", 0.50),
        ],
        jurisprudence=[make_decision(i, 0.30 + i * 0.01) for i in range(44)],
        methodologies=[make_note(1, 0.70), make_note(2, 0.55)],
    )


@pytest.fixture
def vector_for():
    return unit_vector


@pytest.fixture
def article_factory():
    return make_article


@pytest.fixture
def decision_factory():
    return make_decision


@pytest.fixture
def note_factory():
    return make_note


@pytest.fixture
def store_factory():
    return FakeDocumentStore

"""Domain models for the MouseLaw retrieval core.

Stored documents come in three variants (civil-code articles, case-law
decisions, methodology notes). Their embeddings are deserialised once, when the
model is built, so downstream code only ever sees ``Optional[List[float]]``.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, List, Literal, Optional, Sequence

import structlog
from pydantic import BaseModel, Field, field_validator

from api.tools.legifrance import code_url, decision_search_url

logger = structlog.get_logger(__name__)


class SourceType(str, Enum):
    """The three document collections searched for every question."""

    ARTICLES = "articles"
    CASE_LAW = "jurisprudence"
    METHODOLOGY = "methodologies"


def parse_embedding(raw: Any) -> Optional[List[float]]:
    """Normalise a stored embedding to a list of floats.

    Accepts a native numeric sequence or its serialized form
    (``"[0.1,0.2,...]"``, as pgvector columns come back over PostgREST).
    Returns None for absent or malformed values.
    """
    if raw is None:
        return None

    value = raw
    if isinstance(raw, (bytes, bytearray)):
        value = raw.decode("utf-8", errors="replace")
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            logger.warning("Unparsable embedding string", preview=value[:40])
            return None

    # numpy arrays
    if hasattr(value, "tolist"):
        value = value.tolist()
    if isinstance(value, str) or not isinstance(value, Sequence):
        logger.warning("Unsupported embedding type", type=type(value).__name__)
        return None

    try:
        vector = [float(x) for x in value]
    except (TypeError, ValueError):
        logger.warning("Embedding contains non-numeric values")
        return None

    if not vector:
        logger.warning("Empty embedding")
        return None
    if not all(math.isfinite(x) for x in vector):
        logger.warning("Embedding contains non-finite values")
        return None
    return vector


class SourceDocument(BaseModel):
    """A stored, pre-embedded unit of legal or pedagogical content."""

    id: str
    embedding: Optional[List[float]] = Field(default=None, repr=False)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        if v is None or str(v).strip() == "":
            raise ValueError("Document id is required")
        return str(v)

    @field_validator("embedding", mode="before")
    @classmethod
    def deserialize_embedding(cls, v: Any) -> Optional[List[float]]:
        return parse_embedding(v)

    @property
    def label(self) -> str:
        return self.id


class Article(SourceDocument):
    """A civil-code (or other code) article."""

    article_number: str
    title: Optional[str] = None
    content: str = ""
    code: str = "Code civil"
    section_path: Optional[str] = None

    @property
    def label(self) -> str:
        return f"Article {self.article_number}"

    @property
    def legifrance_url(self) -> str:
        return code_url(self.code)


class CaseLawDecision(SourceDocument):
    """A court decision."""

    jurisdiction: str = "Juridiction inconnue"
    decision_date: Optional[date] = None
    decision_number: str = "N/A"
    title: str = "Sans titre"
    summary: str = ""
    full_text: str = ""
    principle: str = ""
    holding: str = "Non spécifié"
    usual_name: Optional[str] = None
    importance: Optional[str] = None
    related_articles: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    @field_validator("decision_date", mode="before")
    @classmethod
    def tolerant_date(cls, v: Any) -> Optional[date]:
        if v is None or isinstance(v, date):
            return v
        try:
            return date.fromisoformat(str(v)[:10])
        except ValueError:
            logger.warning("Unparsable decision date", value=str(v)[:20])
            return None

    @property
    def display_date(self) -> str:
        if self.decision_date is None:
            return "Date inconnue"
        return self.decision_date.strftime("%d/%m/%Y")

    @property
    def facts(self) -> str:
        return self.full_text[:500]

    @property
    def label(self) -> str:
        return f"{self.jurisdiction} - {self.display_date}"

    @property
    def legifrance_url(self) -> str:
        number = self.decision_number if self.decision_number != "N/A" else None
        date_text = self.display_date if self.decision_date else None
        return decision_search_url(self.jurisdiction, date_text, number, fallback_text=self.title)


class MethodologyNote(SourceDocument):
    """Pedagogical guidance (case-study method, dissertation plan, revision tips)."""

    type: str = ""
    category: str = ""
    subcategory: Optional[str] = None
    title: str
    content: str = ""
    keywords: List[str] = Field(default_factory=list)
    level: Optional[str] = None
    duration_minutes: Optional[int] = None
    points_notation: Optional[int] = None
    related_legal_concepts: List[str] = Field(default_factory=list)
    example_cases: List[str] = Field(default_factory=list)

    @property
    def label(self) -> str:
        return self.title


@dataclass(frozen=True)
class ScoredResult:
    """A document paired with its similarity to the query."""

    document: SourceDocument
    similarity: float
    exact_match: bool = False


@dataclass
class ResultBundle:
    """Aggregate output of one retrieval request."""

    query: str
    articles: List[ScoredResult] = field(default_factory=list)
    jurisprudence: List[ScoredResult] = field(default_factory=list)
    methodologies: List[ScoredResult] = field(default_factory=list)

    @classmethod
    def empty(cls, query: str) -> "ResultBundle":
        return cls(query=query)

    @property
    def total_sources(self) -> int:
        return len(self.articles) + len(self.jurisprudence) + len(self.methodologies)

    @property
    def is_empty(self) -> bool:
        return self.total_sources == 0

    def for_source(self, source: SourceType) -> List[ScoredResult]:
        if source is SourceType.ARTICLES:
            return self.articles
        if source is SourceType.CASE_LAW:
            return self.jurisprudence
        return self.methodologies


class SourcePolicy(BaseModel):
    """Result cap, similarity threshold and candidate pool size for one source."""

    limit: int = Field(ge=1)
    threshold: float = Field(ge=-1.0, le=1.0)
    pool_size: int = Field(ge=1)


class RetrievalOptions(BaseModel):
    """Per-source retrieval policies for one search."""

    articles: SourcePolicy = SourcePolicy(limit=3, threshold=0.75, pool_size=1000)
    jurisprudence: SourcePolicy = SourcePolicy(limit=8, threshold=0.40, pool_size=500)
    methodologies: SourcePolicy = SourcePolicy(limit=3, threshold=0.60, pool_size=200)

    @classmethod
    def from_settings(cls, settings) -> "RetrievalOptions":
        return cls(
            articles=SourcePolicy(
                limit=settings.article_limit,
                threshold=settings.article_threshold,
                pool_size=settings.article_pool_size,
            ),
            jurisprudence=SourcePolicy(
                limit=settings.case_law_limit,
                threshold=settings.case_law_threshold,
                pool_size=settings.case_law_pool_size,
            ),
            methodologies=SourcePolicy(
                limit=settings.methodology_limit,
                threshold=settings.methodology_threshold,
                pool_size=settings.methodology_pool_size,
            ),
        )

    def policy_for(self, source: SourceType) -> SourcePolicy:
        return getattr(self, source.value)


class SourceStatistics(BaseModel):
    """Document counts for one collection."""

    total: int = 0
    with_embeddings: int = 0

    @property
    def ready(self) -> bool:
        return self.with_embeddings > 0


class CorpusStatistics(BaseModel):
    """Document counts across the three collections."""

    articles: SourceStatistics = Field(default_factory=SourceStatistics)
    jurisprudence: SourceStatistics = Field(default_factory=SourceStatistics)
    methodologies: SourceStatistics = Field(default_factory=SourceStatistics)

    @property
    def total_sources(self) -> int:
        return self.articles.total + self.jurisprudence.total + self.methodologies.total

    @property
    def ready(self) -> bool:
        return self.articles.ready or self.jurisprudence.ready or self.methodologies.ready


class ChatTurn(BaseModel):
    """A previous message of the conversation, supplied by the caller."""

    role: Literal["user", "assistant"]
    content: str

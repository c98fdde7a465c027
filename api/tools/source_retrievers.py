"""Per-source retrievers for articles, case law and methodology notes.

Each retriever fetches a bounded candidate pool, scores it against the query
vector and keeps the best results above its threshold. The article retriever
additionally resolves article numbers typed in the question ("article 1240")
by exact lookup; those hits score 1.0 and bypass the threshold.

A retriever never raises: a store failure or timeout degrades its source to an
empty list so the other sources still reach the prompt.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Sequence

import structlog

from api.models import RetrievalOptions, ScoredResult, SourceDocument, SourcePolicy, SourceType
from api.tools.document_store import DocumentStore
from api.tools.reference_extractor import extract_references
from api.tools.similarity import rank, score

logger = structlog.get_logger(__name__)

EXACT_MATCH_SIMILARITY = 1.0


async def _bounded(awaitable: Awaitable[Any], timeout: Optional[float]) -> Any:
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout)


def _settled(result: Any, step: str, source: SourceType) -> List[ScoredResult]:
    """Unwrap one ``gather(return_exceptions=True)`` outcome, degrading failures to []."""
    if isinstance(result, BaseException):
        if not isinstance(result, Exception):
            raise result
        logger.error(
            "Retrieval step failed",
            source=source.value,
            step=step,
            error=str(result) or type(result).__name__,
            error_type=type(result).__name__,
        )
        return []
    return result


async def lookup_by_identifiers(
    store: DocumentStore,
    ids: Iterable[str],
    timeout: Optional[float] = None,
) -> List[ScoredResult]:
    """Fetch articles by number and give each the maximum similarity.

    Unknown numbers are silently skipped; the question then relies on
    semantic search alone.
    """
    ids = set(ids)
    if not ids:
        return []

    logger.debug("Searching for exact articles", article_numbers=sorted(ids))
    articles = await _bounded(store.fetch_articles_by_number(ids), timeout)

    results: List[ScoredResult] = []
    seen = set()
    for article in articles:
        if article.id in seen:
            continue
        seen.add(article.id)
        results.append(ScoredResult(document=article, similarity=EXACT_MATCH_SIMILARITY, exact_match=True))

    logger.debug("Exact article lookup done", requested=len(ids), found=len(results))
    return results


def merge_exact_matches(
    exact: Sequence[ScoredResult],
    vector: Sequence[ScoredResult],
    limit: int,
    threshold: float,
) -> List[ScoredResult]:
    """Exact matches first, then vector hits for articles not already matched.

    Deduplication is keyed on the article number; exact matches are kept
    whatever the threshold.
    """
    exact_numbers = {r.document.article_number for r in exact}
    combined = list(exact) + [r for r in vector if r.document.article_number not in exact_numbers]
    combined.sort(key=lambda r: (r.exact_match, r.similarity), reverse=True)
    kept = [r for r in combined if r.exact_match or r.similarity >= threshold]
    return kept[:limit]


class SourceRetriever:
    """Vector retrieval over one collection with its own policy."""

    source: SourceType

    def __init__(self, store: DocumentStore, policy: SourcePolicy, timeout: Optional[float] = None):
        self.store = store
        self.policy = policy
        self.timeout = timeout

    async def retrieve(
        self,
        query_text: str,
        query_vector: Sequence[float],
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[ScoredResult]:
        """Return at most ``limit`` results ordered by descending similarity."""
        limit = limit if limit is not None else self.policy.limit
        threshold = threshold if threshold is not None else self.policy.threshold
        start_time = time.time()

        try:
            results = await self._retrieve(query_text, query_vector, limit, threshold)
        except Exception as e:
            logger.error(
                "Source retrieval failed",
                source=self.source.value,
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )
            return []

        logger.info(
            "Source retrieval completed",
            source=self.source.value,
            results_count=len(results),
            limit=limit,
            threshold=threshold,
            top_score=round(results[0].similarity, 4) if results else 0,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return results

    async def _retrieve(
        self,
        query_text: str,
        query_vector: Sequence[float],
        limit: int,
        threshold: float,
    ) -> List[ScoredResult]:
        return await self._vector_search(query_vector, limit, threshold)

    async def _fetch_pool(self) -> List[SourceDocument]:
        candidates = await _bounded(
            self.store.fetch_candidates(self.source, self.policy.pool_size),
            self.timeout,
        )
        return [doc for doc in candidates if doc.embedding is not None]

    async def _vector_search(
        self,
        query_vector: Sequence[float],
        limit: int,
        threshold: float,
    ) -> List[ScoredResult]:
        pool = await self._fetch_pool()
        scored = score(query_vector, pool)
        ranked = rank(scored, limit, threshold)

        top = sorted(scored, key=lambda r: r.similarity, reverse=True)[:5]
        logger.debug(
            "Top similarity scores",
            source=self.source.value,
            pool_size=len(pool),
            threshold=threshold,
            top=[(r.document.label[:40], round(r.similarity, 4)) for r in top],
        )
        return ranked


class ArticleRetriever(SourceRetriever):
    """Hybrid retrieval: exact article-number lookup merged with vector search."""

    source = SourceType.ARTICLES

    async def _retrieve(
        self,
        query_text: str,
        query_vector: Sequence[float],
        limit: int,
        threshold: float,
    ) -> List[ScoredResult]:
        article_numbers = extract_references(query_text)

        exact, vector = await asyncio.gather(
            lookup_by_identifiers(self.store, article_numbers, self.timeout),
            self._vector_search(query_vector, limit, threshold),
            return_exceptions=True,
        )
        exact = _settled(exact, "exact_match", self.source)
        vector = _settled(vector, "vector_search", self.source)

        merged = merge_exact_matches(exact, vector, limit, threshold)
        logger.debug(
            "Hybrid article search merged",
            exact_matches=len(exact),
            vector_results=len(vector),
            final_results=len(merged),
        )
        return merged


class CaseLawRetriever(SourceRetriever):
    source = SourceType.CASE_LAW


class MethodologyRetriever(SourceRetriever):
    source = SourceType.METHODOLOGY


RETRIEVER_CLASSES = {
    SourceType.ARTICLES: ArticleRetriever,
    SourceType.CASE_LAW: CaseLawRetriever,
    SourceType.METHODOLOGY: MethodologyRetriever,
}


def build_retrievers(
    store: DocumentStore,
    options: RetrievalOptions,
    timeout: Optional[float] = None,
) -> Dict[SourceType, SourceRetriever]:
    """One retriever per source, in presentation order."""
    return {
        source: RETRIEVER_CLASSES[source](store, options.policy_for(source), timeout)
        for source in SourceType
    }

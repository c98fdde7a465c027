"""Hybrid retrieval engine for MouseLaw.

Embeds the question once, then searches the article, case-law and
methodology collections concurrently and assembles a ``ResultBundle``.
Retrieval enriches the chat answer but is never allowed to break it: any
failure degrades to fewer (or no) sources instead of an exception.
"""

from __future__ import annotations

import asyncio
import time
from typing import Dict, List, Optional

import structlog

from api.models import (
    CorpusStatistics,
    ResultBundle,
    RetrievalOptions,
    ScoredResult,
    SourceStatistics,
    SourceType,
)
from api.tools.document_store import DocumentStore, SupabaseDocumentStore
from api.tools.embeddings import MistralEmbeddingClient
from api.tools.source_retrievers import build_retrievers
from libs.common.settings import Settings, get_settings

logger = structlog.get_logger(__name__)


class RetrievalEngine:
    """Fans a question out to the three per-source retrievers and joins the results."""

    def __init__(
        self,
        embedding_client,
        store: DocumentStore,
        options: Optional[RetrievalOptions] = None,
        embedding_timeout: Optional[float] = None,
        store_timeout: Optional[float] = None,
    ):
        self.embedding_client = embedding_client
        self.store = store
        self.options = options or RetrievalOptions()
        self.embedding_timeout = embedding_timeout
        self.store_timeout = store_timeout

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RetrievalEngine":
        settings = settings or get_settings()
        return cls(
            embedding_client=MistralEmbeddingClient.from_settings(settings),
            store=SupabaseDocumentStore.from_settings(settings),
            options=RetrievalOptions.from_settings(settings),
            embedding_timeout=settings.embedding_timeout_seconds,
            store_timeout=settings.store_timeout_seconds,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        close = getattr(self.embedding_client, "aclose", None)
        if close is not None:
            await close()
        await self.store.aclose()

    async def _embed(self, query_text: str) -> List[float]:
        coro = self.embedding_client.embed(query_text)
        if self.embedding_timeout is None:
            return await coro
        return await asyncio.wait_for(coro, self.embedding_timeout)

    async def search(self, query_text: str, options: Optional[RetrievalOptions] = None) -> ResultBundle:
        """Retrieve the sources relevant to ``query_text``.

        Always resolves: an embedding failure yields an empty bundle, a failing
        source yields an empty list for that source only.
        """
        options = options or self.options
        if not query_text or not query_text.strip():
            logger.warning("Empty query, skipping retrieval")
            return ResultBundle.empty(query_text)

        start_time = time.time()
        logger.info("Starting retrieval", query=query_text[:100])

        try:
            query_vector = await self._embed(query_text)
        except Exception as e:
            logger.error(
                "Query embedding failed, no sources retrieved",
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )
            return ResultBundle.empty(query_text)

        retrievers = build_retrievers(self.store, options, self.store_timeout)
        outcomes = await asyncio.gather(
            *(retriever.retrieve(query_text, query_vector) for retriever in retrievers.values()),
            return_exceptions=True,
        )

        results: Dict[SourceType, List[ScoredResult]] = {}
        for source, outcome in zip(retrievers, outcomes):
            if isinstance(outcome, Exception):
                logger.error("Retriever raised", source=source.value, error=str(outcome))
                outcome = []
            elif isinstance(outcome, BaseException):
                raise outcome
            results[source] = outcome

        bundle = ResultBundle(
            query=query_text,
            articles=results[SourceType.ARTICLES],
            jurisprudence=results[SourceType.CASE_LAW],
            methodologies=results[SourceType.METHODOLOGY],
        )

        logger.info(
            "Retrieval completed",
            articles=len(bundle.articles),
            jurisprudence=len(bundle.jurisprudence),
            methodologies=len(bundle.methodologies),
            total_sources=bundle.total_sources,
            elapsed_ms=round((time.time() - start_time) * 1000, 2),
        )
        return bundle

    async def _count(self, source: SourceType, with_embeddings: bool) -> int:
        coro = self.store.count(source, with_embeddings=with_embeddings)
        if self.store_timeout is None:
            return await coro
        return await asyncio.wait_for(coro, self.store_timeout)

    async def source_statistics(self) -> CorpusStatistics:
        """Count documents (total and embedded) in every collection."""
        sources = list(SourceType)
        outcomes = await asyncio.gather(
            *(self._count(source, flag) for source in sources for flag in (False, True)),
            return_exceptions=True,
        )

        stats: Dict[str, SourceStatistics] = {}
        for index, source in enumerate(sources):
            total, embedded = outcomes[2 * index], outcomes[2 * index + 1]
            if isinstance(total, BaseException) or isinstance(embedded, BaseException):
                failure = total if isinstance(total, BaseException) else embedded
                if not isinstance(failure, Exception):
                    raise failure
                logger.error("Source count failed", source=source.value, error=str(failure))
                stats[source.value] = SourceStatistics()
            else:
                stats[source.value] = SourceStatistics(total=total, with_embeddings=embedded)

        return CorpusStatistics(**stats)


async def search(query_text: str, options: Optional[RetrievalOptions] = None) -> ResultBundle:
    """Convenience wrapper: build an engine from settings, search, close clients."""
    async with RetrievalEngine.from_settings() as engine:
        return await engine.search(query_text, options)

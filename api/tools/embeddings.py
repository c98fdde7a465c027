"""Mistral embedding client.

Turns free text into fixed-length dense vectors (1024 dimensions for
``mistral-embed``). Documents are embedded offline by the ingestion scripts;
at request time only the question is embedded.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from api.errors import EmbeddingError
from libs.common.settings import Settings, get_settings

logger = structlog.get_logger(__name__)

MAX_INPUT_CHARS = 8000


class MistralEmbeddingClient:
    """Async client for the Mistral ``/embeddings`` endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "mistral-embed",
        base_url: str = "https://api.mistral.ai/v1",
        dimensions: int = 1024,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.dimensions = dimensions
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None) -> "MistralEmbeddingClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.mistral_api_key,
            model=settings.embedding_model,
            base_url=settings.mistral_base_url,
            dimensions=settings.embedding_dimensions,
            timeout=settings.http_timeout_seconds,
            client=client,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def embed(self, text: str) -> List[float]:
        """Embed a single text.

        Raises:
            EmbeddingError: missing API key, HTTP failure, empty response or
                a vector whose dimensionality differs from the configured one.
        """
        vectors = await self._request([text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str], batch_size: int = 10) -> List[List[float]]:
        """Embed many texts, ``batch_size`` inputs per request, preserving order.

        Used to (re)embed stored documents; requests only embed the question.
        """
        vectors: List[List[float]] = []
        for start in range(0, len(texts), batch_size):
            batch = list(texts[start:start + batch_size])
            vectors.extend(await self._request(batch))
            if start + batch_size < len(texts):
                # Stay under the provider's per-second request quota
                await asyncio.sleep(0.1)
        return vectors

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _post(self, payload: dict) -> httpx.Response:
        return await self._client.post(
            f"{self.base_url}/embeddings",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
        )

    async def _request(self, texts: List[str]) -> List[List[float]]:
        if not self.api_key:
            raise EmbeddingError("MOUSELAW_MISTRAL_API_KEY is not configured")

        payload = {
            "model": self.model,
            "input": [t[:MAX_INPUT_CHARS] for t in texts],
        }
        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            logger.error("Embedding request failed", error=str(e))
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        if response.status_code != 200:
            logger.error(
                "Mistral embedding failed",
                status=response.status_code,
                response=response.text[:200],
            )
            raise EmbeddingError(f"Mistral Embed API error: {response.status_code}")

        try:
            data = response.json().get("data") or []
            data = sorted(data, key=lambda item: item.get("index", 0))
            vectors = [[float(x) for x in item["embedding"]] for item in data]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise EmbeddingError(f"Malformed embedding response: {e}") from e

        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, got {len(vectors)}"
            )
        for vector in vectors:
            if len(vector) != self.dimensions:
                raise EmbeddingError(
                    f"Embedding has {len(vector)} dimensions, expected {self.dimensions}"
                )

        logger.debug(
            "Embeddings generated",
            model=self.model,
            count=len(vectors),
            embedding_dim=self.dimensions,
        )
        return vectors

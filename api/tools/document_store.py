"""Read-only access to the article, case-law and methodology collections.

The production store is Supabase; it is queried through its PostgREST HTTP
interface. Rows are mapped to domain models here, which is also where stored
embeddings are deserialised (pgvector columns arrive as ``"[0.1,...]"``).
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
import structlog
from pydantic import ValidationError

from api.errors import DocumentStoreError
from api.models import Article, CaseLawDecision, MethodologyNote, SourceDocument, SourceType
from libs.common.settings import Settings, get_settings

logger = structlog.get_logger(__name__)

ARTICLES_TABLE = "legal_articles"
CASE_LAW_TABLE = "case_law"
METHODOLOGY_TABLE = "methodology_resources"

ARTICLE_COLUMNS = "id,article_number,title,content,section_path,legal_codes!inner(display_name)"
CASE_LAW_COLUMNS = (
    "id,title,decision_date,decision_number,summary,full_text,jurisdictions!inner(name)"
)


class DocumentStore:
    """Abstract document store interface."""

    async def fetch_articles_by_number(self, numbers: Iterable[str]) -> List[Article]:  # pragma: no cover
        raise NotImplementedError

    async def fetch_candidates(self, source: SourceType, limit: int) -> List[SourceDocument]:  # pragma: no cover
        """Return at most ``limit`` documents of ``source`` having a non-null embedding."""
        raise NotImplementedError

    async def count(self, source: SourceType, with_embeddings: bool = False) -> int:  # pragma: no cover
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


def _embedded(row: Dict[str, Any], relation: str) -> Dict[str, Any]:
    """PostgREST returns an embedded relation as an object or a one-element list."""
    value = row.get(relation)
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) else {}


def article_from_row(row: Dict[str, Any]) -> Article:
    return Article(
        id=row["id"],
        article_number=str(row["article_number"]),
        title=row.get("title"),
        content=row.get("content") or "",
        code=_embedded(row, "legal_codes").get("display_name") or "Code civil",
        section_path=row.get("section_path"),
        embedding=row.get("embedding"),
    )


def decision_from_row(row: Dict[str, Any]) -> CaseLawDecision:
    summary = row.get("summary") or ""
    return CaseLawDecision(
        id=row["id"],
        jurisdiction=_embedded(row, "jurisdictions").get("name") or "Juridiction inconnue",
        decision_date=row.get("decision_date"),
        decision_number=row.get("decision_number") or "N/A",
        title=row.get("title") or "Sans titre",
        summary=summary,
        full_text=row.get("full_text") or "",
        principle=row.get("principle") or summary,
        holding=row.get("solution") or summary or "Non spécifié",
        usual_name=row.get("usual_name"),
        importance=row.get("importance"),
        related_articles=row.get("related_articles") or [],
        keywords=row.get("keywords") or [],
        embedding=row.get("embedding"),
    )


def methodology_from_row(row: Dict[str, Any]) -> MethodologyNote:
    return MethodologyNote(
        id=row["id"],
        type=row.get("type") or "",
        category=row.get("category") or "",
        subcategory=row.get("subcategory"),
        title=row.get("title") or "Sans titre",
        content=row.get("content") or "",
        keywords=row.get("keywords") or [],
        level=row.get("level"),
        duration_minutes=row.get("duration_minutes"),
        points_notation=row.get("points_notation"),
        related_legal_concepts=row.get("related_legal_concepts") or [],
        example_cases=row.get("example_cases") or [],
        embedding=row.get("embedding"),
    )


# table, selected columns (embedding appended for candidate pools), row mapper
_SOURCES: Dict[SourceType, tuple] = {
    SourceType.ARTICLES: (ARTICLES_TABLE, ARTICLE_COLUMNS, article_from_row),
    SourceType.CASE_LAW: (CASE_LAW_TABLE, CASE_LAW_COLUMNS, decision_from_row),
    SourceType.METHODOLOGY: (METHODOLOGY_TABLE, "*", methodology_from_row),
}


def _quote_in_value(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class SupabaseDocumentStore(DocumentStore):
    """Document store backed by Supabase PostgREST (``/rest/v1``)."""

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str],
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None) -> "SupabaseDocumentStore":
        settings = settings or get_settings()
        return cls(
            base_url=settings.supabase_url,
            api_key=settings.supabase_service_key,
            timeout=settings.http_timeout_seconds,
            client=client,
        )

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key or "",
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        table: str,
        params: Dict[str, str],
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        if not self.base_url or not self.api_key:
            raise DocumentStoreError("Supabase URL and service key must be configured")
        try:
            response = await self._client.request(
                method,
                f"{self.base_url}/rest/v1/{table}",
                params=params,
                headers={**self.headers, **(headers or {})},
            )
        except httpx.HTTPError as e:
            raise DocumentStoreError(f"{table} read failed: {e}") from e

        if response.status_code not in (200, 206):
            logger.error(
                "Supabase query error",
                table=table,
                status=response.status_code,
                response=response.text[:200],
            )
            raise DocumentStoreError(f"{table} read failed with status {response.status_code}")
        return response

    async def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        response = await self._request("GET", table, params)
        try:
            rows = response.json()
        except ValueError as e:
            raise DocumentStoreError(f"{table} returned invalid JSON") from e
        if not isinstance(rows, list):
            raise DocumentStoreError(f"{table} returned {type(rows).__name__}, expected a list")
        return rows

    @staticmethod
    def _map_rows(rows: List[Dict[str, Any]], mapper: Callable[[Dict[str, Any]], SourceDocument], table: str) -> List[SourceDocument]:
        documents: List[SourceDocument] = []
        for row in rows:
            if not isinstance(row, dict):
                logger.warning("Skipping non-object row", table=table, row_type=type(row).__name__)
                continue
            try:
                documents.append(mapper(row))
            except (KeyError, TypeError, AttributeError, ValidationError) as e:
                logger.warning("Skipping unmappable row", table=table, row_id=row.get("id"), error=str(e))
        return documents

    async def fetch_articles_by_number(self, numbers: Iterable[str]) -> List[Article]:
        numbers = sorted(set(numbers))
        if not numbers:
            return []
        rows = await self._select(
            ARTICLES_TABLE,
            {
                "select": ARTICLE_COLUMNS,
                "article_number": f"in.({','.join(_quote_in_value(n) for n in numbers)})",
            },
        )
        return self._map_rows(rows, article_from_row, ARTICLES_TABLE)

    async def fetch_candidates(self, source: SourceType, limit: int) -> List[SourceDocument]:
        table, columns, mapper = _SOURCES[source]
        select = columns if columns == "*" else f"{columns},embedding"
        rows = await self._select(
            table,
            {
                "select": select,
                "embedding": "not.is.null",
                "limit": str(limit),
            },
        )
        return self._map_rows(rows, mapper, table)

    async def count(self, source: SourceType, with_embeddings: bool = False) -> int:
        table = _SOURCES[source][0]
        params = {"select": "id"}
        if with_embeddings:
            params["embedding"] = "not.is.null"
        response = await self._request("HEAD", table, params, headers={"Prefer": "count=exact"})

        # Content-Range: "0-24/3120" or "*/0"
        content_range = response.headers.get("content-range", "")
        total = content_range.rpartition("/")[2]
        if not total.isdigit():
            raise DocumentStoreError(f"{table} count unavailable (Content-Range={content_range!r})")
        return int(total)

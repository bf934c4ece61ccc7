"""Evotor REST API client: the read-only data facade used by the tools."""

import asyncio
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from evotor_ai.config import DEFAULT_EVOTOR_BASE_URL, Settings
from evotor_ai.exceptions import (
    EmptyQueryError,
    EvotorAPIError,
    EvotorError,
    EvotorRequestError,
    MissingStoreIDError,
    MissingTokenError,
    RateLimitedError,
    UnauthorizedError,
)
from evotor_ai.models.evotor import DocumentFull, DocumentShort, Item, ListResponse, SalesMetrics, Store
from evotor_ai.utils.logging import get_logger
from evotor_ai.utils.rate_limit import RateLimiter

logger = get_logger(__name__)

API_MEDIA_TYPE = "application/vnd.evotor.v2+json"
ITEM_FIELDS = "id,name,price,code,barcodes,article_number,measure_name"


class PosDataSource(Protocol):
    """Interface of the point-of-sale data facade."""

    async def list_stores(self) -> list[Store]:
        """List every store visible to the token."""
        ...

    async def search_items(self, query: str, limit: int, store_id: str | None = None) -> list[Item]:
        """Find items whose name contains ``query`` (case-insensitive)."""
        ...

    async def search_documents(
        self,
        date_from: datetime | None,
        date_to: datetime | None,
        store_id: str | None = None,
        limit: int = 0,
        offset: int = 0,
    ) -> list[DocumentShort]:
        """List document summaries for a period."""
        ...

    async def get_document(self, doc_id: str, store_id: str | None = None) -> DocumentFull:
        """Fetch a single document with all positions."""
        ...

    async def get_sales_metrics(
        self,
        date_from: datetime | None,
        date_to: datetime | None,
        store_id: str | None = None,
        document_type: str | None = None,
    ) -> SalesMetrics:
        """Count documents and sum totals for a period."""
        ...


def _to_millis(value: datetime) -> str:
    return str(int(value.timestamp() * 1000))


def _period_params(date_from: datetime | None, date_to: datetime | None) -> dict[str, str]:
    params: dict[str, str] = {}
    if date_from is not None:
        params["since"] = _to_millis(date_from)
    if date_to is not None:
        params["until"] = _to_millis(date_to)
    return params


def _format_rfc3339(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.isoformat(timespec="seconds")


class EvotorClient:
    """Async Evotor API client with cursor pagination and one retry of transient errors."""

    def __init__(
        self,
        token: str,
        default_store_id: str = "",
        base_url: str = DEFAULT_EVOTOR_BASE_URL,
        timeout: float = 20.0,
        max_retries: int = 1,
        retry_wait: float = 1.0,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Evotor client.

        Args:
            token: Evotor API token (empty token makes every call fail with MissingTokenError)
            default_store_id: Store used when a call does not name one
            base_url: API root
            timeout: Per-request timeout in seconds
            max_retries: Extra attempts after a transport error or HTTP 429
            retry_wait: Base wait between attempts, in seconds
            rate_limiter: Per-store request throttle
            transport: Custom httpx transport (tests)
        """
        self.token = token.strip()
        self.default_store_id = default_store_id.strip()
        self.max_retries = max_retries
        self.retry_wait = retry_wait
        self.rate_limiter = rate_limiter or RateLimiter(requests_per_minute=120, name="evotor")

        headers = {"Accept": API_MEDIA_TYPE, "Content-Type": API_MEDIA_TYPE}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        self.http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "EvotorClient":
        return cls(
            token=settings.evotor_token,
            default_store_id=settings.evotor_store_id,
            base_url=settings.evotor_base_url,
            timeout=settings.timeout,
        )

    async def __aenter__(self) -> "EvotorClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    @property
    def has_token(self) -> bool:
        return bool(self.token)

    async def list_stores(self) -> list[Store]:
        self._require_token()

        stores: list[Store] = []
        async for page in self._paginate("/stores", Store, {}, rate_key="stores"):
            stores.extend(page)
        return stores

    async def search_items(self, query: str, limit: int, store_id: str | None = None) -> list[Item]:
        self._require_token()
        if not query.strip():
            raise EmptyQueryError()
        resolved_store_id = self._resolve_store_id(store_id)

        needle = query.strip().lower()
        matches: list[Item] = []
        path = f"/stores/{resolved_store_id}/products"
        async for page in self._paginate(path, Item, {"fields": ITEM_FIELDS}, rate_key=resolved_store_id):
            for item in page:
                if needle in item.name.lower():
                    matches.append(item)
                    if 0 < limit <= len(matches):
                        return matches[:limit]
        return matches

    async def search_documents(
        self,
        date_from: datetime | None,
        date_to: datetime | None,
        store_id: str | None = None,
        limit: int = 0,
        offset: int = 0,
    ) -> list[DocumentShort]:
        self._require_token()
        resolved_store_id = self._resolve_store_id(store_id)

        documents: list[DocumentShort] = []
        seen = 0
        path = f"/stores/{resolved_store_id}/documents"
        params = _period_params(date_from, date_to)
        async for page in self._paginate(path, DocumentShort, params, rate_key=resolved_store_id):
            for document in page:
                document.total = document.body.pick_total()
                seen += 1
                if seen <= offset:
                    continue
                documents.append(document)
                if 0 < limit <= len(documents):
                    return documents[:limit]
        return documents

    async def get_document(self, doc_id: str, store_id: str | None = None) -> DocumentFull:
        self._require_token()
        if not doc_id.strip():
            raise EvotorError("document id is required")
        resolved_store_id = self._resolve_store_id(store_id)

        payload = await self._get(
            f"/stores/{resolved_store_id}/documents/{doc_id.strip()}", None, rate_key=resolved_store_id
        )
        document = self._parse(DocumentFull, payload)
        document.total = document.body.pick_total()
        return document

    async def get_sales_metrics(
        self,
        date_from: datetime | None,
        date_to: datetime | None,
        store_id: str | None = None,
        document_type: str | None = None,
    ) -> SalesMetrics:
        self._require_token()
        resolved_store_id = self._resolve_store_id(store_id)

        wanted_type = (document_type or "").strip().upper()
        count = 0
        total_sum = 0.0
        document_types: dict[str, int] = {}

        path = f"/stores/{resolved_store_id}/documents"
        params = _period_params(date_from, date_to)
        async for page in self._paginate(path, DocumentShort, params, rate_key=resolved_store_id):
            for document in page:
                doc_type = document.type.strip() or "UNKNOWN"
                if wanted_type and wanted_type != "ALL" and doc_type.upper() != wanted_type:
                    continue
                count += 1
                total_sum += document.body.pick_total()
                document_types[doc_type] = document_types.get(doc_type, 0) + 1

        return SalesMetrics(
            count=count,
            total_sum=round(total_sum, 2),
            store_id=resolved_store_id,
            from_=_format_rfc3339(date_from),
            to=_format_rfc3339(date_to),
            document_types=document_types,
        )

    async def _paginate[T](
        self, path: str, model: type[T], params: dict[str, str], rate_key: str
    ) -> AsyncIterator[list[T]]:
        """Walk ``paging.next_cursor`` until exhausted.

        Period filters are only sent with the first page; the cursor carries them afterwards.
        """
        query = dict(params)
        page_model = ListResponse[model]  # type: ignore[valid-type]
        while True:
            payload = await self._get(path, query, rate_key=rate_key)
            page = self._parse(page_model, payload)
            yield page.items

            if not page.paging.next_cursor:
                break
            query = {key: value for key, value in params.items() if key not in ("since", "until")}
            query["cursor"] = page.paging.next_cursor

    async def _get(self, path: str, params: dict[str, str] | None, rate_key: str) -> Any:
        """GET with retry of transport errors and 429 answers."""
        for attempt in range(self.max_retries + 1):
            await self.rate_limiter.acquire(rate_key)
            logger.debug(f"GET {path} params={params} attempt={attempt + 1}")
            try:
                response = await self.http.get(path, params=params)
            except httpx.TransportError as e:
                if attempt < self.max_retries:
                    logger.warning(f"Evotor request to {path} failed ({e!r}), retrying")
                    await asyncio.sleep(self._retry_delay(attempt))
                    continue
                raise EvotorRequestError(f"evotor request: {e!r}") from e

            if response.status_code == httpx.codes.TOO_MANY_REQUESTS and attempt < self.max_retries:
                logger.warning(f"Evotor rate limited on {path}, retrying")
                await asyncio.sleep(self._retry_delay(attempt))
                continue

            if response.is_error:
                raise self._api_error(response)

            try:
                return response.json()
            except ValueError as e:
                raise EvotorAPIError(response.status_code, self._status(response), "invalid JSON body") from e

        raise EvotorRequestError(f"evotor request: failed after {self.max_retries + 1} attempts")

    def _retry_delay(self, attempt: int) -> float:
        return min(self.retry_wait * (2**attempt), self.retry_wait * 2)

    @staticmethod
    def _parse[T](model: type[T], payload: Any) -> T:
        try:
            return model.model_validate(payload)  # type: ignore[attr-defined]
        except ValidationError as e:
            raise EvotorAPIError(200, "200 OK", f"unexpected response shape: {e.error_count()} errors") from e

    @staticmethod
    def _status(response: httpx.Response) -> str:
        return f"{response.status_code} {response.reason_phrase}".strip()

    def _api_error(self, response: httpx.Response) -> EvotorAPIError:
        body = response.text.strip()
        status = self._status(response)
        if response.status_code in (httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN):
            return UnauthorizedError(response.status_code, status, body)
        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            return RateLimitedError(response.status_code, status, body)
        return EvotorAPIError(response.status_code, status, body)

    def _require_token(self) -> None:
        if not self.has_token:
            raise MissingTokenError()

    def _resolve_store_id(self, store_id: str | None) -> str:
        if store_id and store_id.strip():
            return store_id.strip()
        if not self.default_store_id:
            raise MissingStoreIDError()
        return self.default_store_id

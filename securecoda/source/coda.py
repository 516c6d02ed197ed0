"""CodaSource — DocumentSource backed by the Coda REST API v1.

Uses a single long-lived ``httpx.AsyncClient`` (created once, closed in
``close()``) with the bearer token attached as a default header. Every
transport error or non-2xx response is converted to ``SourceError`` carrying
the HTTP status and, when the API supplies one, its ``message`` field. A
listing item that cannot be decoded (no ``id``, not an object) is a
``SourceError`` too.

Endpoints:
    GET    /docs?limit=<doc_limit>
    GET    /docs/{docId}/tables
    GET    /docs/{docId}/tables/{tableId}/rows?limit=<row_limit>&useColumnNames=true
    DELETE /docs/{docId}/tables/{tableId}/rows/{rowId}

Only the first page of each listing is fetched.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

import httpx

from securecoda.config import SourceConfig
from securecoda.errors import SourceError
from securecoda.models.document import Document, Row, Table
from securecoda.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def create_http_client(config: SourceConfig) -> httpx.AsyncClient:
    """Create the shared httpx.AsyncClient for Coda API calls.

    Never instantiated per-request — one client per CodaSource.
    """
    return httpx.AsyncClient(
        base_url=config.base_url,
        headers={
            "Authorization": f"Bearer {config.api_token}",
            "Content-Type": "application/json",
        },
        timeout=httpx.Timeout(config.timeout_s),
    )


class CodaSource:
    """Coda API document source.

    Args:
        config: Source settings (base URL, token, page sizes, timeout).
        client: Optional pre-built client — tests pass one wired to
                ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: SourceConfig,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._client = client or create_http_client(config)

    async def list_documents(self) -> list[Document]:
        data = await self._request("GET", "/docs", params={"limit": self._config.doc_limit})
        items = data.get("items") or []
        logger.info("Fetched documents from Coda", count=len(items))
        return _decode(Document.from_api, items, "document")

    async def list_tables(self, doc_id: str) -> list[Table]:
        data = await self._request("GET", f"/docs/{doc_id}/tables")
        return _decode(Table.from_api, data.get("items") or [], "table")

    async def list_rows(self, doc_id: str, table_id: str) -> list[Row]:
        data = await self._request(
            "GET",
            f"/docs/{doc_id}/tables/{table_id}/rows",
            params={"limit": self._config.row_limit, "useColumnNames": "true"},
        )
        return _decode(Row.from_api, data.get("items") or [], "row")

    async def delete_row(self, doc_id: str, table_id: str, row_id: str) -> None:
        await self._request("DELETE", f"/docs/{doc_id}/tables/{table_id}/rows/{row_id}")
        logger.info("Deleted row from Coda", doc_id=doc_id, table_id=table_id, row_id=row_id)

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Coda HTTP client closed")

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
    ) -> dict:
        """Perform one API call and return the decoded JSON body ({} when empty).

        Raises:
            SourceError: On transport failure, non-2xx status, or a non-JSON body.
        """
        try:
            response = await self._client.request(method, path, params=params)
        except httpx.HTTPError as exc:
            logger.error(
                "Coda request failed",
                method=method,
                path=path,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise SourceError(f"{type(exc).__name__}: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.error(
                "Coda API error",
                method=method,
                path=path,
                status_code=response.status_code,
                error=message,
            )
            raise SourceError(
                f"Coda API {response.status_code}: {message}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            raise SourceError(
                f"Coda API returned invalid JSON for {method} {path}",
                status_code=response.status_code,
            ) from exc
        return body if isinstance(body, dict) else {}


def _error_message(response: httpx.Response) -> str:
    """Prefer the API's JSON ``message``; fall back to the reason phrase."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase or "request failed"


def _decode(factory: Callable[[dict], T], items: list, kind: str) -> list[T]:
    """Build model objects from listing items; a malformed item is a SourceError."""
    try:
        return [factory(item) for item in items]
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.error(
            "Malformed Coda payload",
            kind=kind,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        raise SourceError(f"Malformed {kind} item from Coda API: {type(exc).__name__}: {exc}") from exc

"""Unit tests for securecoda/source/coda.py — CodaSource over httpx.MockTransport.

No network: every request is answered by an in-process handler that records
what was sent.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import httpx
import pytest

from securecoda.config import SourceConfig
from securecoda.errors import SourceError
from securecoda.models.alert import AlertType
from securecoda.scanner.orchestrator import ScanOrchestrator
from securecoda.source.coda import CodaSource, create_http_client
from securecoda.source.protocol import DocumentSource
from securecoda.store import AlertStore

BASE_URL = "https://coda.test/apis/v1"
NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def _source(handler: Callable[[httpx.Request], httpx.Response]) -> tuple[CodaSource, list]:
    seen: list[httpx.Request] = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    config = SourceConfig(base_url=BASE_URL, api_token="tok-123")
    client = httpx.AsyncClient(
        base_url=BASE_URL,
        transport=httpx.MockTransport(recording_handler),
    )
    return CodaSource(config, client=client), seen


class TestHttpClient:
    async def test_bearer_header_and_base_url(self) -> None:
        client = create_http_client(SourceConfig(base_url=BASE_URL, api_token="tok-123"))
        try:
            assert client.headers["Authorization"] == "Bearer tok-123"
            assert str(client.base_url).rstrip("/") == BASE_URL
        finally:
            await client.aclose()

    def test_satisfies_protocol(self) -> None:
        source, _ = _source(lambda r: httpx.Response(200, json={}))
        assert isinstance(source, DocumentSource)


class TestListings:
    async def test_list_documents(self) -> None:
        source, seen = _source(
            lambda r: httpx.Response(
                200,
                json={
                    "items": [
                        {
                            "id": "d1",
                            "name": "Handbook",
                            "updatedAt": "2026-01-15T11:50:00.000Z",
                            "published": {"browserLink": "https://coda.io/@acme/handbook"},
                            "browserLink": "https://coda.io/d/_dd1",
                        },
                        {"id": "d2", "name": "Notes", "updatedAt": "2026-01-15T11:59:00Z"},
                    ]
                },
            )
        )
        docs = await source.list_documents()

        assert seen[0].method == "GET"
        assert seen[0].url.path == "/apis/v1/docs"
        assert seen[0].url.params["limit"] == "50"
        assert [d.id for d in docs] == ["d1", "d2"]
        assert docs[0].published is True
        assert docs[1].published is False
        assert docs[0].updated_at.minute == 50

    async def test_list_tables(self) -> None:
        source, seen = _source(
            lambda r: httpx.Response(200, json={"items": [{"id": "grid-1", "name": "People"}]})
        )
        tables = await source.list_tables("d1")
        assert seen[0].url.path == "/apis/v1/docs/d1/tables"
        assert tables[0].id == "grid-1"
        assert tables[0].rows is None

    async def test_list_rows_uses_column_names(self) -> None:
        source, seen = _source(
            lambda r: httpx.Response(
                200,
                json={"items": [{"id": "i-1", "values": {"Email": "a@b.io", "Age": 41}}]},
            )
        )
        rows = await source.list_rows("d1", "grid-1")

        params = seen[0].url.params
        assert seen[0].url.path == "/apis/v1/docs/d1/tables/grid-1/rows"
        assert params["useColumnNames"] == "true"
        assert params["limit"] == "100"
        assert rows[0].values == {"Email": "a@b.io", "Age": 41}

    async def test_missing_items_is_empty(self) -> None:
        source, _ = _source(lambda r: httpx.Response(200, json={}))
        assert await source.list_tables("d1") == []


class TestDeleteRow:
    async def test_delete_row(self) -> None:
        source, seen = _source(lambda r: httpx.Response(202, json={"id": "i-1"}))
        await source.delete_row("d1", "grid-1", "i-1")
        assert seen[0].method == "DELETE"
        assert seen[0].url.path == "/apis/v1/docs/d1/tables/grid-1/rows/i-1"

    async def test_delete_row_empty_body(self) -> None:
        source, _ = _source(lambda r: httpx.Response(204))
        await source.delete_row("d1", "grid-1", "i-1")


class TestErrors:
    async def test_api_error_message(self) -> None:
        source, _ = _source(
            lambda r: httpx.Response(401, json={"statusCode": 401, "message": "Unauthorized token"})
        )
        with pytest.raises(SourceError) as exc_info:
            await source.list_documents()
        assert exc_info.value.status_code == 401
        assert "Unauthorized token" in str(exc_info.value)

    async def test_api_error_without_json(self) -> None:
        source, _ = _source(lambda r: httpx.Response(503, text="upstream down"))
        with pytest.raises(SourceError) as exc_info:
            await source.list_rows("d1", "grid-1")
        assert exc_info.value.status_code == 503
        assert "503" in str(exc_info.value)

    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        source, _ = _source(handler)
        with pytest.raises(SourceError) as exc_info:
            await source.list_documents()
        assert exc_info.value.status_code is None
        assert "ConnectError" in str(exc_info.value)

    async def test_invalid_json(self) -> None:
        source, _ = _source(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(SourceError):
            await source.list_documents()

    async def test_row_without_id(self) -> None:
        source, _ = _source(lambda r: httpx.Response(200, json={"items": [{"values": {"c": "x"}}]}))
        with pytest.raises(SourceError) as exc_info:
            await source.list_rows("d1", "grid-1")
        assert "row" in str(exc_info.value)

    async def test_table_item_not_an_object(self) -> None:
        source, _ = _source(lambda r: httpx.Response(200, json={"items": ["grid-1"]}))
        with pytest.raises(SourceError):
            await source.list_tables("d1")

    async def test_document_without_id(self) -> None:
        source, _ = _source(lambda r: httpx.Response(200, json={"items": [{"name": "Nameless"}]}))
        with pytest.raises(SourceError):
            await source.list_documents()


class TestScanOverMalformedPayloads:
    async def test_bad_rows_do_not_abort_the_scan(self) -> None:
        """A row listing with an id-less item counts as zero rows; d2 is still scanned."""

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path == "/apis/v1/docs":
                return httpx.Response(
                    200,
                    json={
                        "items": [
                            {"id": "d1", "name": "One", "updatedAt": "2026-01-15T11:59:00Z"},
                            {
                                "id": "d2",
                                "name": "Two",
                                "updatedAt": "2026-01-15T11:59:00Z",
                                "published": {"browserLink": "https://coda.io/@acme/two"},
                            },
                        ]
                    },
                )
            if path == "/apis/v1/docs/d1/tables":
                return httpx.Response(200, json={"items": [{"id": "t1", "name": "T"}]})
            if path == "/apis/v1/docs/d1/tables/t1/rows":
                return httpx.Response(200, json={"items": [{"values": {"c": "x"}}]})
            if path == "/apis/v1/docs/d2/tables":
                return httpx.Response(200, json={"items": [{"name": "no id"}]})
            return httpx.Response(200, json={})

        source, _ = _source(handler)
        store = AlertStore(clock=lambda: NOW)
        orchestrator = ScanOrchestrator(
            source=source,
            store=store,
            stale_after_minutes=10,
            clock=lambda: NOW,
        )

        result = await orchestrator.run()

        assert result.documents_scanned == 2
        assert [e.doc_id for e in result.errors] == ["d2"]
        assert [(a.doc_id, a.type) for a in store.list()] == [("d2", AlertType.PUBLIC_DOCUMENT)]


class TestClose:
    async def test_close_closes_client(self) -> None:
        source, _ = _source(lambda r: httpx.Response(200, json={}))
        await source.close()
        assert source._client.is_closed

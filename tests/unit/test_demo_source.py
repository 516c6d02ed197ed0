"""Unit tests for securecoda/source/demo.py and the source factory.

Also runs a full demo-mode scan over the bundled workspace to check that each
demo document produces the alerts it was written to produce.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from securecoda.config import Config
from securecoda.errors import SourceError
from securecoda.models.alert import AlertType
from securecoda.scanner.orchestrator import ScanOrchestrator
from securecoda.source import create_document_source
from securecoda.source.coda import CodaSource
from securecoda.source.demo import DemoSource
from securecoda.store import AlertStore

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def demo() -> DemoSource:
    return DemoSource(clock=lambda: NOW)


class TestDemoSource:
    async def test_bundled_documents(self, demo: DemoSource) -> None:
        docs = await demo.list_documents()
        assert [d.id for d in docs] == [
            "doc-eng-handbook",
            "doc-2019-offsite",
            "doc-public-roadmap",
            "doc-infra-secrets",
        ]
        assert docs[0].updated_at == NOW - timedelta(minutes=2)
        assert docs[2].published is True

    async def test_tables_embed_rows(self, demo: DemoSource) -> None:
        tables = await demo.list_tables("doc-eng-handbook")
        assert [t.id for t in tables] == ["grid-oncall", "grid-services"]
        assert [r.id for r in tables[1].rows] == ["i-svc-1", "i-svc-2"]

    async def test_list_rows(self, demo: DemoSource) -> None:
        rows = await demo.list_rows("doc-infra-secrets", "grid-creds")
        assert len(rows) == 3

    async def test_unknown_document(self, demo: DemoSource) -> None:
        with pytest.raises(SourceError) as exc_info:
            await demo.list_tables("nope")
        assert exc_info.value.status_code == 404

    async def test_delete_row(self, demo: DemoSource) -> None:
        await demo.delete_row("doc-eng-handbook", "grid-services", "i-svc-1")
        tables = await demo.list_tables("doc-eng-handbook")
        assert [r.id for r in tables[1].rows] == ["i-svc-2"]

        with pytest.raises(SourceError):
            await demo.delete_row("doc-eng-handbook", "grid-services", "i-svc-1")

    async def test_instances_do_not_share_state(self) -> None:
        first = DemoSource(clock=lambda: NOW)
        await first.delete_row("doc-infra-secrets", "grid-creds", "i-cred-1")
        second = DemoSource(clock=lambda: NOW)
        assert len(await second.list_rows("doc-infra-secrets", "grid-creds")) == 3

    async def test_inline_data(self) -> None:
        source = DemoSource(
            data={"documents": [{"id": "x", "name": "X", "updated_minutes_ago": 0, "tables": []}]},
            clock=lambda: NOW,
        )
        (doc,) = await source.list_documents()
        assert doc.id == "x"
        assert doc.updated_at == NOW

    async def test_missing_timestamp_left_unset(self) -> None:
        source = DemoSource(
            data={"documents": [{"id": "x", "name": "X", "tables": []}]},
            clock=lambda: NOW,
        )
        (doc,) = await source.list_documents()
        assert doc.updated_at is None

        store = AlertStore(clock=lambda: NOW)
        orchestrator = ScanOrchestrator(
            source=source,
            store=store,
            stale_after_minutes=0,
            demo_mode=True,
            clock=lambda: NOW,
        )
        result = await orchestrator.run()
        assert result.alerts_created == 0


class TestDemoScan:
    async def test_demo_workspace_alerts(self, demo: DemoSource) -> None:
        store = AlertStore(clock=lambda: NOW)
        orchestrator = ScanOrchestrator(
            source=demo,
            store=store,
            stale_after_minutes=10,
            demo_mode=True,
            clock=lambda: NOW,
        )
        result = await orchestrator.run()

        assert result.documents_scanned == 4
        assert result.errors == []

        alerts = store.list()
        by_doc: dict[str, set] = {}
        for alert in alerts:
            by_doc.setdefault(alert.doc_id, set()).add(alert.type)

        assert by_doc["doc-2019-offsite"] == {AlertType.UNUSED_DOCUMENT}
        assert by_doc["doc-public-roadmap"] == {
            AlertType.UNUSED_DOCUMENT,
            AlertType.PUBLIC_DOCUMENT,
        }
        assert by_doc["doc-eng-handbook"] == {AlertType.SENSITIVE_DATA_TABLE}
        assert by_doc["doc-infra-secrets"] == {AlertType.SENSITIVE_DATA_TABLE}

        secret_types = {
            a.metadata["sensitiveType"]
            for a in alerts
            if a.doc_id == "doc-infra-secrets"
        }
        assert {"password", "awsKey", "creditCard"} <= secret_types


class TestFactory:
    def test_demo_when_no_token(self) -> None:
        assert isinstance(create_document_source(Config.defaults()), DemoSource)

    async def test_live_when_token(self) -> None:
        config = Config.defaults()
        config.source.api_token = "tok"
        source = create_document_source(config)
        try:
            assert isinstance(source, CodaSource)
        finally:
            await source.close()

    def test_forced_demo(self) -> None:
        config = Config.defaults()
        config.source.api_token = "tok"
        config.source.use_demo_data = True
        assert isinstance(create_document_source(config), DemoSource)

"""DocumentSource Protocol — the boundary to the external document API.

Layout:
    protocol.py — DocumentSource Protocol
    coda.py     — CodaSource (Coda REST API v1 over httpx.AsyncClient)
    demo.py     — DemoSource (bundled YAML fixture, in-memory deletes)
    factory.py  — create_document_source() — selection by config.demo_mode

Failure contract (enforced by the callers, not the implementations):
    list_documents() failure → fatal to the scan
    list_tables()    failure → recorded per document, scan continues
    list_rows()      failure → treated as zero rows
    delete_row()     failure → reported as a remediation failure message

Every implementation raises ``SourceError`` for any failure.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from securecoda.models.document import Document, Row, Table


@runtime_checkable
class DocumentSource(Protocol):
    """Pluggable document-source interface.

    All methods are async; implementations must not block the event loop so
    that API requests continue to be served while a scan awaits I/O.
    """

    async def list_documents(self) -> list[Document]:
        ...

    async def list_tables(self, doc_id: str) -> list[Table]:
        ...

    async def list_rows(self, doc_id: str, table_id: str) -> list[Row]:
        ...

    async def delete_row(self, doc_id: str, table_id: str, row_id: str) -> None:
        ...

    async def close(self) -> None:
        """Release connections. Called during graceful shutdown."""
        ...

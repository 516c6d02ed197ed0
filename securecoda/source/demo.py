"""DemoSource — DocumentSource serving a bundled YAML workspace.

Used when no Coda API token is configured (or demo data is forced). Tables are
returned with their rows embedded, so the orchestrator never calls
``list_rows()`` in demo mode. ``delete_row()`` mutates the in-memory fixture,
which lets the full remediation flow be exercised without a Coda account.
"""

from __future__ import annotations

import copy
import pathlib
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import yaml

from securecoda.errors import SourceError
from securecoda.models.document import Document, Row, Table
from securecoda.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DEMO_DATA_PATH = pathlib.Path(__file__).parent / "demo_data.yaml"


class DemoSource:
    """In-memory document source loaded from a YAML fixture.

    Fixture shape::

        documents:
          - id, name, updated_minutes_ago, published, browserLink
            tables:
              - id, name
                rows: [{id, values: {column: value}}]

    Args:
        path:  Fixture path (defaults to the bundled demo_data.yaml).
        data:  Already-parsed fixture dict; takes precedence over ``path``.
        clock: Returns the current UTC time (``updatedAt`` is relative to it).
               An entry without ``updated_minutes_ago`` has no ``updatedAt``.
    """

    def __init__(
        self,
        path: Optional[pathlib.Path] = None,
        data: Optional[dict] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        if data is None:
            fixture_path = path or DEFAULT_DEMO_DATA_PATH
            with open(fixture_path) as fh:
                data = yaml.safe_load(fh) or {}
        self._docs: list[dict] = copy.deepcopy(data.get("documents") or [])
        self._clock = clock
        logger.info("Demo data loaded", documents=len(self._docs))

    async def list_documents(self) -> list[Document]:
        now = self._clock()
        documents = []
        for raw in self._docs:
            minutes_ago = raw.get("updated_minutes_ago")
            documents.append(
                Document(
                    id=str(raw["id"]),
                    name=raw.get("name") or str(raw["id"]),
                    updated_at=(
                        now - timedelta(minutes=minutes_ago) if minutes_ago is not None else None
                    ),
                    published=bool(raw.get("published")),
                    browser_link=raw.get("browserLink"),
                )
            )
        return documents

    async def list_tables(self, doc_id: str) -> list[Table]:
        raw_doc = self._find_doc(doc_id)
        return [Table.from_api(t) for t in raw_doc.get("tables") or []]

    async def list_rows(self, doc_id: str, table_id: str) -> list[Row]:
        raw_table = self._find_table(doc_id, table_id)
        return [Row.from_api(r) for r in raw_table.get("rows") or []]

    async def delete_row(self, doc_id: str, table_id: str, row_id: str) -> None:
        raw_table = self._find_table(doc_id, table_id)
        rows = raw_table.get("rows") or []
        remaining = [r for r in rows if str(r.get("id")) != row_id]
        if len(remaining) == len(rows):
            raise SourceError(f"Row not found: {row_id}", status_code=404)
        raw_table["rows"] = remaining
        logger.info("Deleted demo row", doc_id=doc_id, table_id=table_id, row_id=row_id)

    async def close(self) -> None:
        """Nothing to release."""

    # ── Lookup helpers ────────────────────────────────────────────────────────

    def _find_doc(self, doc_id: str) -> dict:
        for raw in self._docs:
            if str(raw.get("id")) == doc_id:
                return raw
        raise SourceError(f"Document not found: {doc_id}", status_code=404)

    def _find_table(self, doc_id: str, table_id: str) -> dict:
        for raw_table in self._find_doc(doc_id).get("tables") or []:
            if str(raw_table.get("id")) == table_id:
                return raw_table
        raise SourceError(f"Table not found: {table_id}", status_code=404)

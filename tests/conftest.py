"""Root test configuration for SecureCoda.

Isolates every test from the developer's environment: the config env vars are
cleared and the default config search paths are emptied, so load_config() only
ever sees files a test writes itself.

Also provides:
  - FakeSource     — in-memory DocumentSource with per-call failure injection
  - StepClock      — deterministic clock that advances one second per call
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from securecoda.errors import SourceError
from securecoda.models.document import Document, Row, Table

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

_CONFIG_ENV_VARS = (
    "PORT",
    "CODA_API_TOKEN",
    "USE_DEMO_DATA",
    "SCAN_INTERVAL_MINUTES",
    "SECURECODA_CONFIG",
)


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Strip config env vars and the home/cwd config search paths."""
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("securecoda.config.DEFAULT_CONFIG_PATHS", [])


# ─── Clock ────────────────────────────────────────────────────────────────────


class StepClock:
    """Returns ``start``, ``start + step``, ``start + 2*step``, … on successive calls."""

    def __init__(self, start: datetime = NOW, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current


@pytest.fixture
def step_clock() -> StepClock:
    return StepClock()


# ─── Fake document source ─────────────────────────────────────────────────────


class FakeSource:
    """In-memory DocumentSource.

    Populate ``documents`` / ``tables`` / ``rows`` directly. Any ``*_error``
    attribute set to an exception is raised from the corresponding call.
    """

    def __init__(self) -> None:
        self.documents: list[Document] = []
        self.tables: dict[str, list[Table]] = {}
        self.rows: dict[tuple[str, str], list[Row]] = {}
        self.documents_error: Optional[Exception] = None
        self.table_errors: dict[str, Exception] = {}
        self.row_errors: dict[tuple[str, str], Exception] = {}
        self.delete_error: Optional[Exception] = None
        self.deleted: list[tuple[str, str, str]] = []
        self.list_rows_calls: list[tuple[str, str]] = []
        self.closed = False

    async def list_documents(self) -> list[Document]:
        if self.documents_error is not None:
            raise self.documents_error
        return list(self.documents)

    async def list_tables(self, doc_id: str) -> list[Table]:
        if doc_id in self.table_errors:
            raise self.table_errors[doc_id]
        return list(self.tables.get(doc_id, []))

    async def list_rows(self, doc_id: str, table_id: str) -> list[Row]:
        self.list_rows_calls.append((doc_id, table_id))
        if (doc_id, table_id) in self.row_errors:
            raise self.row_errors[(doc_id, table_id)]
        return list(self.rows.get((doc_id, table_id), []))

    async def delete_row(self, doc_id: str, table_id: str, row_id: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        rows = self.rows.get((doc_id, table_id), [])
        if not any(r.id == row_id for r in rows):
            raise SourceError(f"Row not found: {row_id}", status_code=404)
        self.rows[(doc_id, table_id)] = [r for r in rows if r.id != row_id]
        self.deleted.append((doc_id, table_id, row_id))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()

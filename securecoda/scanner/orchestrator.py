"""Scan orchestrator — walks documents → tables → rows and raises alerts.

``ScanOrchestrator.run()`` is the single entry point for both the scheduler
and the manual ``POST /api/scan`` trigger.

Pipeline per run:
  1. list_documents()            FATAL     → FatalScanError, no partial result
  2. store.replace_documents()
  3. per document, in fetch order:
       a. staleness rule         → unused_document  (low)
       b. exposure rule          → public_document  (high)
       c. list_tables()          RECOVERABLE → ScanResult.errors, next document
          per table: rows        DEGRADED    → failure treated as zero rows
          per row, per column:   evaluate() → sensitive_data_table (finding severity)

Concurrency:
  Runs are serialized by an asyncio.Lock. A trigger that arrives while a run
  holds the lock is rejected immediately with ScanInProgressError — it is not
  queued. All collaborator calls are awaited, so API requests keep being served
  while a run waits on I/O.
"""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from securecoda.errors import FatalScanError, ScanInProgressError, SourceError
from securecoda.models.alert import AlertDraft, AlertType, ResourceType, Severity
from securecoda.models.document import Document, Row, Table, format_timestamp
from securecoda.models.scan import ScanError, ScanResult
from securecoda.scanner.matcher import evaluate
from securecoda.source.protocol import DocumentSource
from securecoda.store.alert_store import AlertStore
from securecoda.utils.logger import PerformanceLogger, clear_scan_run, get_logger, set_scan_run

logger = get_logger(__name__)


class ScanOrchestrator:
    """Runs security scans against a document source and feeds the alert store.

    Args:
        source:              Document source collaborator.
        store:               Alert store receiving alerts and the document snapshot.
        stale_after_minutes: A document untouched for at least this long is "unused".
        demo_mode:           Use rows embedded in Table objects instead of list_rows().
        clock:               Returns the current UTC time.
    """

    def __init__(
        self,
        source: DocumentSource,
        store: AlertStore,
        stale_after_minutes: int,
        demo_mode: bool = False,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._source = source
        self._store = store
        self._stale_after = timedelta(minutes=stale_after_minutes)
        self._demo_mode = demo_mode
        self._clock = clock
        self._lock = asyncio.Lock()
        self._run_counter = itertools.count(1)
        self.last_scan_at: Optional[datetime] = None
        self.last_result: Optional[ScanResult] = None

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    async def run(self, trigger: str = "manual") -> ScanResult:
        """Run one full scan.

        Raises:
            ScanInProgressError: Another scan currently holds the run lock.
            FatalScanError:      The document listing failed.
        """
        if self._lock.locked():
            raise ScanInProgressError("A scan is already in progress")

        async with self._lock:
            run_number = next(self._run_counter)
            set_scan_run(run_number)
            try:
                logger.info(
                    "Starting security scan",
                    trigger=trigger,
                    mode="demo" if self._demo_mode else "live",
                )
                with PerformanceLogger("security_scan", logger):
                    result = await self._scan()
                self.last_scan_at = self._clock()
                self.last_result = result
                logger.info(
                    "scan_complete",
                    documents_scanned=result.documents_scanned,
                    alerts_created=result.alerts_created,
                    errors=len(result.errors),
                )
                return result
            finally:
                clear_scan_run()

    # ── Pipeline ──────────────────────────────────────────────────────────────

    async def _scan(self) -> ScanResult:
        try:
            documents = await self._source.list_documents()
        except SourceError as exc:
            raise FatalScanError(f"Failed to fetch documents: {exc}") from exc

        self._store.replace_documents(documents)

        result = ScanResult()
        now = self._clock()
        for doc in documents:
            result.documents_scanned += 1
            self._check_staleness(doc, now, result)
            self._check_exposure(doc, result)
            await self._scan_content(doc, result)
        return result

    def _check_staleness(self, doc: Document, now: datetime, result: ScanResult) -> None:
        if doc.updated_at is None:
            return
        elapsed = now - doc.updated_at
        if elapsed < self._stale_after:
            return
        minutes = int(elapsed.total_seconds() // 60)
        self._create(
            result,
            AlertDraft(
                type=AlertType.UNUSED_DOCUMENT,
                severity=Severity.LOW,
                title=f"Unused Document: {doc.name}",
                description=f"Document has not been modified in {minutes} minutes",
                doc_id=doc.id,
                doc_name=doc.name,
                resource_id=doc.id,
                resource_type=ResourceType.DOCUMENT,
                metadata={
                    "lastUpdated": format_timestamp(doc.updated_at),
                    "minutesSinceUpdate": minutes,
                },
            ),
        )

    def _check_exposure(self, doc: Document, result: ScanResult) -> None:
        if not doc.published:
            return
        self._create(
            result,
            AlertDraft(
                type=AlertType.PUBLIC_DOCUMENT,
                severity=Severity.HIGH,
                title=f"Publicly Published: {doc.name}",
                description="Document is publicly accessible - potential data exposure risk",
                doc_id=doc.id,
                doc_name=doc.name,
                resource_id=doc.id,
                resource_type=ResourceType.DOCUMENT,
                metadata={"publishedUrl": doc.browser_link},
            ),
        )

    async def _scan_content(self, doc: Document, result: ScanResult) -> None:
        try:
            tables = await self._source.list_tables(doc.id)
        except SourceError as exc:
            logger.warning("Table listing failed — skipping document", doc_id=doc.id, error=str(exc))
            result.errors.append(ScanError(doc_id=doc.id, error=str(exc)))
            return

        for table in tables:
            for row in await self._rows_for(doc, table):
                self._scan_row(doc, table, row, result)

    async def _rows_for(self, doc: Document, table: Table) -> list[Row]:
        if self._demo_mode:
            return table.rows or []
        try:
            return await self._source.list_rows(doc.id, table.id)
        except SourceError as exc:
            # Degrades to zero rows; not recorded in ScanResult.errors.
            logger.warning(
                "Row listing failed — treating table as empty",
                doc_id=doc.id,
                table_id=table.id,
                error=str(exc),
            )
            return []

    def _scan_row(self, doc: Document, table: Table, row: Row, result: ScanResult) -> None:
        for column, value in row.values.items():
            if value is None:
                continue
            for finding in evaluate(str(value)):
                self._create(
                    result,
                    AlertDraft(
                        type=AlertType.SENSITIVE_DATA_TABLE,
                        severity=finding.severity,
                        title=f"{finding.display_name} found in: {table.name}",
                        description=f'Detected {finding.count} instance(s) in column "{column}"',
                        doc_id=doc.id,
                        doc_name=doc.name,
                        resource_id=row.id,
                        resource_type=ResourceType.ROW,
                        metadata={
                            "tableId": table.id,
                            "tableName": table.name,
                            "columnName": column,
                            "sensitiveType": finding.detector_type,
                            "count": finding.count,
                            "samples": list(finding.samples),
                        },
                    ),
                )

    def _create(self, result: ScanResult, draft: AlertDraft) -> None:
        _, created = self._store.create_if_absent(draft)
        if created:
            result.alerts_created += 1

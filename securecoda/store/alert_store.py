"""In-memory alert store with dedup-aware creation and forward-only status changes.

The AlertStore is the only owner of alert and document-snapshot state. All
reads return snapshots (copies); all writes go through the methods below, each
of which runs under a single store-wide lock so that scans, remediation and
read endpoints can interleave safely.

Dedup:
    At most one OPEN alert exists per ``(type, docId, resourceId)``. The open
    alerts are indexed by that key, so ``create_if_absent()`` is a dict lookup.
    An alert leaves the index the moment it leaves OPEN, which is what allows a
    later scan to raise a fresh alert for the same resource.
"""

from __future__ import annotations

import dataclasses
import threading
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from securecoda.errors import (
    AlertNotFoundError,
    DocumentNotFoundError,
    InvalidStatusError,
    InvalidTransitionError,
)
from securecoda.models.alert import TERMINAL_STATUSES, Alert, AlertDraft, AlertStatus
from securecoda.models.document import Document
from securecoda.utils.logger import get_logger

logger = get_logger(__name__)

DedupKey = tuple[str, str, str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _snapshot(alert: Alert) -> Alert:
    return dataclasses.replace(alert, metadata=dict(alert.metadata))


class AlertStore:
    """Owns alerts and the retained document snapshot for the process lifetime.

    Args:
        clock: Returns the current UTC time. Injected by tests to control
               ``createdAt`` / ``updatedAt`` ordering.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._alerts: dict[int, Alert] = {}
        self._open_index: dict[DedupKey, int] = {}
        self._next_id = 1
        self._documents: list[Document] = []

    # ── Alerts: writes ────────────────────────────────────────────────────────

    def create_if_absent(self, draft: AlertDraft) -> tuple[Alert, bool]:
        """Create an alert unless an OPEN alert with the same dedup key exists.

        Returns:
            ``(alert, True)`` for a newly created alert.
            ``(existing, False)`` when an open alert already covers the key —
            the existing alert is returned unchanged (no timestamp bump).
        """
        with self._lock:
            existing_id = self._open_index.get(draft.dedup_key)
            if existing_id is not None:
                return _snapshot(self._alerts[existing_id]), False

            now = self._clock()
            alert = Alert(
                id=self._next_id,
                type=draft.type,
                severity=draft.severity,
                title=draft.title,
                description=draft.description,
                doc_id=draft.doc_id,
                doc_name=draft.doc_name,
                resource_id=draft.resource_id,
                resource_type=draft.resource_type,
                status=AlertStatus.OPEN,
                created_at=now,
                updated_at=now,
                metadata=dict(draft.metadata),
            )
            self._next_id += 1
            self._alerts[alert.id] = alert
            self._open_index[alert.dedup_key] = alert.id

        logger.info(
            "alert_created",
            alert_id=alert.id,
            alert_type=alert.type.value,
            severity=alert.severity.value,
            doc_id=alert.doc_id,
            resource_id=alert.resource_id,
            title=alert.title,
        )
        return _snapshot(alert), True

    def set_status(self, alert_id: int, new_status: Union[AlertStatus, str]) -> Alert:
        """Move an alert to ``new_status`` and refresh ``updatedAt``.

        Only OPEN alerts can change status. Setting an alert to the status it
        already has (open to open included) is a no-op: the alert is returned
        unchanged and ``updatedAt`` is NOT bumped.

        Raises:
            AlertNotFoundError:     No alert has ``alert_id``.
            InvalidStatusError:     ``new_status`` is not a recognized status.
            InvalidTransitionError: The alert is terminal and ``new_status`` differs.
        """
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                raise AlertNotFoundError(alert_id)

            try:
                status = AlertStatus(new_status)
            except ValueError:
                raise InvalidStatusError(new_status) from None

            if status == alert.status:
                return _snapshot(alert)
            if alert.status in TERMINAL_STATUSES:
                raise InvalidTransitionError(alert_id, alert.status.value, status.value)

            alert.status = status
            alert.updated_at = self._clock()
            self._open_index.pop(alert.dedup_key, None)
            result = _snapshot(alert)

        logger.info("alert_status_updated", alert_id=alert_id, status=status.value)
        return result

    # ── Alerts: reads ─────────────────────────────────────────────────────────

    def get(self, alert_id: int) -> Alert:
        """Raises AlertNotFoundError for an unknown id."""
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                raise AlertNotFoundError(alert_id)
            return _snapshot(alert)

    def list(self) -> list[Alert]:
        """All alerts, highest severity first, then newest ``createdAt`` first.

        ``id`` (descending) breaks exact timestamp ties so the order is total.
        """
        with self._lock:
            alerts = [_snapshot(a) for a in self._alerts.values()]
        return sorted(
            alerts,
            key=lambda a: (a.severity.rank, a.created_at, a.id),
            reverse=True,
        )

    def stats(self) -> dict:
        """Counts by status, type and severity over every alert (single pass).

        Only values that occur appear as keys.
        """
        by_status: dict[str, int] = {}
        by_type: dict[str, int] = {}
        by_severity: dict[str, int] = {}
        with self._lock:
            total = len(self._alerts)
            for alert in self._alerts.values():
                by_status[alert.status.value] = by_status.get(alert.status.value, 0) + 1
                by_type[alert.type.value] = by_type.get(alert.type.value, 0) + 1
                by_severity[alert.severity.value] = by_severity.get(alert.severity.value, 0) + 1
        return {
            "total": total,
            "byStatus": by_status,
            "byType": by_type,
            "bySeverity": by_severity,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)

    # ── Documents ─────────────────────────────────────────────────────────────

    def replace_documents(self, documents: list[Document]) -> None:
        """Replace the retained document snapshot wholesale (no merge)."""
        with self._lock:
            self._documents = list(documents)

    def documents(self) -> list[Document]:
        with self._lock:
            return list(self._documents)

    def get_document(self, doc_id: str) -> Document:
        """Raises DocumentNotFoundError if ``doc_id`` is not in the current snapshot."""
        with self._lock:
            found: Optional[Document] = next(
                (d for d in self._documents if d.id == doc_id), None
            )
        if found is None:
            raise DocumentNotFoundError(doc_id)
        return found

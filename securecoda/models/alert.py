"""Alert entity, its draft form, and the enums that classify it.

An Alert is created only through ``AlertStore.create_if_absent()`` and mutated
only through ``AlertStore.set_status()``. Callers receive Alert objects for
reading and serialization; they must never assign to alert fields directly.

Status lifecycle::

    open ──► acknowledged
      ├────► ignored
      └────► remediated

``open`` is the only non-terminal state. A fresh alert for the same dedup key
may be created once the previous one has left ``open``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from securecoda.models.document import format_timestamp


# ─── Enums ────────────────────────────────────────────────────────────────────


class AlertType(str, Enum):
    UNUSED_DOCUMENT = "unused_document"
    PUBLIC_DOCUMENT = "public_document"
    SENSITIVE_DATA_TABLE = "sensitive_data_table"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Sort rank: critical (4) > high (3) > medium (2) > low (1)."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class AlertStatus(str, Enum):
    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    REMEDIATED = "remediated"
    IGNORED = "ignored"


class ResourceType(str, Enum):
    DOCUMENT = "document"
    ROW = "row"


#: Statuses reachable from OPEN. All three are terminal.
TERMINAL_STATUSES: frozenset[AlertStatus] = frozenset({
    AlertStatus.ACKNOWLEDGED,
    AlertStatus.REMEDIATED,
    AlertStatus.IGNORED,
})


# ─── AlertDraft ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AlertDraft:
    """Everything needed to create an alert, minus the store-assigned fields
    (id, status, createdAt, updatedAt)."""

    type: AlertType
    severity: Severity
    title: str
    description: str
    doc_id: str
    doc_name: str
    resource_id: str
    resource_type: ResourceType
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.type.value, self.doc_id, self.resource_id)


# ─── Alert ────────────────────────────────────────────────────────────────────


@dataclass
class Alert:
    """A detected condition with severity, status and resource linkage.

    Fields:
        id:            Monotonic, process-unique integer; never reused.
        severity:      Fixed at creation from the triggering rule or detector.
        resource_id:   Document id for document alerts, row id for row alerts.
        metadata:      Rule-specific facts (e.g. tableId/columnName for rows).
                       Sensitive samples stored here are always redacted.
        created_at:    Immutable creation time (UTC).
        updated_at:    Refreshed on every status mutation.
    """

    id: int
    type: AlertType
    severity: Severity
    title: str
    description: str
    doc_id: str
    doc_name: str
    resource_id: str
    resource_type: ResourceType
    status: AlertStatus
    created_at: datetime
    updated_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.type.value, self.doc_id, self.resource_id)

    def to_dict(self) -> dict[str, Any]:
        """Wire form consumed by the dashboard (camelCase keys, ISO timestamps)."""
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "docId": self.doc_id,
            "docName": self.doc_name,
            "resourceId": self.resource_id,
            "resourceType": self.resource_type.value,
            "status": self.status.value,
            "metadata": dict(self.metadata),
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

"""Scan and remediation result contracts.

  Finding           — one detector hit produced by the pattern matcher
  ScanError         — a recoverable per-document failure recorded during a scan
  ScanResult        — summary returned by ScanOrchestrator.run()
  RemediationResult — {success, message} returned by every remediation call
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from securecoda.models.alert import Severity


@dataclass(frozen=True)
class Finding:
    """Sensitive-data match summary for one detector over one text value.

    ``samples`` holds at most two REDACTED matches — never the raw text.
    """

    detector_type: str
    display_name: str
    severity: Severity
    count: int
    samples: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.detector_type,
            "name": self.display_name,
            "severity": self.severity.value,
            "count": self.count,
            "samples": list(self.samples),
        }


@dataclass(frozen=True)
class ScanError:
    doc_id: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"docId": self.doc_id, "error": self.error}


@dataclass
class ScanResult:
    documents_scanned: int = 0
    alerts_created: int = 0
    errors: list[ScanError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "documentsScanned": self.documents_scanned,
            "alertsCreated": self.alerts_created,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass(frozen=True)
class RemediationResult:
    success: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message}

"""Exception hierarchy for SecureCoda.

Domain code raises these; the HTTP layer (securecoda/api/routes.py) maps them
to status codes. Recoverable conditions (per-document table failures, failed
row deletes, unknown remediation actions) are NOT exceptions at the API
boundary — they surface as ScanResult.errors or RemediationResult(success=False).
"""

from __future__ import annotations

from typing import Optional


class SecureCodaError(Exception):
    """Base class for all SecureCoda errors."""


class SourceError(SecureCodaError):
    """A document-source call failed (transport, auth, or non-2xx response).

    Attributes:
        status_code: HTTP status from the upstream API, or None for transport errors.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FatalScanError(SecureCodaError):
    """The document listing failed — the scan is aborted with no partial result."""


class ScanInProgressError(SecureCodaError):
    """A scan was triggered while another scan still holds the run lock."""


class AlertNotFoundError(SecureCodaError):
    def __init__(self, alert_id: int) -> None:
        super().__init__(f"Alert not found: {alert_id}")
        self.alert_id = alert_id


class DocumentNotFoundError(SecureCodaError):
    def __init__(self, doc_id: str) -> None:
        super().__init__(f"Document not found: {doc_id}")
        self.doc_id = doc_id


class InvalidStatusError(SecureCodaError):
    """The supplied status is not one of open/acknowledged/remediated/ignored."""

    def __init__(self, status: object) -> None:
        super().__init__(f"Invalid status: {status!r}")
        self.status = status


class InvalidTransitionError(SecureCodaError):
    """The status change would move an alert backwards out of a terminal state."""

    def __init__(self, alert_id: int, current: str, requested: str) -> None:
        super().__init__(
            f"Alert {alert_id} is already {current}; cannot change status to {requested}"
        )
        self.alert_id = alert_id
        self.current = current
        self.requested = requested

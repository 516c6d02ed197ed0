"""Sensitive-data detector registry.

All patterns are pre-compiled at module load time using google-re2.
NO pattern compilation happens per-scan, per-call, or lazily.

The registry is a fixed, ordered list — ``evaluate()`` walks it front to back
and reports findings in this order. Adding a detector means appending a
``DetectorEntry`` here; there are no detector-specific branches elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import re2  # google-re2 — linear-time matching on untrusted cell contents

from securecoda.models.alert import Severity


@dataclass(frozen=True)
class DetectorEntry:
    """A single compiled detector with metadata.

    Fields:
        key:          Stable identifier stored in alert metadata as ``sensitiveType``.
        display_name: Human-readable name used in alert titles.
        severity:     Severity assigned to alerts raised by this detector.
        pattern:      Pre-compiled re2 pattern object.
    """

    key: str
    display_name: str
    severity: Severity
    pattern: Any  # re2._Regexp — pre-compiled at module load


# ===========================================================================
# DETECTORS
# COMPILED AT MODULE LOAD — evaluation order is list order
# ===========================================================================

DETECTORS: list[DetectorEntry] = [
    DetectorEntry(
        key="creditCard",
        display_name="Credit Card Number",
        severity=Severity.HIGH,
        pattern=re2.compile(r'\b(?:\d{4}[-\s]?){3}\d{4}\b'),
    ),
    DetectorEntry(
        key="email",
        display_name="Email Address",
        severity=Severity.MEDIUM,
        pattern=re2.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b'),
    ),
    DetectorEntry(
        key="phone",
        display_name="Phone Number",
        severity=Severity.MEDIUM,
        pattern=re2.compile(r'\b(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b'),
    ),
    DetectorEntry(
        key="password",
        display_name="Password",
        severity=Severity.CRITICAL,
        pattern=re2.compile(r'(?i)\b(?:password|passwd|pwd)\s*[:=]\s*\S+'),
    ),
    DetectorEntry(
        key="apiKey",
        display_name="API Key/Token",
        severity=Severity.CRITICAL,
        pattern=re2.compile(
            r'(?i)\b(?:api[_-]?key|apikey|api[_-]?token|access[_-]?token|secret[_-]?key)'
            r'\s*[:=]\s*[\'"]?[A-Za-z0-9_\-]{10,}[\'"]?'
        ),
    ),
    DetectorEntry(
        key="awsKey",
        display_name="AWS Access Key",
        severity=Severity.CRITICAL,
        pattern=re2.compile(r'\bAKIA[0-9A-Z]{16}\b'),
    ),
    DetectorEntry(
        key="privateKey",
        display_name="Private Key",
        severity=Severity.CRITICAL,
        pattern=re2.compile(r'-----BEGIN\s+(?:RSA\s+)?PRIVATE\s+KEY-----'),
    ),
]

#: Detector lookup by key (same objects as DETECTORS).
DETECTORS_BY_KEY: dict[str, DetectorEntry] = {d.key: d for d in DETECTORS}

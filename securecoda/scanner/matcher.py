"""Pattern matcher — evaluates free text against the detector registry.

Provides:
  - ``evaluate()``: run every detector over a text value; one Finding per hit detector.
  - ``redact_sample()``: the single sanitization step applied to matched text.

INVARIANT: raw matched text never leaves this module. Findings carry only
redacted samples, and those are what end up in alert metadata and logs.
"""

from __future__ import annotations

from typing import Any

from securecoda.constants import (
    MAX_FINDING_SAMPLES,
    REDACTION_MASK,
    REDACTION_PREFIX_CHARS,
    REDACTION_SUFFIX_CHARS,
)
from securecoda.models.scan import Finding
from securecoda.scanner.definitions import DETECTORS


def redact_sample(match: str) -> str:
    """Render a matched string as first 4 chars + ``****`` + last 2 chars.

    ``"password: hunter2"`` → ``"pass****r2"``. Applied to every sample,
    regardless of detector or length.
    """
    return match[:REDACTION_PREFIX_CHARS] + REDACTION_MASK + match[-REDACTION_SUFFIX_CHARS:]


def evaluate(text: Any) -> list[Finding]:
    """Evaluate ``text`` against every registered detector, in registry order.

    Non-string or empty input yields an empty list (never an error).

    For each detector that matches at least once, one Finding is emitted with
    ``count`` = number of non-overlapping matches and ``samples`` = the first
    two matches, redacted.

    Pure function: no I/O, no logging, no state.
    """
    if not isinstance(text, str) or not text:
        return []

    findings: list[Finding] = []
    for detector in DETECTORS:
        matches = [m.group(0) for m in detector.pattern.finditer(text)]
        if not matches:
            continue
        findings.append(
            Finding(
                detector_type=detector.key,
                display_name=detector.display_name,
                severity=detector.severity,
                count=len(matches),
                samples=tuple(redact_sample(m) for m in matches[:MAX_FINDING_SAMPLES]),
            )
        )
    return findings

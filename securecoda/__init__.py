"""SecureCoda — security posture scanner for Coda documents.

Periodically walks a Coda workspace (documents → tables → rows), raises
deduplicated alerts for stale documents, public exposure, and sensitive data
found in table cells, and exposes an operator API to acknowledge, ignore, or
remediate them.
"""

__version__ = "1.0.0"

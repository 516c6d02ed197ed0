"""Shared constants for SecureCoda.

Numeric defaults and fixed tokens used across modules are defined here.
No magic numbers in other modules — import from here.
"""

# ─── Scan Scheduling ──────────────────────────────────────────────────────────

# Period between scheduled scans, in minutes. Ticks are aligned to wall-clock
# minutes divisible by this value (cron "*/N" semantics).
DEFAULT_SCAN_INTERVAL_MINUTES: int = 5

# Largest interval a cron "*/N" minute field can express.
MAX_SCAN_INTERVAL_MINUTES: int = 59

# A document whose last modification is at least this old raises an
# unused_document alert.
DEFAULT_STALE_AFTER_MINUTES: int = 10

# ─── Coda API ─────────────────────────────────────────────────────────────────

CODA_BASE_URL: str = "https://coda.io/apis/v1"

# Page sizes requested from the Coda API (one page is fetched per call).
CODA_DOC_LIMIT: int = 50
CODA_ROW_LIMIT: int = 100

# Total per-request timeout for Coda calls, in seconds.
CODA_TIMEOUT_S: float = 30.0

# ─── Redaction ────────────────────────────────────────────────────────────────

# Sensitive samples are rendered as first 4 chars + mask + last 2 chars.
REDACTION_PREFIX_CHARS: int = 4
REDACTION_SUFFIX_CHARS: int = 2
REDACTION_MASK: str = "****"

# Number of redacted samples kept per finding.
MAX_FINDING_SAMPLES: int = 2

# ─── API Pagination ───────────────────────────────────────────────────────────

DEFAULT_PAGE_LIMIT: int = 10
MAX_PAGE_LIMIT: int = 100

# ─── HTTP Server ──────────────────────────────────────────────────────────────

DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 3001

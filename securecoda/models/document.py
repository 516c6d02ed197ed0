"""Document, Table and Row snapshots fetched from the document source.

These are plain data carriers. A Document list is retained by the AlertStore
between scans (replaced wholesale on every scan); Tables and Rows are fetched
per scan and dropped when the scan completes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware UTC datetime.

    Returns None for missing or unparseable values — callers skip time-based
    rules for such documents rather than failing the scan.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render a datetime as ISO-8601 UTC with a ``Z`` suffix (None passes through)."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class Document:
    """One externally hosted document snapshot."""

    id: str
    name: str
    updated_at: Optional[datetime] = None
    published: bool = False
    browser_link: Optional[str] = None

    @classmethod
    def from_api(cls, raw: dict) -> "Document":
        """Build a Document from a Coda ``/docs`` item.

        Coda reports publication as an object (absent when unpublished), so any
        truthy ``published`` value counts as public.
        """
        return cls(
            id=str(raw["id"]),
            name=raw.get("name") or str(raw["id"]),
            updated_at=parse_timestamp(raw.get("updatedAt")),
            published=bool(raw.get("published")),
            browser_link=raw.get("browserLink"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "updatedAt": format_timestamp(self.updated_at),
            "published": self.published,
            "browserLink": self.browser_link,
        }


@dataclass
class Row:
    """A table row: ``values`` maps column name → cell value."""

    id: str
    values: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, raw: dict) -> "Row":
        return cls(id=str(raw["id"]), values=dict(raw.get("values") or {}))


@dataclass
class Table:
    """A table inside a document.

    ``rows`` is only populated for embedded demo data; live tables leave it
    None and their rows are fetched separately.
    """

    id: str
    name: str
    rows: Optional[list[Row]] = None

    @classmethod
    def from_api(cls, raw: dict) -> "Table":
        embedded = raw.get("rows")
        return cls(
            id=str(raw["id"]),
            name=raw.get("name") or str(raw["id"]),
            rows=[Row.from_api(r) for r in embedded] if embedded is not None else None,
        )

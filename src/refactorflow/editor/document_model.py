"""Dataclasses representing editor document state with row/column addressing."""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.ranges import Point, Range


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


def _hash_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


@dataclass(slots=True)
class DocumentVersion:
    """Lightweight metadata describing a document snapshot."""

    document_id: str
    version_id: int
    content_hash: str


@dataclass(slots=True)
class DocumentMetadata:
    """Metadata describing a loaded document."""

    path: Optional[Path] = None
    grammar: str = "text.plain"
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass(slots=True)
class DocumentState:
    """In-memory text of one document plus version bookkeeping."""

    text: str = ""
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    selection: Range = field(default_factory=lambda: Range.at(Point.zero()))
    dirty: bool = False
    document_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    version_id: int = 1
    content_hash: str = field(default_factory=str)

    def __post_init__(self) -> None:
        if not self.content_hash:
            self.content_hash = _hash_text(self.text)

    @property
    def path(self) -> Path | None:
        return self.metadata.path

    def update_text(self, new_text: str) -> None:
        """Update the document text and mark it dirty."""

        self.text = new_text
        self.dirty = True
        self.metadata.updated_at = _utcnow()
        self.version_id += 1
        self.content_hash = _hash_text(new_text)

    def mark_clean(self) -> None:
        self.dirty = False

    # ------------------------------------------------------------------
    # Row/column access
    # ------------------------------------------------------------------
    def line_count(self) -> int:
        return self.text.count("\n") + 1

    def offset_at(self, point: Point) -> int:
        """Return the absolute offset of ``point``.

        Raises:
            IndexError: ``point`` lies outside the document.
        """

        lines = self.text.split("\n")
        if point.row >= len(lines):
            raise IndexError(f"Row {point.row} is past the end of the document")
        if point.column > len(lines[point.row]):
            raise IndexError(f"Column {point.column} is past the end of row {point.row}")
        offset = sum(len(line) + 1 for line in lines[: point.row])
        return offset + point.column

    def text_in_range(self, range: Range) -> str:
        start = self.offset_at(range.start)
        end = self.offset_at(range.end)
        return self.text[start:end]

    def replace_range(self, range: Range, replacement: str) -> None:
        """Replace the text covered by ``range`` and bump the version."""

        start = self.offset_at(range.start)
        end = self.offset_at(range.end)
        self.update_text(self.text[:start] + replacement + self.text[end:])

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def snapshot(self) -> Dict[str, Any]:
        """Return a serializable snapshot of the document."""

        payload: Dict[str, Any] = {
            "text": self.text,
            "selection": self.selection.to_list(),
            "grammar": self.metadata.grammar,
            "dirty": self.dirty,
            "document_id": self.document_id,
            "version_id": self.version_id,
            "content_hash": self.content_hash,
        }
        if self.metadata.path:
            payload["path"] = str(self.metadata.path)
        return payload

    def version_info(self) -> DocumentVersion:
        return DocumentVersion(
            document_id=self.document_id,
            version_id=self.version_id,
            content_hash=self.content_hash,
        )

    def version_signature(self) -> str:
        info = self.version_info()
        return f"{info.document_id}:{info.version_id}:{info.content_hash}"

"""Workspace of open documents; the text buffer the edit applier writes into."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Protocol

from ..core.ranges import Point, Range
from ..refactor.types import EditorContext
from ..utils.file_io import FileSignature, changed_on_disk, detect_grammar, load_text, save_text
from .document_model import DocumentMetadata, DocumentState

__all__ = ["DocumentWorkspace", "ActiveDocumentListener"]

LOGGER = logging.getLogger(__name__)


class ActiveDocumentListener(Protocol):
    """Callback signature fired whenever the active document changes."""

    def __call__(self, document: Optional[DocumentState]) -> None:  # pragma: no cover - protocol
        ...


def _normalize_path(path: Path | str | None) -> Path | None:
    if path is None:
        return None
    if isinstance(path, Path):
        return path.expanduser().resolve()
    return Path(path).expanduser().resolve()


class DocumentWorkspace:
    """Open documents keyed by path, plus the active document and its selection.

    Implements the text buffer contract used by
    :class:`~refactorflow.refactor.edit_applier.EditApplier`
    (:meth:`read_range` / :meth:`write_range`). Files that are not open are
    loaded from disk on first access when ``load_unopened_files`` is set.
    """

    def __init__(self, *, load_unopened_files: bool = True) -> None:
        self._documents: Dict[str, DocumentState] = {}
        self._by_path: Dict[Path, str] = {}
        self._signatures: Dict[str, FileSignature] = {}
        self._order: List[str] = []
        self._active_id: str | None = None
        self._listeners: List[ActiveDocumentListener] = []
        self._load_unopened_files = load_unopened_files

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------
    def open_document(
        self,
        path: Path | str | None = None,
        *,
        text: str | None = None,
        grammar: str | None = None,
        make_active: bool = True,
    ) -> DocumentState:
        """Open ``path`` (or an untitled buffer) and return its document.

        ``text`` overrides the on-disk content; without it an existing file is
        read from disk and a missing one starts empty.
        """

        resolved = _normalize_path(path)
        if resolved is not None and resolved in self._by_path:
            document = self._documents[self._by_path[resolved]]
            if make_active:
                self.set_active(document.document_id)
            return document

        signature: FileSignature | None = None
        if text is None:
            if resolved is not None and resolved.exists():
                loaded = load_text(resolved)
                text, signature = loaded.text, loaded.signature
            else:
                text = ""
        metadata = DocumentMetadata(path=resolved, grammar=grammar or detect_grammar(resolved))
        document = DocumentState(text=text, metadata=metadata)
        self._documents[document.document_id] = document
        self._order.append(document.document_id)
        if resolved is not None:
            self._by_path[resolved] = document.document_id
        if signature is not None:
            self._signatures[document.document_id] = signature
        LOGGER.debug("Opened document %s (%s)", resolved or "untitled", document.document_id)
        if make_active:
            self.set_active(document.document_id)
        return document

    def close_document(self, document_id: str) -> DocumentState:
        """Close and return the specified document."""

        if document_id not in self._documents:
            raise KeyError(f"Unknown document_id: {document_id}")
        document = self._documents.pop(document_id)
        self._signatures.pop(document_id, None)
        if document.path is not None:
            self._by_path.pop(document.path, None)
        index = self._order.index(document_id)
        self._order.pop(index)
        if self._active_id == document_id:
            if self._order:
                self._active_id = self._order[min(index, len(self._order) - 1)]
            else:
                self._active_id = None
            self._notify_active_listeners()
        return document

    def set_active(self, document_id: str) -> DocumentState:
        """Mark the provided document as active and notify listeners."""

        if document_id not in self._documents:
            raise KeyError(f"Unknown document_id: {document_id}")
        if self._active_id != document_id:
            self._active_id = document_id
            self._notify_active_listeners()
        return self._documents[document_id]

    def set_selection(self, selection: Range | Point, document_id: str | None = None) -> None:
        """Move the selection (or cursor, when given a point) of a document."""

        target = self._documents.get(document_id) if document_id else self.active_document
        if target is None:
            raise RuntimeError("No document available for selection")
        if isinstance(selection, Point):
            selection = Range.at(selection)
        target.selection = Range.from_value(selection)

    def add_active_listener(self, listener: ActiveDocumentListener) -> None:
        self._listeners.append(listener)

    def remove_active_listener(self, listener: ActiveDocumentListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:  # pragma: no cover - defensive
            pass

    def _notify_active_listeners(self) -> None:
        document = self.active_document
        for listener in list(self._listeners):
            listener(document)

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    @property
    def active_document(self) -> DocumentState | None:
        if self._active_id is None:
            return None
        return self._documents.get(self._active_id)

    def iter_documents(self) -> Iterator[DocumentState]:
        for document_id in self._order:
            yield self._documents[document_id]

    def document_count(self) -> int:
        return len(self._order)

    def find_document(self, path: Path | str) -> DocumentState | None:
        """Return the open document for ``path`` without touching the disk."""

        normalized = _normalize_path(path)
        if normalized is None:
            return None
        document_id = self._by_path.get(normalized)
        return self._documents.get(document_id) if document_id else None

    def get_document(self, path: Path | str) -> DocumentState | None:
        """Return the document for ``path``, loading it from disk if permitted."""

        document = self.find_document(path)
        if document is not None:
            return document
        if not self._load_unopened_files:
            return None
        normalized = _normalize_path(path)
        if normalized is None or not normalized.is_file():
            return None
        try:
            return self.open_document(normalized, make_active=False)
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Unable to load %s for editing: %s", normalized, exc)
            return None

    def editor_context(self) -> EditorContext | None:
        """Return the :class:`EditorContext` for the active document, if any."""

        document = self.active_document
        if document is None:
            return None
        path = str(document.path) if document.path is not None else None
        return EditorContext(path=path, selection=document.selection, grammar=document.metadata.grammar)

    # ------------------------------------------------------------------
    # Text buffer contract
    # ------------------------------------------------------------------
    def read_range(self, path: str, range: Range) -> str | None:
        """Return the text at ``range`` in ``path``, or ``None`` if unreadable."""

        document = self.get_document(path)
        if document is None:
            return None
        try:
            return document.text_in_range(range)
        except IndexError:
            return None

    def write_range(self, path: str, range: Range, text: str) -> bool:
        """Replace ``range`` in ``path`` with ``text``; ``False`` when impossible."""

        document = self.get_document(path)
        if document is None:
            return False
        try:
            document.replace_range(range, text)
        except IndexError as exc:
            LOGGER.warning("Rejected write to %s: %s", path, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def save(self, document_id: str, *, force: bool = False) -> bool:
        """Write a document back to its path.

        Returns ``False`` (and leaves the file alone) for untitled documents
        and, unless ``force`` is set, when the file changed on disk since it
        was loaded.
        """

        document = self._documents.get(document_id)
        if document is None:
            raise KeyError(f"Unknown document_id: {document_id}")
        if document.path is None:
            return False
        signature = self._signatures.get(document_id)
        if signature is not None and not force and changed_on_disk(signature):
            LOGGER.warning("Refusing to overwrite %s: file changed on disk", document.path)
            return False
        self._signatures[document_id] = save_text(document.path, document.text)
        document.mark_clean()
        LOGGER.debug("Saved %s (version %d)", document.path, document.version_id)
        return True

    def save_paths(self, paths: Iterable[str]) -> dict[str, bool]:
        """Save every dirty open document among ``paths``; returns ``path -> saved``."""

        results: dict[str, bool] = {}
        for path in paths:
            document = self.find_document(path)
            if document is None or not document.dirty:
                continue
            results[path] = self.save(document.document_id)
        return results

"""Apply provider-computed edits to live documents.

Each :class:`~refactorflow.refactor.types.TextEdit` carries the text it
expects to replace. Edits whose expectation no longer holds are skipped and
reported as conflicts; nothing here raises for a stale edit. Files are
independent: a conflict in one file never undoes edits already written to
another.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterator, Mapping, Protocol, Sequence

from ..core.ranges import Range
from .errors import EditConflict
from .types import TextEdit

__all__ = [
    "TextBuffer",
    "FileEditStatus",
    "FileEditResult",
    "ApplyReport",
    "EditApplier",
]

LOGGER = logging.getLogger(__name__)


class TextBuffer(Protocol):
    """Live file contents addressed by row/column ranges."""

    def read_range(self, path: str, range: Range) -> str | None:  # pragma: no cover - protocol
        """Return the text at ``range`` or ``None`` when it cannot be read."""
        ...

    def write_range(self, path: str, range: Range, text: str) -> bool:  # pragma: no cover - protocol
        """Replace ``range`` with ``text``; return ``False`` when rejected."""
        ...


class FileEditStatus(str, enum.Enum):
    APPLIED = "applied"
    CONFLICT = "conflict"
    MISSING = "missing"
    WRITE_FAILED = "write_failed"


@dataclass(slots=True)
class FileEditResult:
    """Outcome of applying one file's edits."""

    path: str
    status: FileEditStatus
    applied: tuple[TextEdit, ...] = ()
    conflicts: tuple[EditConflict, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status is FileEditStatus.APPLIED


@dataclass(slots=True)
class ApplyReport:
    """Per-file outcomes of one :meth:`EditApplier.apply` call."""

    results: dict[str, FileEditResult] = field(default_factory=dict)

    def __getitem__(self, path: str) -> FileEditResult:
        return self.results[path]

    def __iter__(self) -> Iterator[FileEditResult]:
        return iter(self.results.values())

    def __len__(self) -> int:
        return len(self.results)

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.results.values())

    @property
    def applied_count(self) -> int:
        return sum(len(result.applied) for result in self.results.values())

    def paths_with_status(self, status: FileEditStatus) -> tuple[str, ...]:
        return tuple(path for path, result in self.results.items() if result.status is status)

    def conflicts(self) -> tuple[EditConflict, ...]:
        return tuple(conflict for result in self.results.values() for conflict in result.conflicts)


class EditApplier:
    """Reconciles edits against a :class:`TextBuffer` and writes the ones that still fit.

    For each file the edits are checked in the given (document) order against
    the current text. Matching edits are then written back to front so an
    earlier replacement never shifts the range of a later one. Ranges are
    assumed sorted and non-overlapping.
    """

    def __init__(self, buffer: TextBuffer) -> None:
        self._buffer = buffer

    def apply(self, edits_by_file: Mapping[str, Sequence[TextEdit]]) -> ApplyReport:
        report = ApplyReport()
        for path, edits in edits_by_file.items():
            result = self.apply_file(str(path), edits)
            report.results[result.path] = result
        LOGGER.debug(
            "Applied %d edit(s) across %d file(s); conflicts in %s",
            report.applied_count,
            len(report),
            report.paths_with_status(FileEditStatus.CONFLICT) or "none",
        )
        return report

    def apply_file(self, path: str, edits: Sequence[TextEdit]) -> FileEditResult:
        accepted: list[TextEdit] = []
        conflicts: list[EditConflict] = []
        unreadable = 0

        for edit in edits:
            current = self._buffer.read_range(path, edit.old_range)
            if current is None:
                unreadable += 1
            if current == edit.old_text:
                accepted.append(edit)
                continue
            conflicts.append(
                EditConflict(
                    path=path,
                    expected=edit.old_text,
                    actual=current,
                    details={"range": edit.old_range.to_list()},
                )
            )
            LOGGER.warning(
                "Skipping edit in %s at %s: expected %r, found %r",
                path,
                edit.old_range.to_list(),
                edit.old_text,
                current,
            )

        if edits and unreadable == len(edits):
            return FileEditResult(path=path, status=FileEditStatus.MISSING, conflicts=tuple(conflicts))

        applied: list[TextEdit] = []
        write_failed = False
        for edit in sorted(accepted, key=lambda item: item.old_range.start, reverse=True):
            if self._buffer.write_range(path, edit.old_range, edit.new_text):
                applied.append(edit)
            else:
                write_failed = True
                LOGGER.warning("Text buffer rejected edit in %s at %s", path, edit.old_range.to_list())
        applied.reverse()

        if write_failed:
            status = FileEditStatus.WRITE_FAILED
        elif conflicts:
            status = FileEditStatus.CONFLICT
        else:
            status = FileEditStatus.APPLIED
        return FileEditResult(
            path=path,
            status=status,
            applied=tuple(applied),
            conflicts=tuple(conflicts),
        )

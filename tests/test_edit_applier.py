"""Unit tests for conflict-checked edit application."""

from __future__ import annotations

from refactorflow.core.ranges import Range
from refactorflow.editor.document_model import DocumentState
from refactorflow.refactor.edit_applier import EditApplier, FileEditStatus
from refactorflow.refactor.errors import EditConflict
from refactorflow.refactor.types import TextEdit


class MemoryBuffer:
    """Text buffer backed by plain documents keyed by path."""

    def __init__(self, **files: str) -> None:
        self.documents = {path: DocumentState(text=text) for path, text in files.items()}
        self.reject_writes = False
        self.writes: list[tuple[str, Range, str]] = []

    def read_range(self, path: str, range: Range) -> str | None:
        document = self.documents.get(path)
        if document is None:
            return None
        try:
            return document.text_in_range(range)
        except IndexError:
            return None

    def write_range(self, path: str, range: Range, text: str) -> bool:
        if self.reject_writes:
            return False
        self.writes.append((path, range, text))
        self.documents[path].replace_range(range, text)
        return True

    def text(self, path: str) -> str:
        return self.documents[path].text


def foo_to_bar(old_text: str = "foo") -> list[TextEdit]:
    return [
        TextEdit(Range((0, 0), (0, 3)), old_text, "bar"),
        TextEdit(Range((2, 0), (2, 3)), "foo", "bar"),
    ]


def test_apply_replaces_every_matching_edit() -> None:
    buffer = MemoryBuffer(a="foo\nbar\nfoo\n")

    report = EditApplier(buffer).apply({"a": foo_to_bar()})

    assert buffer.text("a") == "bar\nbar\nbar\n"
    assert report.ok
    assert report["a"].status is FileEditStatus.APPLIED
    assert report.applied_count == 2


def test_edits_are_written_back_to_front() -> None:
    buffer = MemoryBuffer(a="foo foo\n")
    edits = [
        TextEdit(Range((0, 0), (0, 3)), "foo", "longer"),
        TextEdit(Range((0, 4), (0, 7)), "foo", "x"),
    ]

    EditApplier(buffer).apply({"a": edits})

    assert buffer.text("a") == "longer x\n"
    assert [write[1].start.column for write in buffer.writes] == [4, 0]


def test_multiline_edit() -> None:
    buffer = MemoryBuffer(a="one\ntwo\nthree\n")
    edit = TextEdit(Range((0, 1), (2, 2)), "ne\ntwo\nth", "")

    EditApplier(buffer).apply({"a": [edit]})

    assert buffer.text("a") == "oree\n"


def test_mismatched_edit_is_skipped_and_reported() -> None:
    buffer = MemoryBuffer(a="foo\nbar\nfoo\n")

    report = EditApplier(buffer).apply({"a": foo_to_bar(old_text="foz")})

    result = report["a"]
    assert buffer.text("a") == "foo\nbar\nbar\n"
    assert result.status is FileEditStatus.CONFLICT
    assert len(result.applied) == 1
    assert len(result.conflicts) == 1
    conflict = result.conflicts[0]
    assert isinstance(conflict, EditConflict)
    assert (conflict.expected, conflict.actual) == ("foz", "foo")
    assert conflict.details["range"] == [[0, 0], [0, 3]]


def test_conflict_in_one_file_does_not_undo_another() -> None:
    buffer = MemoryBuffer(a="foo\nbar\nfoo\n", b="foo\nbar\nfoo\n")

    report = EditApplier(buffer).apply({"a": foo_to_bar(), "b": foo_to_bar(old_text="nope")})

    assert buffer.text("a") == "bar\nbar\nbar\n"
    assert report.paths_with_status(FileEditStatus.APPLIED) == ("a",)
    assert report.paths_with_status(FileEditStatus.CONFLICT) == ("b",)
    assert not report.ok
    assert len(report.conflicts()) == 1


def test_unknown_file_is_missing() -> None:
    buffer = MemoryBuffer()

    report = EditApplier(buffer).apply({"ghost": foo_to_bar()})

    assert report["ghost"].status is FileEditStatus.MISSING
    assert report["ghost"].applied == ()
    assert buffer.writes == []


def test_out_of_bounds_range_is_a_conflict() -> None:
    buffer = MemoryBuffer(a="foo\n")
    edits = [TextEdit(Range((0, 0), (0, 3)), "foo", "bar"), TextEdit(Range((9, 0), (9, 3)), "foo", "bar")]

    report = EditApplier(buffer).apply({"a": edits})

    assert buffer.text("a") == "bar\n"
    assert report["a"].status is FileEditStatus.CONFLICT
    assert report["a"].conflicts[0].actual is None


def test_rejected_write_is_reported() -> None:
    buffer = MemoryBuffer(a="foo\nbar\nfoo\n")
    buffer.reject_writes = True

    report = EditApplier(buffer).apply({"a": foo_to_bar()})

    assert report["a"].status is FileEditStatus.WRITE_FAILED
    assert buffer.text("a") == "foo\nbar\nfoo\n"


def test_empty_edit_list_is_applied() -> None:
    report = EditApplier(MemoryBuffer(a="x")).apply({"a": []})
    assert report["a"].status is FileEditStatus.APPLIED

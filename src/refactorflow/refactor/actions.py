"""Actions accepted by the refactor coordinator.

Actions are plain tagged values. Constructor helpers mirror the names used by
UI code (``open_workflow("generic")``, ``close()``) and are the preferred way to
build them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, Sequence, Union

from ..core.ranges import Point
from .errors import RefactorError
from .types import (
    AvailableRefactoring,
    EditorContext,
    EditResponse,
    RefactorRequest,
)

if TYPE_CHECKING:  # pragma: no cover
    from .providers import RefactorProvider


@dataclass(slots=True, frozen=True)
class OpenWorkflow:
    ui_kind: str
    type: Literal["open"] = field(default="open", init=False)


@dataclass(slots=True, frozen=True)
class GotRefactorings:
    """Provider enumeration finished for ``editor``."""

    editor: EditorContext | None
    provider: RefactorProvider | None
    refactorings: tuple[AvailableRefactoring, ...]
    type: Literal["got-refactorings"] = field(default="got-refactorings", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "refactorings", tuple(self.refactorings))


@dataclass(slots=True, frozen=True)
class PickedRefactor:
    refactoring: AvailableRefactoring
    type: Literal["picked-refactor"] = field(default="picked-refactor", init=False)


@dataclass(slots=True, frozen=True)
class DisplayRename:
    """Jump straight to the rename phase for a symbol the caller already knows."""

    editor: EditorContext
    provider: RefactorProvider
    selected_text: str
    mount_point: Point
    symbol_point: Point
    type: Literal["display-rename"] = field(default="display-rename", init=False)


@dataclass(slots=True, frozen=True)
class ExecuteRefactor:
    provider: RefactorProvider
    request: RefactorRequest
    type: Literal["execute"] = field(default="execute", init=False)


@dataclass(slots=True, frozen=True)
class GotEdits:
    response: EditResponse
    type: Literal["got-edits"] = field(default="got-edits", init=False)


@dataclass(slots=True, frozen=True)
class CloseWorkflow:
    type: Literal["close"] = field(default="close", init=False)


@dataclass(slots=True, frozen=True)
class ErrorOccurred:
    error: RefactorError
    type: Literal["error"] = field(default="error", init=False)


Action = Union[
    OpenWorkflow,
    GotRefactorings,
    PickedRefactor,
    DisplayRename,
    ExecuteRefactor,
    GotEdits,
    CloseWorkflow,
    ErrorOccurred,
]

# Actions that start or abandon a workflow and therefore invalidate any
# in-flight provider work.
EPOCH_ACTIONS: tuple[type, ...] = (OpenWorkflow, CloseWorkflow, DisplayRename)


def open_workflow(ui_kind: str) -> OpenWorkflow:
    return OpenWorkflow(ui_kind=ui_kind)


def got_refactorings(
    editor: EditorContext | None,
    provider: RefactorProvider | None,
    refactorings: Sequence[AvailableRefactoring],
) -> GotRefactorings:
    return GotRefactorings(editor=editor, provider=provider, refactorings=tuple(refactorings))


def picked_refactor(refactoring: AvailableRefactoring) -> PickedRefactor:
    return PickedRefactor(refactoring=refactoring)


def display_rename(
    editor: EditorContext,
    provider: RefactorProvider,
    selected_text: str,
    mount_point: Point,
    symbol_point: Point,
) -> DisplayRename:
    return DisplayRename(
        editor=editor,
        provider=provider,
        selected_text=selected_text,
        mount_point=Point.from_value(mount_point),
        symbol_point=Point.from_value(symbol_point),
    )


def execute(provider: RefactorProvider, request: RefactorRequest) -> ExecuteRefactor:
    return ExecuteRefactor(provider=provider, request=request)


def got_edits(response: EditResponse) -> GotEdits:
    return GotEdits(response=response)


def close() -> CloseWorkflow:
    return CloseWorkflow()


def error_occurred(error: RefactorError) -> ErrorOccurred:
    return ErrorOccurred(error=error)


__all__ = [
    "Action",
    "OpenWorkflow",
    "GotRefactorings",
    "PickedRefactor",
    "DisplayRename",
    "ExecuteRefactor",
    "GotEdits",
    "CloseWorkflow",
    "ErrorOccurred",
    "EPOCH_ACTIONS",
    "open_workflow",
    "got_refactorings",
    "picked_refactor",
    "display_rename",
    "execute",
    "got_edits",
    "close",
    "error_occurred",
]

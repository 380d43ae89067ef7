"""Value objects describing refactorings, requests, responses and workflow state.

Everything in this module is an immutable dataclass. The workflow state is a
closed union: :data:`WorkflowState` is either :class:`Closed` or
:class:`Open`, and an open workflow carries exactly one :data:`Phase`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Literal, Mapping, Union

from ..core.ranges import Point, Range

if TYPE_CHECKING:  # pragma: no cover
    from .providers import RefactorProvider

ArgumentType = Literal["string", "boolean", "enum"]


def _freeze_mapping(value: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(value or {}))


# -----------------------------------------------------------------------------
# Editor context
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class EditorContext:
    """The editor a workflow acts on.

    Attributes:
        path: File backing the editor, or ``None`` for an unsaved buffer.
        selection: Current selection; an empty range marks the cursor.
        grammar: Scope name used to match providers (e.g. ``"source.python"``).
    """

    path: str | None
    selection: Range = field(default_factory=lambda: Range.at(Point.zero()))
    grammar: str = "text.plain"

    def __post_init__(self) -> None:
        if isinstance(self.path, Path):
            object.__setattr__(self, "path", str(self.path))
        object.__setattr__(self, "selection", Range.from_value(self.selection))

    @property
    def cursor(self) -> Point:
        return self.selection.start

    @property
    def is_saved(self) -> bool:
        return self.path is not None


# -----------------------------------------------------------------------------
# Available refactorings
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ArgumentSpec:
    """Describes one provider-defined argument of a freeform refactoring."""

    name: str
    description: str = ""
    type: ArgumentType = "string"
    default: Any = None
    options: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class RenameRefactoring:
    """A simple rename of the symbol covering ``symbol_range``."""

    symbol_range: Range
    symbol_text: str = ""
    kind: Literal["rename"] = field(default="rename", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbol_range", Range.from_value(self.symbol_range))


@dataclass(slots=True, frozen=True)
class FreeformRefactoring:
    """A named, parameterized transformation offered by a provider."""

    id: str
    name: str
    description: str
    range: Range
    arguments: tuple[ArgumentSpec, ...] = ()
    disabled: bool = False
    kind: Literal["freeform"] = field(default="freeform", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "range", Range.from_value(self.range))
        object.__setattr__(self, "arguments", tuple(self.arguments))

    def default_arguments(self) -> dict[str, Any]:
        """Return ``name -> default`` for every declared argument."""

        return {spec.name: spec.default for spec in self.arguments}


AvailableRefactoring = Union[RenameRefactoring, FreeformRefactoring]


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class RenameRequest:
    editor: EditorContext
    position: Point
    new_name: str
    kind: Literal["rename"] = field(default="rename", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", Point.from_value(self.position))


@dataclass(slots=True, frozen=True)
class FreeformRequest:
    """Fully specified input for a freeform refactoring.

    ``original_range`` is the selection the user started from; ``range`` is the
    span the chosen refactoring applies to.
    """

    editor: EditorContext
    id: str
    range: Range
    original_range: Range
    arguments: Mapping[str, Any] = field(default_factory=dict)
    kind: Literal["freeform"] = field(default="freeform", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "range", Range.from_value(self.range))
        object.__setattr__(self, "original_range", Range.from_value(self.original_range))
        object.__setattr__(self, "arguments", _freeze_mapping(self.arguments))


RefactorRequest = Union[RenameRequest, FreeformRequest]


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class TextEdit:
    """Replacement of ``old_text`` at ``old_range`` with ``new_text``.

    ``old_text`` is a precondition: the edit only applies when the live
    document still holds exactly that text at ``old_range``.
    """

    old_range: Range
    old_text: str
    new_text: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "old_range", Range.from_value(self.old_range))


def freeze_edits(edits: Mapping[Any, Any]) -> Mapping[str, tuple[TextEdit, ...]]:
    """Normalize ``path -> edits`` into an immutable mapping of tuples."""

    frozen: dict[str, tuple[TextEdit, ...]] = {}
    for path, entries in edits.items():
        frozen[str(path)] = tuple(
            entry if isinstance(entry, TextEdit) else TextEdit(**entry) for entry in entries
        )
    return MappingProxyType(frozen)


@dataclass(slots=True, frozen=True)
class EditResponse:
    """Provider result carrying the edits to apply, keyed by file path."""

    edits: Mapping[str, tuple[TextEdit, ...]]
    type: Literal["edit"] = field(default="edit", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "edits", freeze_edits(self.edits))

    @property
    def edit_count(self) -> int:
        return sum(len(entries) for entries in self.edits.values())


@dataclass(slots=True, frozen=True)
class ProgressResponse:
    """Intermediate progress emitted while a provider computes edits."""

    message: str
    value: int = 0
    max: int = 0
    type: Literal["progress"] = field(default="progress", init=False)


RefactorResponse = Union[EditResponse, ProgressResponse]


# -----------------------------------------------------------------------------
# Workflow state
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class GetRefactorings:
    """Waiting for the provider to list available refactorings."""

    type: Literal["get-refactorings"] = field(default="get-refactorings", init=False)


@dataclass(slots=True, frozen=True)
class Pick:
    editor: EditorContext
    provider: RefactorProvider
    candidates: tuple[AvailableRefactoring, ...]
    type: Literal["pick"] = field(default="pick", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "candidates", tuple(self.candidates))


@dataclass(slots=True, frozen=True)
class Rename:
    editor: EditorContext
    position: Point
    provider: RefactorProvider
    selected_text: str = ""
    mount_point: Point | None = None
    type: Literal["rename"] = field(default="rename", init=False)


@dataclass(slots=True, frozen=True)
class Freeform:
    editor: EditorContext
    refactoring: FreeformRefactoring
    provider: RefactorProvider
    type: Literal["freeform"] = field(default="freeform", init=False)


@dataclass(slots=True, frozen=True)
class Execute:
    provider: RefactorProvider
    request: RefactorRequest
    type: Literal["execute"] = field(default="execute", init=False)


Phase = Union[GetRefactorings, Pick, Rename, Freeform, Execute]


@dataclass(slots=True, frozen=True)
class Closed:
    type: Literal["closed"] = field(default="closed", init=False)


@dataclass(slots=True, frozen=True)
class Open:
    """An active workflow requested by the UI surface named ``ui_kind``."""

    ui_kind: str
    phase: Phase
    type: Literal["open"] = field(default="open", init=False)

    def __post_init__(self) -> None:
        if not self.ui_kind:
            raise ValueError("Open workflow requires a ui_kind")


WorkflowState = Union[Closed, Open]

CLOSED = Closed()


def phase_of(state: WorkflowState) -> Phase | None:
    """Return the phase of an open workflow, or ``None`` when closed."""

    return state.phase if isinstance(state, Open) else None


__all__ = [
    "EditorContext",
    "ArgumentSpec",
    "ArgumentType",
    "RenameRefactoring",
    "FreeformRefactoring",
    "AvailableRefactoring",
    "RenameRequest",
    "FreeformRequest",
    "RefactorRequest",
    "TextEdit",
    "freeze_edits",
    "EditResponse",
    "ProgressResponse",
    "RefactorResponse",
    "GetRefactorings",
    "Pick",
    "Rename",
    "Freeform",
    "Execute",
    "Phase",
    "Closed",
    "Open",
    "WorkflowState",
    "CLOSED",
    "phase_of",
]

"""Refactor workflow: state machine, provider adapter, edit applier and coordinator."""

from .actions import (
    close,
    display_rename,
    error_occurred,
    execute,
    got_edits,
    got_refactorings,
    open_workflow,
    picked_refactor,
)
from .coordinator import RefactorCoordinator
from .edit_applier import ApplyReport, EditApplier, FileEditResult, FileEditStatus, TextBuffer
from .errors import (
    EditConflict,
    NoProviderAvailable,
    ProviderEnumerationFailure,
    ProviderExecutionFailure,
    RefactorError,
)
from .providers import Capability, ProviderAdapter, ProviderRegistry, RefactorProvider
from .reducer import reduce
from .types import (
    CLOSED,
    ArgumentSpec,
    Closed,
    EditorContext,
    EditResponse,
    Execute,
    Freeform,
    FreeformRefactoring,
    FreeformRequest,
    GetRefactorings,
    Open,
    Pick,
    ProgressResponse,
    Rename,
    RenameRefactoring,
    RenameRequest,
    TextEdit,
    WorkflowState,
)

__all__ = [
    "ApplyReport",
    "ArgumentSpec",
    "CLOSED",
    "Capability",
    "Closed",
    "EditApplier",
    "EditConflict",
    "EditResponse",
    "EditorContext",
    "Execute",
    "FileEditResult",
    "FileEditStatus",
    "Freeform",
    "FreeformRefactoring",
    "FreeformRequest",
    "GetRefactorings",
    "NoProviderAvailable",
    "Open",
    "Pick",
    "ProgressResponse",
    "ProviderAdapter",
    "ProviderEnumerationFailure",
    "ProviderExecutionFailure",
    "ProviderRegistry",
    "RefactorCoordinator",
    "RefactorError",
    "RefactorProvider",
    "Rename",
    "RenameRefactoring",
    "RenameRequest",
    "TextBuffer",
    "TextEdit",
    "WorkflowState",
    "close",
    "display_rename",
    "error_occurred",
    "execute",
    "got_edits",
    "got_refactorings",
    "open_workflow",
    "picked_refactor",
    "reduce",
]

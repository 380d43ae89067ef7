"""Pure state transitions for the refactor workflow.

:func:`reduce` never performs I/O and never raises for a well-formed action.
Combinations that are not valid return the input state object unchanged, so
callers can detect a no-op with an identity check.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .actions import (
    Action,
    CloseWorkflow,
    DisplayRename,
    ErrorOccurred,
    ExecuteRefactor,
    GotEdits,
    GotRefactorings,
    OpenWorkflow,
    PickedRefactor,
)
from .types import (
    CLOSED,
    AvailableRefactoring,
    Closed,
    EditorContext,
    Execute,
    Freeform,
    FreeformRefactoring,
    GetRefactorings,
    Open,
    Phase,
    Pick,
    Rename,
    RenameRefactoring,
    WorkflowState,
)

if TYPE_CHECKING:  # pragma: no cover
    from .providers import RefactorProvider

DISPLAY_RENAME_UI_KIND = "generic"


def reduce(state: WorkflowState, action: Action) -> WorkflowState:
    """Return the state that follows ``state`` once ``action`` is applied."""

    if isinstance(action, CloseWorkflow):
        return state if isinstance(state, Closed) else CLOSED

    if isinstance(action, OpenWorkflow):
        if isinstance(state, Closed):
            return Open(ui_kind=action.ui_kind, phase=GetRefactorings())
        return state

    if isinstance(action, DisplayRename):
        return Open(
            ui_kind=DISPLAY_RENAME_UI_KIND,
            phase=Rename(
                editor=action.editor,
                position=action.symbol_point,
                provider=action.provider,
                selected_text=action.selected_text,
                mount_point=action.mount_point,
            ),
        )

    if not isinstance(state, Open):
        return state

    if isinstance(action, ErrorOccurred):
        return CLOSED

    phase = state.phase
    if isinstance(action, GotRefactorings):
        if not isinstance(phase, GetRefactorings):
            return state
        return _after_refactorings(state, action)

    if isinstance(action, PickedRefactor):
        if not isinstance(phase, Pick):
            return state
        next_phase = _phase_for(action.refactoring, phase.editor, phase.provider)
        if next_phase is None:
            return state
        return Open(ui_kind=state.ui_kind, phase=next_phase)

    if isinstance(action, ExecuteRefactor):
        if not isinstance(phase, (Rename, Freeform)):
            return state
        return Open(
            ui_kind=state.ui_kind,
            phase=Execute(provider=action.provider, request=action.request),
        )

    if isinstance(action, GotEdits):
        return CLOSED if isinstance(phase, Execute) else state

    return state


def _after_refactorings(state: Open, action: GotRefactorings) -> WorkflowState:
    refactorings = action.refactorings
    if not refactorings or action.editor is None or action.provider is None:
        return CLOSED
    if len(refactorings) == 1:
        next_phase = _phase_for(refactorings[0], action.editor, action.provider)
        if next_phase is None:
            return CLOSED
    else:
        next_phase = Pick(
            editor=action.editor,
            provider=action.provider,
            candidates=refactorings,
        )
    return Open(ui_kind=state.ui_kind, phase=next_phase)


def _phase_for(
    refactoring: AvailableRefactoring, editor: EditorContext, provider: RefactorProvider
) -> Phase | None:
    if isinstance(refactoring, RenameRefactoring):
        return Rename(
            editor=editor,
            position=refactoring.symbol_range.start,
            provider=provider,
            selected_text=refactoring.symbol_text,
        )
    if isinstance(refactoring, FreeformRefactoring):
        return Freeform(editor=editor, refactoring=refactoring, provider=provider)
    return None


__all__ = ["reduce", "DISPLAY_RENAME_UI_KIND"]

"""Refactor workflow coordinator.

Owns the single :data:`~refactorflow.refactor.types.WorkflowState` cell,
reduces dispatched actions into it, publishes every change and runs the side
effects the new state calls for (asking a provider for refactorings,
executing a refactoring, applying its edits).

Provider work runs as asyncio tasks. Every task captures the epoch current
when it started; the epoch advances whenever a workflow is actually opened,
replaced or closed, and a task whose epoch is stale drops its result without dispatching
anything. That check is the only cancellation the workflow relies on.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Callable, Coroutine, Deque

from ..events import (
    EditConflictDetected,
    EditsApplied,
    EventBus,
    RefactorProgress,
    WorkflowErrorRaised,
    WorkflowStateChanged,
)
from .actions import (
    EPOCH_ACTIONS,
    Action,
    CloseWorkflow,
    ErrorOccurred,
    GotEdits,
    close,
    error_occurred,
    got_edits,
    got_refactorings,
)
from .edit_applier import ApplyReport, EditApplier, TextBuffer
from .errors import (
    NoProviderAvailable,
    ProviderEnumerationFailure,
    ProviderExecutionFailure,
    RefactorError,
)
from .providers import ProviderAdapter
from .reducer import reduce
from .types import (
    CLOSED,
    EditorContext,
    EditResponse,
    Execute,
    GetRefactorings,
    ProgressResponse,
    WorkflowState,
    phase_of,
)

__all__ = ["RefactorCoordinator", "EditorSource"]

LOGGER = logging.getLogger(__name__)

EditorSource = Callable[[], "EditorContext | None"]


class RefactorCoordinator:
    """Sequential actor driving one refactor workflow.

    Example::

        coordinator = RefactorCoordinator(
            registry=registry,
            editor_source=workspace.editor_context,
            buffer=workspace,
        )
        coordinator.subscribe(render)
        coordinator.dispatch(open_workflow("generic"))

    Events Emitted:
        - WorkflowStateChanged: after every state change
        - WorkflowErrorRaised: for every ``error_occurred`` action
        - RefactorProgress: for provider progress responses
        - EditsApplied: after a refactoring's edits were applied
        - EditConflictDetected: per file whose edits did not all apply
    """

    def __init__(
        self,
        *,
        registry: Any,
        editor_source: EditorSource,
        buffer: TextBuffer,
        event_bus: EventBus | None = None,
        applier: EditApplier | None = None,
        after_apply: Callable[[ApplyReport], None] | None = None,
    ) -> None:
        self._registry = registry
        self._editor_source = editor_source
        self._bus: EventBus = event_bus or EventBus()
        self._applier = applier or EditApplier(buffer)
        self._after_apply = after_apply
        self._state: WorkflowState = CLOSED
        self._epoch = 0
        self._queue: Deque[Action] = deque()
        self._dispatching = False
        self._tasks: set[asyncio.Task[None]] = set()
        self._last_report: ApplyReport | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def last_report(self) -> ApplyReport | None:
        """Outcome of the most recent edit application, if any."""
        return self._last_report

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, handler: Callable[[WorkflowState], None]) -> Callable[[], None]:
        """Deliver the current state now and every later state change.

        Returns a callable that removes the subscription.
        """

        def _on_change(event: WorkflowStateChanged) -> None:
            handler(event.state)

        handler(self._state)
        self._bus.subscribe(WorkflowStateChanged, _on_change)
        return lambda: self._bus.unsubscribe(WorkflowStateChanged, _on_change)

    def subscribe_errors(self, handler: Callable[[RefactorError], None]) -> Callable[[], None]:
        """Deliver every error surfaced by an ``error_occurred`` action."""

        def _on_error(event: WorkflowErrorRaised) -> None:
            handler(event.error)

        self._bus.subscribe(WorkflowErrorRaised, _on_error)
        return lambda: self._bus.unsubscribe(WorkflowErrorRaised, _on_error)

    async def wait_for(self, predicate: Callable[[WorkflowState], bool]) -> WorkflowState:
        """Return the first state, current or future, satisfying ``predicate``."""

        if predicate(self._state):
            return self._state
        future: asyncio.Future[WorkflowState] = asyncio.get_running_loop().create_future()

        def _on_state(state: WorkflowState) -> None:
            if not future.done() and predicate(state):
                future.set_result(state)

        unsubscribe = self.subscribe(_on_state)
        try:
            return await future
        finally:
            unsubscribe()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, action: Action) -> None:
        """Reduce ``action`` into the state and run the resulting side effects.

        Actions dispatched while another one is being processed (from a
        subscriber or a side effect) are queued and handled in order.
        """
        self._queue.append(action)
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._queue:
                self._process(self._queue.popleft())
        finally:
            self._dispatching = False

    def _process(self, action: Action) -> None:
        previous = self._state
        state = reduce(previous, action)
        # Only a real transition invalidates in-flight work.
        if state is not previous and isinstance(action, EPOCH_ACTIONS):
            self._epoch += 1

        if isinstance(action, ErrorOccurred):
            LOGGER.warning("Refactor workflow error: %s", action.error)
            self._bus.publish(WorkflowErrorRaised(error=action.error))

        if state is previous:
            if not isinstance(action, (CloseWorkflow, ErrorOccurred)):
                LOGGER.warning(
                    "Ignoring %s action in %s state",
                    action.type,
                    _describe(previous),
                )
            return

        self._state = state
        LOGGER.debug(
            "Refactor state %s -> %s (action=%s, epoch=%d)",
            _describe(previous),
            _describe(state),
            action.type,
            self._epoch,
        )
        self._bus.publish(WorkflowStateChanged(previous=previous, state=state, action=action.type))
        self._run_effects(previous, state, action)

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _run_effects(self, previous: WorkflowState, state: WorkflowState, action: Action) -> None:
        if isinstance(action, GotEdits) and isinstance(phase_of(previous), Execute):
            self._apply_edits(action.response)
            return
        phase = phase_of(state)
        if isinstance(phase, GetRefactorings):
            self._start_get_refactorings()
        elif isinstance(phase, Execute) and not isinstance(phase_of(previous), Execute):
            self._spawn(self._execute(self._epoch, phase), "execute")

    def _start_get_refactorings(self) -> None:
        epoch = self._epoch
        try:
            editor = self._editor_source()
        except Exception:
            LOGGER.exception("Editor source failed; treating as no active editor")
            editor = None
        if editor is None or not editor.is_saved:
            LOGGER.debug("No saved editor available; closing refactor workflow")
            self.dispatch(got_refactorings(editor, None, ()))
            return
        try:
            provider = self._registry.select_provider(editor)
        except Exception as exc:
            LOGGER.exception("Provider selection failed for %s", editor.path)
            error = ProviderEnumerationFailure(
                message="Provider selection failed", details={"path": editor.path}
            )
            error.__cause__ = exc
            self._fail(epoch, error)
            return
        if provider is None:
            LOGGER.debug("%s", NoProviderAvailable(details={"path": editor.path}))
            self.dispatch(got_refactorings(editor, None, ()))
            return
        self._spawn(self._load_refactorings(epoch, editor, provider), "get-refactorings")

    async def _load_refactorings(self, epoch: int, editor: EditorContext, provider: Any) -> None:
        adapter = ProviderAdapter(provider)
        try:
            refactorings = await adapter.enumerate(editor, editor.selection)
        except RefactorError as exc:
            self._fail(epoch, exc)
            return
        except Exception as exc:
            LOGGER.exception("Unexpected failure while listing refactorings")
            error = ProviderEnumerationFailure(details={"provider": adapter.name})
            error.__cause__ = exc
            self._fail(epoch, error)
            return
        if self._is_stale(epoch):
            LOGGER.debug("Dropping refactorings from %s: workflow moved on", adapter.name)
            return
        self.dispatch(got_refactorings(editor, provider, refactorings))

    async def _execute(self, epoch: int, phase: Execute) -> None:
        adapter = ProviderAdapter(phase.provider)
        stream = adapter.execute(phase.request)
        try:
            async for response in stream:
                if self._is_stale(epoch):
                    LOGGER.debug("Dropping %s response from %s: workflow moved on", response.type, adapter.name)
                    return
                if isinstance(response, ProgressResponse):
                    self._bus.publish(
                        RefactorProgress(message=response.message, value=response.value, max=response.max)
                    )
                    continue
                if isinstance(response, EditResponse):
                    self.dispatch(got_edits(response))
                    break
        except RefactorError as exc:
            self._fail(epoch, exc)
            return
        except Exception as exc:
            LOGGER.exception("Unexpected failure while executing refactoring")
            error = ProviderExecutionFailure(details={"provider": adapter.name})
            error.__cause__ = exc
            self._fail(epoch, error)
            return
        finally:
            await stream.aclose()
        if self._is_stale(epoch):
            return
        self.dispatch(close())

    def _apply_edits(self, response: EditResponse) -> None:
        self._last_report = None
        try:
            report = self._applier.apply(response.edits)
        except Exception:
            LOGGER.exception("Applying %d refactor edit(s) failed", response.edit_count)
            return
        self._last_report = report
        for result in report:
            if not result.ok:
                self._bus.publish(
                    EditConflictDetected(
                        path=result.path,
                        status=result.status.value,
                        conflict_count=len(result.conflicts),
                    )
                )
        self._bus.publish(EditsApplied(report=report))
        if self._after_apply is not None:
            try:
                self._after_apply(report)
            except Exception:
                LOGGER.exception("after_apply hook failed")

    def _fail(self, epoch: int, error: RefactorError) -> None:
        if self._is_stale(epoch):
            LOGGER.debug("Dropping provider failure from a stale workflow: %s", error)
            return
        self.dispatch(error_occurred(error))
        self.dispatch(close())

    def _is_stale(self, epoch: int) -> bool:
        return epoch != self._epoch

    # ------------------------------------------------------------------
    # Task bookkeeping
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            LOGGER.error("Cannot start %s without a running event loop", name)
            error = ProviderExecutionFailure(message=f"No event loop available to run {name}")
            self._fail(self._epoch, error)
            return
        task = loop.create_task(coro, name=f"refactor-{name}-{self._epoch}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Refactor task %s failed", task.get_name(), exc_info=exc)

    async def aclose(self) -> None:
        """Close the workflow and cancel outstanding provider work."""

        self.dispatch(close())
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


def _describe(state: WorkflowState) -> str:
    phase = phase_of(state)
    if phase is None:
        return state.type
    return f"{state.type}:{phase.type}"

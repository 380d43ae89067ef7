"""Unit tests for :mod:`refactorflow.events`."""

from __future__ import annotations

import gc

from refactorflow.events import (
    EditConflictDetected,
    EditsApplied,
    Event,
    EventBus,
    RefactorProgress,
    WorkflowErrorRaised,
    WorkflowStateChanged,
)
from refactorflow.refactor.edit_applier import ApplyReport
from refactorflow.refactor.errors import ProviderExecutionFailure
from refactorflow.refactor.types import CLOSED, GetRefactorings, Open


def state_changed() -> WorkflowStateChanged:
    return WorkflowStateChanged(
        previous=CLOSED,
        state=Open(ui_kind="generic", phase=GetRefactorings()),
        action="open",
    )


class TestSubscription:
    """Tests for subscribing and unsubscribing handlers."""

    def test_handlers_are_tracked_per_event_type(self) -> None:
        bus: EventBus[Event] = EventBus()

        bus.subscribe(WorkflowStateChanged, lambda e: None)
        bus.subscribe(WorkflowStateChanged, lambda e: None)
        bus.subscribe(RefactorProgress, lambda e: None)

        assert bus.handler_count(WorkflowStateChanged) == 2
        assert bus.handler_count(RefactorProgress) == 1
        assert bus.handler_count() == 3

    def test_unsubscribe_removes_one_registration(self) -> None:
        """Subscribing twice registers twice; unsubscribe removes one."""
        bus: EventBus[Event] = EventBus()

        def handler(event: WorkflowStateChanged) -> None:
            pass

        bus.subscribe(WorkflowStateChanged, handler)
        bus.subscribe(WorkflowStateChanged, handler)
        bus.unsubscribe(WorkflowStateChanged, handler)

        assert bus.handler_count(WorkflowStateChanged) == 1

    def test_unsubscribe_unknown_handler_is_safe(self) -> None:
        bus: EventBus[Event] = EventBus()
        bus.subscribe(WorkflowStateChanged, lambda e: None)

        bus.unsubscribe(EditsApplied, lambda e: None)  # type: ignore[arg-type]

        assert bus.handler_count() == 1

    def test_clear(self) -> None:
        bus: EventBus[Event] = EventBus()
        bus.subscribe(WorkflowErrorRaised, lambda e: None)
        bus.clear()
        assert bus.handler_count() == 0


class TestPublish:
    """Tests for event delivery."""

    def test_publish_reaches_handlers_in_order(self) -> None:
        bus: EventBus[Event] = EventBus()
        order: list[str] = []
        event = state_changed()

        bus.subscribe(WorkflowStateChanged, lambda e: order.append(f"first:{e.action}"))
        bus.subscribe(WorkflowStateChanged, lambda e: order.append(f"second:{e.state.type}"))
        bus.publish(event)

        assert order == ["first:open", "second:open"]

    def test_publish_only_matches_exact_type(self) -> None:
        bus: EventBus[Event] = EventBus()
        errors: list[WorkflowErrorRaised] = []
        bus.subscribe(WorkflowErrorRaised, errors.append)

        bus.publish(state_changed())
        bus.publish(RefactorProgress(message="quiet"))

        assert errors == []

    def test_handler_exception_does_not_stop_delivery(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[int] = []

        def failing(event: EditConflictDetected) -> None:
            raise RuntimeError("handler bug")

        bus.subscribe(EditConflictDetected, failing)
        bus.subscribe(EditConflictDetected, lambda e: received.append(e.conflict_count))

        bus.publish(EditConflictDetected(path="a.py", status="conflict", conflict_count=2))

        assert received == [2]

    def test_handler_may_unsubscribe_during_publish(self) -> None:
        bus: EventBus[Event] = EventBus()
        calls: list[str] = []

        def once(event: EditsApplied) -> None:
            calls.append("once")
            bus.unsubscribe(EditsApplied, once)

        bus.subscribe(EditsApplied, once)
        bus.subscribe(EditsApplied, lambda e: calls.append("always"))

        bus.publish(EditsApplied(report=ApplyReport()))
        bus.publish(EditsApplied(report=ApplyReport()))

        assert calls == ["once", "always", "always"]

    def test_error_event_carries_error(self) -> None:
        bus: EventBus[Event] = EventBus()
        seen: list[WorkflowErrorRaised] = []
        error = ProviderExecutionFailure(details={"provider": "stub"})
        bus.subscribe(WorkflowErrorRaised, seen.append)

        bus.publish(WorkflowErrorRaised(error=error))

        assert seen[0].error is error
        assert seen[0].error.to_dict()["details"] == {"provider": "stub"}


class TestWeakReferences:
    """Bound methods are held weakly; plain functions strongly."""

    def test_bound_method_is_dropped_after_gc(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[RefactorProgress] = []

        class ProgressView:
            def on_progress(self, event: RefactorProgress) -> None:
                received.append(event)

        view = ProgressView()
        bus.subscribe(RefactorProgress, view.on_progress)
        bus.publish(RefactorProgress(message="before"))

        del view
        gc.collect()
        bus.publish(RefactorProgress(message="after"))

        assert [event.message for event in received] == ["before"]
        assert bus.handler_count(RefactorProgress) == 0

    def test_bound_method_can_be_unsubscribed(self) -> None:
        bus: EventBus[Event] = EventBus()

        class View:
            def on_state(self, event: WorkflowStateChanged) -> None:
                pass

        view = View()
        bus.subscribe(WorkflowStateChanged, view.on_state)
        bus.unsubscribe(WorkflowStateChanged, view.on_state)

        assert bus.handler_count() == 0

    def test_closure_survives_gc(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[str] = []
        bus.subscribe(WorkflowStateChanged, lambda e: received.append(e.action))

        gc.collect()
        bus.publish(state_changed())

        assert received == ["open"]

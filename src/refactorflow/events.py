"""Event bus used to publish workflow state, errors and edit outcomes.

The coordinator publishes every state change and every surfaced error as an
event, so UI surfaces can observe the workflow without holding a reference
to its internals.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Generic,
    TypeVar,
)
from weakref import WeakMethod, ref

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

    from .refactor.edit_applier import ApplyReport
    from .refactor.errors import RefactorError
    from .refactor.types import WorkflowState

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events.

    Subclasses are slotted dataclasses::

        @dataclass(slots=True)
        class EditsApplied(Event):
            report: ApplyReport
    """

    pass


# Event types that should not log each publish
_QUIET_EVENT_TYPES: set[type] = set()


# =============================================================================
# Workflow Events
# =============================================================================


@dataclass(slots=True)
class WorkflowStateChanged(Event):
    """Emitted after the coordinator replaces its state.

    Attributes:
        previous: The state before the action was reduced.
        state: The new state.
        action: The ``type`` tag of the action that caused the change.
    """

    previous: WorkflowState
    state: WorkflowState
    action: str


@dataclass(slots=True)
class WorkflowErrorRaised(Event):
    """Emitted when an ``error_occurred`` action is dispatched.

    Attributes:
        error: The failure, already converted at the provider boundary.
    """

    error: RefactorError


@dataclass(slots=True)
class RefactorProgress(Event):
    """Emitted for each progress response a provider streams while executing.

    Attributes:
        message: Provider-supplied description of the current step.
        value: Units of work completed.
        max: Total units of work, or 0 when unknown.
    """

    message: str
    value: int = 0
    max: int = 0


_QUIET_EVENT_TYPES.add(RefactorProgress)


# =============================================================================
# Edit Events
# =============================================================================


@dataclass(slots=True)
class EditsApplied(Event):
    """Emitted after a refactoring's edits were written to the text buffer.

    Attributes:
        report: Per-file outcome of the application.
    """

    report: ApplyReport


@dataclass(slots=True)
class EditConflictDetected(Event):
    """Emitted once per file whose edits did not all apply.

    Attributes:
        path: The affected file.
        status: The file's outcome (``conflict``, ``missing`` or ``write_failed``).
        conflict_count: Number of edits skipped in the file.
    """

    path: str
    status: str
    conflict_count: int


class EventBus(Generic[E]):
    """A typed publish-subscribe event bus.

    Handlers registered for an event type are invoked synchronously, in
    registration order, whenever an event of exactly that type is published.
    Bound methods are held through weak references so subscribers do not
    need to unsubscribe before being garbage collected.

    Thread Safety:
        Not thread-safe. Use it from the event loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register a handler to receive events of the specified type.

        Subscribing the same handler twice results in two invocations.
        """
        handler_ref = _HandlerRef.create(handler)
        self._handlers[event_type].append(handler_ref)
        logger.debug(
            "Subscribed handler %s to event type %s",
            _handler_name(handler),
            event_type.__name__,
        )

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return

        for i, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(i)
                logger.debug(
                    "Unsubscribed handler %s from event type %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
                return

    def publish(self, event: E) -> None:
        """Broadcast an event to all registered handlers.

        A handler that raises is logged and the remaining handlers still run.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        is_quiet = event_type in _QUIET_EVENT_TYPES

        if not handlers:
            if not is_quiet:
                logger.debug("No handlers for event type %s", event_type.__name__)
            return

        if not is_quiet:
            logger.debug(
                "Publishing %s to %d handler(s)",
                event_type.__name__,
                len(handlers),
            )

        dead: list[_HandlerRef] = []
        # Iterate over a copy; handlers may (un)subscribe while being notified.
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue

            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for handler_ref in dead:
            try:
                handlers.remove(handler_ref)
            except ValueError:  # pragma: no cover - already removed
                pass

    def clear(self) -> None:
        """Remove all registered handlers."""
        self._handlers.clear()
        logger.debug("Cleared all event handlers")

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Return the number of handlers for ``event_type`` or across all types."""
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | ref | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass

        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        """Return the handler, or ``None`` if it was garbage collected."""
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Any) -> str:
    """Get a human-readable name for a handler for logging purposes."""
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        cls_name = type(handler.__self__).__name__
        return f"{cls_name}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "WorkflowStateChanged",
    "WorkflowErrorRaised",
    "RefactorProgress",
    "EditsApplied",
    "EditConflictDetected",
]

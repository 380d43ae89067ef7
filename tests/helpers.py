"""Shared test helpers and stub providers.

Import from here instead of redefining provider stubs in individual test files.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Sequence

from refactorflow.refactor.coordinator import RefactorCoordinator

SAMPLE_TEXT = "foo\nbar\nfoo\n"


class StubProvider:
    """Provider stub that only exposes the operations it was given.

    Capabilities are detected from attribute presence, so operations left as
    ``None`` are simply missing from the instance.

    Example:
        provider = StubProvider(refactorings=lambda editor, range: [])
    """

    def __init__(
        self,
        *,
        refactorings: Callable[..., Any] | None = None,
        rename: Callable[..., Any] | None = None,
        refactor: Callable[..., Any] | None = None,
        grammar_scopes: Sequence[str] = ("*",),
        priority: int = 0,
        name: str = "stub",
    ) -> None:
        self.grammar_scopes = tuple(grammar_scopes)
        self.priority = priority
        self.name = name
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        if refactorings is not None:
            self.refactorings = self._record("refactorings", refactorings)
        if rename is not None:
            self.rename = self._record("rename", rename)
        if refactor is not None:
            self.refactor = self._record("refactor", refactor)

    def _record(self, label: str, func: Callable[..., Any]) -> Callable[..., Any]:
        def wrapper(*args: Any) -> Any:
            self.calls.append((label, args))
            return func(*args)

        return wrapper

    def called(self, label: str) -> int:
        return sum(1 for name, _ in self.calls if name == label)


async def drain(coordinator: RefactorCoordinator, *, rounds: int = 50) -> None:
    """Let the loop run until the coordinator has no provider work in flight."""

    for _ in range(rounds):
        await asyncio.sleep(0)
        if not coordinator.pending_tasks:
            await asyncio.sleep(0)
            return
    raise AssertionError("coordinator tasks did not finish")


def state_types(states: Sequence[Any]) -> list[str]:
    """Render states as ``closed`` / ``open:<phase>`` for compact assertions."""

    rendered = []
    for state in states:
        phase = getattr(state, "phase", None)
        rendered.append(state.type if phase is None else f"{state.type}:{phase.type}")
    return rendered

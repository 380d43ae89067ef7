"""Refactor provider contract, priority registry and fault-isolating adapter.

Providers are third-party objects. They may implement any subset of the
three capabilities (listing refactorings, renaming, computing freeform
refactorings), may return coroutines, plain values, iterables or async
iterables, and may raise at any point. :class:`ProviderAdapter` normalises all
of that behind one asynchronous interface and converts every provider fault
into a :class:`~refactorflow.refactor.errors.RefactorError`.
"""

from __future__ import annotations

import enum
import inspect
import logging
from collections.abc import AsyncIterable, Iterable, Mapping
from typing import Any, AsyncIterator, Callable, Protocol, Sequence, runtime_checkable

from ..core.ranges import Point, Range
from .errors import ProviderEnumerationFailure, ProviderExecutionFailure
from .types import (
    ArgumentSpec,
    AvailableRefactoring,
    EditorContext,
    EditResponse,
    FreeformRefactoring,
    FreeformRequest,
    ProgressResponse,
    RefactorRequest,
    RefactorResponse,
    RenameRefactoring,
    RenameRequest,
    TextEdit,
    freeze_edits,
)

__all__ = [
    "RefactorProvider",
    "Capability",
    "ProviderAdapter",
    "ProviderRegistry",
    "coerce_refactoring",
    "coerce_response",
]

LOGGER = logging.getLogger(__name__)

_ANY_GRAMMAR = "*"


@runtime_checkable
class RefactorProvider(Protocol):
    """Metadata every provider carries.

    The three operations are optional; see :class:`Capability`::

        refactorings(editor, range) -> Sequence[AvailableRefactoring]
        rename(editor, position, new_name) -> Mapping[str, Sequence[TextEdit]] | None
        refactor(request) -> stream of RefactorResponse
    """

    grammar_scopes: Sequence[str]
    priority: int


class Capability(enum.Flag):
    """Operations a provider implements."""

    NONE = 0
    REFACTORINGS = enum.auto()
    RENAME = enum.auto()
    REFACTOR = enum.auto()

    @classmethod
    def detect(cls, provider: Any) -> Capability:
        found = cls.NONE
        if callable(getattr(provider, "refactorings", None)):
            found |= cls.REFACTORINGS
        if callable(getattr(provider, "rename", None)):
            found |= cls.RENAME
        if callable(getattr(provider, "refactor", None)):
            found |= cls.REFACTOR
        return found


# -----------------------------------------------------------------------------
# Value coercion
# -----------------------------------------------------------------------------


def coerce_refactoring(value: Any) -> AvailableRefactoring:
    """Convert a provider-supplied refactoring (object or mapping) into a value type."""

    if isinstance(value, (RenameRefactoring, FreeformRefactoring)):
        return value
    if not isinstance(value, Mapping):
        raise TypeError(f"Unsupported refactoring payload: {type(value).__name__}")
    kind = value.get("kind")
    if kind == "rename":
        symbol = value.get("symbol_range") or value.get("symbolAtPoint", {}).get("range")
        text = value.get("symbol_text") or value.get("symbolAtPoint", {}).get("text", "")
        return RenameRefactoring(symbol_range=Range.from_value(symbol), symbol_text=text or "")
    if kind == "freeform":
        arguments = tuple(
            spec if isinstance(spec, ArgumentSpec) else _coerce_argument(spec)
            for spec in value.get("arguments") or ()
        )
        return FreeformRefactoring(
            id=str(value["id"]),
            name=str(value.get("name", value["id"])),
            description=str(value.get("description", "")),
            range=Range.from_value(value["range"]),
            arguments=arguments,
            disabled=bool(value.get("disabled", False)),
        )
    raise ValueError(f"Unknown refactoring kind: {kind!r}")


def _coerce_argument(value: Mapping[str, Any]) -> ArgumentSpec:
    options = value.get("options") or ()
    return ArgumentSpec(
        name=str(value["name"]),
        description=str(value.get("description", "")),
        type=value.get("type", "string"),
        default=value.get("default"),
        options=tuple(str(option) for option in options),
    )


def coerce_response(value: Any) -> RefactorResponse | None:
    """Convert one provider emission into a response, or ``None`` to ignore it."""

    if isinstance(value, (EditResponse, ProgressResponse)):
        return value
    if not isinstance(value, Mapping):
        raise TypeError(f"Unsupported refactor response: {type(value).__name__}")
    kind = value.get("type")
    if kind == "edit":
        return EditResponse(edits=freeze_edits(value.get("edits") or {}))
    if kind == "progress":
        return ProgressResponse(
            message=str(value.get("message", "")),
            value=int(value.get("value", 0)),
            max=int(value.get("max", 0)),
        )
    LOGGER.debug("Ignoring refactor response of type %r", kind)
    return None


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def _iterate(result: Any) -> AsyncIterator[Any]:
    """Yield the items of whatever a provider's ``refactor`` returned."""

    result = await _resolve(result)
    if result is None:
        return
    if isinstance(result, (EditResponse, ProgressResponse, Mapping)):
        yield result
        return
    if isinstance(result, AsyncIterable):
        iterator = result.__aiter__()
        try:
            async for item in iterator:
                yield item
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()
        return
    if isinstance(result, Iterable):
        for item in result:
            yield item
        return
    raise TypeError(f"Unsupported refactor result: {type(result).__name__}")


def _provider_name(provider: Any) -> str:
    return getattr(provider, "name", None) or type(provider).__name__


# -----------------------------------------------------------------------------
# Adapter
# -----------------------------------------------------------------------------


class ProviderAdapter:
    """Fault-isolating wrapper around one selected provider.

    Example::

        adapter = ProviderAdapter(provider)
        refactorings = await adapter.enumerate(editor, editor.selection)
        async for response in adapter.execute(request):
            ...
    """

    def __init__(self, provider: Any) -> None:
        self._provider = provider
        self._capabilities = Capability.detect(provider)

    @property
    def provider(self) -> Any:
        return self._provider

    @property
    def capabilities(self) -> Capability:
        return self._capabilities

    @property
    def name(self) -> str:
        return _provider_name(self._provider)

    async def enumerate(self, editor: EditorContext, range: Range) -> tuple[AvailableRefactoring, ...]:
        """Return the refactorings the provider offers at ``range``.

        Raises:
            ProviderEnumerationFailure: The provider raised, rejected or
                returned something that is not a refactoring list.
        """
        if Capability.REFACTORINGS not in self._capabilities:
            return ()
        try:
            result = await _resolve(self._provider.refactorings(editor, range))
            if result is None:
                return ()
            return tuple(coerce_refactoring(item) for item in result)
        except Exception as exc:
            LOGGER.warning("Provider %s failed to list refactorings: %s", self.name, exc)
            raise ProviderEnumerationFailure(
                details={"provider": self.name, "path": editor.path}
            ) from exc

    async def execute_rename(
        self,
        editor: EditorContext,
        position: Point,
        new_name: str,
    ) -> Mapping[str, tuple[TextEdit, ...]] | None:
        """Compute the edits renaming the symbol at ``position`` to ``new_name``.

        Returns ``None`` when the provider has nothing to change.
        """
        if Capability.RENAME not in self._capabilities:
            stream = self._stream(RenameRequest(editor, position, new_name))
            try:
                async for response in stream:
                    if isinstance(response, EditResponse):
                        return response.edits
            finally:
                await stream.aclose()
            return None
        try:
            result = await _resolve(self._provider.rename(editor, position, new_name))
            if not result:
                return None
            return freeze_edits(result)
        except Exception as exc:
            LOGGER.warning("Provider %s failed to rename: %s", self.name, exc)
            raise ProviderExecutionFailure(
                message="Provider failed to compute the rename",
                details={"provider": self.name, "new_name": new_name},
            ) from exc

    async def execute_freeform(self, request: FreeformRequest) -> AsyncIterator[RefactorResponse]:
        """Stream the responses of a freeform refactoring."""
        stream = self._stream(request)
        try:
            async for response in stream:
                yield response
        finally:
            await stream.aclose()

    async def execute(self, request: RefactorRequest) -> AsyncIterator[RefactorResponse]:
        """Stream the responses for any request kind.

        Requests go through ``refactor`` whenever the provider has it; a
        rename falls back to ``rename`` only for providers without it.
        """
        if (
            isinstance(request, RenameRequest)
            and Capability.REFACTOR not in self._capabilities
            and Capability.RENAME in self._capabilities
        ):
            edits = await self.execute_rename(request.editor, request.position, request.new_name)
            if edits:
                yield EditResponse(edits=edits)
            return
        if isinstance(request, FreeformRequest):
            stream = self.execute_freeform(request)
        else:
            stream = self._stream(request)
        try:
            async for response in stream:
                yield response
        finally:
            await stream.aclose()

    async def _stream(self, request: RefactorRequest) -> AsyncIterator[RefactorResponse]:
        details = {"provider": self.name, "request": request.kind}
        if Capability.REFACTOR not in self._capabilities:
            raise ProviderExecutionFailure(
                message=f"Provider does not support {request.kind} refactoring",
                details=details,
            )
        try:
            items = _iterate(self._provider.refactor(request))
        except Exception as exc:
            LOGGER.warning("Provider %s raised from refactor(): %s", self.name, exc)
            raise ProviderExecutionFailure(details=details) from exc
        try:
            while True:
                try:
                    item = await items.__anext__()
                except StopAsyncIteration:
                    return
                try:
                    response = coerce_response(item)
                except (TypeError, ValueError, KeyError) as exc:
                    raise ProviderExecutionFailure(
                        message="Provider emitted a malformed response", details=details
                    ) from exc
                if response is not None:
                    yield response
        except ProviderExecutionFailure:
            raise
        except Exception as exc:
            LOGGER.warning("Provider %s refactor stream failed: %s", self.name, exc)
            raise ProviderExecutionFailure(details=details) from exc
        finally:
            await items.aclose()


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------


class ProviderRegistry:
    """Priority-ordered collection of providers.

    Higher ``priority`` wins; providers with equal priority keep registration
    order. A provider whose ``grammar_scopes`` is empty or contains ``"*"``
    matches every editor.
    """

    def __init__(self) -> None:
        self._providers: list[Any] = []

    def add_provider(self, provider: Any) -> Callable[[], None]:
        """Register ``provider`` and return a callable that removes it again."""
        self._providers.append(provider)
        LOGGER.debug(
            "Registered refactor provider %s (priority=%s)",
            _provider_name(provider),
            getattr(provider, "priority", 0),
        )

        def _remove() -> None:
            self.remove_provider(provider)

        return _remove

    def remove_provider(self, provider: Any) -> bool:
        for index, candidate in enumerate(self._providers):
            if candidate is provider:
                del self._providers[index]
                return True
        return False

    def providers(self) -> tuple[Any, ...]:
        return tuple(sorted(self._providers, key=lambda item: -int(getattr(item, "priority", 0))))

    def providers_for(self, editor: EditorContext) -> tuple[Any, ...]:
        return tuple(p for p in self.providers() if _matches_grammar(p, editor.grammar))

    def select_provider(self, editor: EditorContext) -> Any | None:
        """Return the best provider for ``editor`` or ``None``."""
        matches = self.providers_for(editor)
        return matches[0] if matches else None

    def __len__(self) -> int:
        return len(self._providers)


def _matches_grammar(provider: Any, grammar: str) -> bool:
    scopes = getattr(provider, "grammar_scopes", None)
    if not scopes:
        return True
    return _ANY_GRAMMAR in scopes or grammar in scopes

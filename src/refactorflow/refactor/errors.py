"""Error types raised or reported by the refactor workflow.

Every provider-originated failure is converted into one of these types at the
provider boundary, so the coordinator only ever sees :class:`RefactorError`
instances and can surface them on the error feed uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


class ErrorCode:
    """Constants for machine-readable error codes."""

    PROVIDER_ENUMERATION_FAILED = "provider_enumeration_failed"
    PROVIDER_EXECUTION_FAILED = "provider_execution_failed"
    EDIT_CONFLICT = "edit_conflict"
    NO_PROVIDER = "no_provider_available"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------

@dataclass(eq=False)
class RefactorError(Exception):
    """Base exception for the refactor workflow.

    Attributes:
        code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
    """

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    severity: ClassVar[str] = "error"

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for logging and UI payloads."""
        result: dict[str, Any] = {
            "error": self.code,
            "message": self.message,
            "severity": self.severity,
        }
        if self.details:
            result["details"] = dict(self.details)
        cause = self.__cause__
        if cause is not None:
            result["cause"] = f"{type(cause).__name__}: {cause}"
        return result

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


# -----------------------------------------------------------------------------
# Provider Errors
# -----------------------------------------------------------------------------

@dataclass(eq=False)
class ProviderEnumerationFailure(RefactorError):
    """A provider raised or rejected while listing available refactorings."""

    code: str = field(default=ErrorCode.PROVIDER_ENUMERATION_FAILED)
    message: str = field(default="Provider failed to list refactorings")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class ProviderExecutionFailure(RefactorError):
    """A provider raised, rejected or emitted an error while computing edits."""

    code: str = field(default=ErrorCode.PROVIDER_EXECUTION_FAILED)
    message: str = field(default="Provider failed to compute the refactoring")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class NoProviderAvailable(RefactorError):
    """No registered provider handles the active editor.

    The coordinator treats this as an empty enumeration; it is never placed on
    the error feed.
    """

    code: str = field(default=ErrorCode.NO_PROVIDER)
    message: str = field(default="No refactor provider is available for this editor")
    details: dict[str, Any] = field(default_factory=dict)

    severity: ClassVar[str] = "info"


# -----------------------------------------------------------------------------
# Edit Errors
# -----------------------------------------------------------------------------

@dataclass(eq=False)
class EditConflict(RefactorError):
    """An edit's expected text did not match the live document.

    Reported per file inside an apply report; the edit applier never raises it.
    """

    code: str = field(default=ErrorCode.EDIT_CONFLICT)
    message: str = field(default="Document changed since the edit was computed")
    details: dict[str, Any] = field(default_factory=dict)

    path: str = ""
    expected: str | None = None
    actual: str | None = None

    severity: ClassVar[str] = "warning"

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.path:
            self.details.setdefault("path", self.path)
        self.details.setdefault("expected", self.expected)
        self.details.setdefault("actual", self.actual)


__all__ = [
    "ErrorCode",
    "RefactorError",
    "ProviderEnumerationFailure",
    "ProviderExecutionFailure",
    "NoProviderAvailable",
    "EditConflict",
]
